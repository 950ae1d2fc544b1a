"""Video Trimmer - preview a video, mark a range, export it losslessly."""

__version__ = "1.0.0"
