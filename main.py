#!/usr/bin/env python3
"""Video Trimmer - preview a video, mark a range, export it losslessly."""

import sys
from pathlib import Path

# Add src directory to path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from video_trimmer.main import main

if __name__ == "__main__":
    main()
