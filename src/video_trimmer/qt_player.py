"""Player implementation on top of QMediaPlayer."""
from pathlib import Path
from typing import Callable

from PyQt6.QtCore import QObject, QTimer, QUrl, pyqtSignal
from PyQt6.QtMultimedia import QAudioOutput, QMediaPlayer

from .config import POSITION_REPORT_INTERVAL
from .logger import get_logger
from .player import Player


class QtPlayer(QObject, Player):
    """QMediaPlayer with periodic position reports while playing."""

    error_occurred = pyqtSignal(str)

    def __init__(self, parent: QObject | None = None):
        QObject.__init__(self, parent)
        Player.__init__(self)

        self.media_player = QMediaPlayer(self)
        self.audio_output = QAudioOutput(self)
        self.audio_output.setVolume(1.0)
        self.media_player.setAudioOutput(self.audio_output)

        # QMediaPlayer reports positions irregularly, poll while playing
        self._poll_timer = QTimer(self)
        self._poll_timer.setInterval(int(POSITION_REPORT_INTERVAL * 1000))
        self._poll_timer.timeout.connect(self._on_poll)

        self.media_player.durationChanged.connect(self._on_duration_changed)
        self.media_player.playbackStateChanged.connect(self._on_state_changed)
        self.media_player.mediaStatusChanged.connect(self._on_media_status_changed)
        self.media_player.errorOccurred.connect(self._on_error)

    def set_video_output(self, widget):
        self.media_player.setVideoOutput(widget)

    def load(self, path: Path):
        self.cleanup()
        self.load_error = None
        get_logger().debug(f"Player loading {path}")
        self.media_player.setSource(QUrl.fromLocalFile(str(path)))

    def play(self):
        if self.media_player.source().isEmpty():
            get_logger().warning("play: no media loaded")
            return
        self.media_player.play()
        self._poll_timer.start()

    def pause(self):
        self.media_player.pause()
        self._poll_timer.stop()

    def seek(self, time: float, completion: Callable[[], None] | None = None):
        if self.media_player.source().isEmpty():
            if completion:
                completion()
            return

        target = self.clamp_time(time)
        position_ms = int(round(target * 1000))
        self.media_player.setPosition(position_ms)
        self.current_time = target

        # setPosition is asynchronous; complete on the next event loop turn
        def finish():
            if completion:
                completion()
        QTimer.singleShot(0, finish)

    def cleanup(self):
        self._poll_timer.stop()
        self.media_player.stop()
        self.media_player.setSource(QUrl())
        self.current_time = 0.0
        self.duration = 0.0
        self._emit_playing(False)

    def _on_poll(self):
        self._emit_position(self.media_player.position() / 1000.0)

    def _on_duration_changed(self, duration_ms: int):
        self.duration = duration_ms / 1000.0

    def _on_state_changed(self, state):
        is_playing = state == QMediaPlayer.PlaybackState.PlayingState
        if not is_playing:
            self._poll_timer.stop()
            # Report where playback stopped
            self._emit_position(self.media_player.position() / 1000.0)
        self._emit_playing(is_playing)

    def _on_media_status_changed(self, status):
        if status == QMediaPlayer.MediaStatus.EndOfMedia:
            get_logger().debug("Player reached end of media")
        elif status == QMediaPlayer.MediaStatus.InvalidMedia:
            self._on_error(QMediaPlayer.Error.FormatError, "Invalid media")

    def _on_error(self, error, error_string: str = ""):
        if error == QMediaPlayer.Error.NoError:
            return
        self.load_error = error_string or self.media_player.errorString() or "Playback error"
        get_logger().error(f"Player error: {self.load_error}")
        self.error_occurred.emit(self.load_error)
