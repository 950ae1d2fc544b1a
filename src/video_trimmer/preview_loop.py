"""Loop playback inside the trim range while previewing."""
from .config import REWIND_BUFFER
from .logger import get_logger
from .player import Player


class PreviewLoopController:
    """
    Keeps playback confined to [start, end].

    Bounds are captured when the loop starts; when the range changes the
    owner must call start() again so no report is judged against stale bounds.
    """

    def __init__(self, player: Player, rewind_buffer: float = REWIND_BUFFER):
        self.player = player
        self.rewind_buffer = rewind_buffer
        self._token: int | None = None
        self._start = 0.0
        self._end = 0.0
        self._seeking = False

    @property
    def active(self) -> bool:
        return self._token is not None

    @property
    def bounds(self) -> tuple[float, float] | None:
        if not self.active:
            return None
        return self._start, self._end

    @property
    def loop_target(self) -> float:
        return self._start + self.rewind_buffer

    def start(self, start: float, end: float):
        """Install the loop for [start, end], replacing any previous one."""
        self.stop()
        self._start = start
        self._end = end
        self._token = self.player.add_position_observer(self.on_position)
        get_logger().debug(f"Preview loop installed for [{start:.3f}, {end:.3f}]")

    def stop(self):
        if self._token is not None:
            self.player.remove_position_observer(self._token)
            self._token = None
            get_logger().debug("Preview loop removed")
        self._seeking = False

    def on_position(self, position: float) -> bool:
        """
        Handle one position report.

        Returns:
            True if a loop seek was issued
        """
        if not self.active or self._seeking:
            return False

        if position >= self._end or position < self._start:
            self._seeking = True
            token = self._token
            self.player.seek(self.loop_target, lambda: self._on_seek_done(token))
            return True

        return False

    def _on_seek_done(self, token: int | None):
        # Ignore completions from a loop that was stopped or rebuilt
        if token != self._token:
            return
        self._seeking = False
        self.player.play()
