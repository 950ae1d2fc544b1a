"""Player collaborator interface."""
from pathlib import Path
from typing import Callable

from .logger import get_logger


class Player:
    """
    Playback capability consumed by the trim session.

    Subclasses implement the media methods and call _emit_position and
    _emit_playing when the backend reports a new position or play state.
    Observer callbacks are invoked on the thread that emits them, which
    must be the UI thread.
    """

    def __init__(self):
        self._position_observers: dict[int, Callable[[float], None]] = {}
        self._playing_observers: list[Callable[[bool], None]] = []
        self._next_token = 0
        self.current_time: float = 0.0
        self.duration: float = 0.0
        self.is_playing: bool = False
        self.load_error: str | None = None

    # Media control

    def load(self, path: Path):
        raise NotImplementedError

    def play(self):
        raise NotImplementedError

    def pause(self):
        raise NotImplementedError

    def seek(self, time: float, completion: Callable[[], None] | None = None):
        """Seek to time; completion runs once the player landed there."""
        raise NotImplementedError

    def cleanup(self):
        """Stop playback and release the loaded media."""
        raise NotImplementedError

    def toggle_play(self):
        if self.is_playing:
            self.pause()
        else:
            self.play()

    def skip(self, interval: float):
        self.seek(self.clamp_time(self.current_time + interval))

    def clamp_time(self, time: float) -> float:
        # Duration is 0 until the backend has parsed the media
        if self.duration <= 0:
            return max(0.0, time)
        return max(0.0, min(time, self.duration))

    # Observers

    def add_position_observer(self, callback: Callable[[float], None]) -> int:
        """Register a position report callback, returns a removal token."""
        self._next_token += 1
        self._position_observers[self._next_token] = callback
        return self._next_token

    def remove_position_observer(self, token: int | None):
        if token is not None:
            self._position_observers.pop(token, None)

    def add_playing_observer(self, callback: Callable[[bool], None]):
        self._playing_observers.append(callback)

    def remove_playing_observer(self, callback: Callable[[bool], None]):
        if callback in self._playing_observers:
            self._playing_observers.remove(callback)

    def _emit_position(self, position: float):
        self.current_time = position
        # Observers may remove themselves while being notified
        for callback in list(self._position_observers.values()):
            callback(position)

    def _emit_playing(self, is_playing: bool):
        if is_playing == self.is_playing:
            return
        self.is_playing = is_playing
        get_logger().debug(f"Player {'playing' if is_playing else 'paused'}")
        for callback in list(self._playing_observers):
            callback(is_playing)
