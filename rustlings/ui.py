"""Terminal output helpers: coloured messages, spinners and progress bars."""

from __future__ import annotations

import itertools
import os
import sys
import threading

_RESET = "\x1b[0m"
_BOLD = "1"
_RED = "31"
_GREEN = "32"

_SPINNER_FRAMES = "⠁⠂⠄⡀⢀⠠⠐⠈"
_TICK_SECONDS = 0.1
_BAR_WIDTH = 60


def _no_emoji() -> bool:
    return "NO_EMOJI" in os.environ


def _colors_enabled() -> bool:
    forced = os.environ.get("CLICOLOR_FORCE")
    if forced is not None and forced != "0":
        return True
    if "NO_COLOR" in os.environ:
        return False
    return sys.stdout.isatty()


def _paint(text: str, *codes: str) -> str:
    if not codes or not _colors_enabled():
        return text
    return f"\x1b[{';'.join(codes)}m{text}{_RESET}"


def warn(message: str) -> None:
    """Print a warning line in red, prefixed by a warning sign."""
    mark = "!" if _no_emoji() else "⚠️ "
    print(f"{_paint(mark, _RED)} {_paint(message, _RED)}")


def success(message: str) -> None:
    """Print a success line in green, prefixed by a check mark."""
    mark = "✓" if _no_emoji() else "✅"
    print(f"{_paint(mark, _GREEN)} {_paint(message, _GREEN)}")


def bold(text: object) -> str:
    """Return ``text`` rendered in bold when colours are enabled."""
    return _paint(str(text), _BOLD)


def separator() -> str:
    """Return the bold separator line used around outputs and hints."""
    return bold("====================")


class Spinner:
    """A spinner with a message, animated on stderr when it is a terminal."""

    def __init__(self, message: str) -> None:
        self.message = message
        self.finished = False
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        if sys.stderr.isatty():
            self._thread = threading.Thread(target=self._spin, daemon=True)
            self._thread.start()

    def _spin(self) -> None:
        for frame in itertools.cycle(_SPINNER_FRAMES):
            with self._lock:
                if self._stop.is_set():
                    return
                sys.stderr.write(f"\r{frame} {self.message}\x1b[K")
                sys.stderr.flush()
            if self._stop.wait(_TICK_SECONDS):
                return

    def set_message(self, message: str) -> None:
        """Replace the message shown next to the spinner."""
        with self._lock:
            self.message = message

    def finish_and_clear(self) -> None:
        """Stop the animation and erase the spinner line."""
        if self.finished:
            return
        self.finished = True
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            with self._lock:
                sys.stderr.write("\r\x1b[2K")
                sys.stderr.flush()


class ProgressBar:
    """A fixed-width progress bar with a percentage message."""

    def __init__(self, total: int, position: int = 0) -> None:
        self.total = total
        self.position = position
        self._draw()

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return float("nan")
        return self.position / self.total * 100.0

    def inc(self) -> None:
        """Advance the bar by one step."""
        self.position += 1
        self._draw()

    def render(self) -> str:
        """Return the bar as one line of text."""
        fraction = 0.0 if self.total == 0 else min(self.position / self.total, 1.0)
        filled = int(fraction * _BAR_WIDTH)
        head = 1 if 0 < fraction and filled < _BAR_WIDTH else 0
        rest = _BAR_WIDTH - filled - head
        bar = _paint("#" * filled + ">" * head, _GREEN) + _paint("-" * rest, _RED)
        return (
            f"Progress: [{bar}] {self.position}/{self.total} "
            f"({self.percentage:.1f} %)"
        )

    def _draw(self) -> None:
        if sys.stderr.isatty():
            sys.stderr.write(f"\r{self.render()}\x1b[K")
            sys.stderr.flush()