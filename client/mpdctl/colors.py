"""ANSI terminal color support for mpdctl output."""

import os
import sys


def _supports_color():
    """Detect whether the terminal supports ANSI color."""
    if os.environ.get("NO_COLOR"):
        return False
    setting = os.environ.get("MPDCTL_COLOR", "").lower()
    if setting == "never":
        return False
    if setting == "always":
        return True
    if not hasattr(sys.stdout, "isatty"):
        return False
    if not sys.stdout.isatty():
        return False
    if sys.platform == "win32":
        # Only Windows Terminal is known to handle the escapes
        return bool(os.environ.get("WT_SESSION"))
    return True


# ANSI escape sequences
RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
CYAN = "\033[36m"


class ColorWriter:
    """Colorize text, falling back to plain text if unsupported.

    Usage:
        cw = ColorWriter()
        cw.error("Something failed")     # red
        cw.success("play")               # green
        cw.key("volume")                 # cyan
        cw.bold("Title")                 # bold
    """

    def __init__(self, force_color=None):
        if force_color is not None:
            self.enabled = force_color
        else:
            self.enabled = _supports_color()

    def _wrap(self, code, text):
        if self.enabled:
            return "{}{}{}".format(code, text, RESET)
        return text

    def error(self, text):
        return self._wrap(RED, text)

    def success(self, text):
        return self._wrap(GREEN, text)

    def warning(self, text):
        return self._wrap(YELLOW, text)

    def key(self, text):
        return self._wrap(CYAN, text)

    def bold(self, text):
        return self._wrap(BOLD, text)

    def dim(self, text):
        return self._wrap(DIM, text)


def format_pair(key, value, cw):
    """Format one "key: value" output line."""
    return "{}: {}".format(cw.key(key), value)


def format_state(state, cw):
    """Color a player State: green playing, yellow paused, dim stopped."""
    if state.value == "play":
        return cw.success(state.value)
    if state.value == "pause":
        return cw.warning(state.value)
    return cw.dim(state.value)


def format_duration(delta):
    """Render a timedelta as m:ss (or h:mm:ss)."""
    if delta is None:
        return "-"
    total = int(delta.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return "{}:{:02d}:{:02d}".format(hours, minutes, seconds)
    return "{}:{:02d}".format(minutes, seconds)


def format_song(song, cw):
    """One-line summary of a Song: "[pos] Artist - Title (m:ss)".

    Falls back to the file name when the song has no title.
    """
    if song.title:
        label = cw.bold(song.title)
        if song.artist:
            label = "{} - {}".format(song.artist, label)
    else:
        label = song.file
    if song.place is not None:
        label = "{} {}".format(cw.dim("{:>3d}".format(song.place.pos)), label)
    if song.duration is not None:
        label = "{} ({})".format(label, format_duration(song.duration))
    return label
