"""Command line formatting.

Arguments are rendered the way the daemon's tokenizer expects them:
booleans as 1/0, numbers bare, ranges and queue targets in their
"start:end" forms, everything else double-quoted with backslash escapes.
"""

import enum
from typing import NamedTuple, Optional, Union

from .records import Range


def quote(arg: str) -> str:
    """Double-quote arg, escaping backslashes and double quotes."""
    return '"{}"'.format(arg.replace("\\", "\\\\").replace('"', '\\"'))


class Position(NamedTuple):
    """A queue entry addressed by its position."""

    pos: int

    def to_argument(self) -> str:
        return str(self.pos)


class SongId(NamedTuple):
    """A queue entry addressed by its song id."""

    id: int

    def to_argument(self) -> str:
        return str(self.id)


class QueueSlice(NamedTuple):
    """A run of queue positions, start inclusive, end exclusive.

    end=None extends to the end of the queue.
    """

    start: int
    end: Optional[int] = None

    def to_argument(self) -> str:
        if self.end is None:
            return "{}:".format(self.start)
        return "{}:{}".format(self.start, self.end)


QueueTarget = Union[Position, SongId, QueueSlice]

# Commands that have an "...id" form addressing songs by id
_ID_VARIANTS = {
    "play": "playid",
    "delete": "deleteid",
    "move": "moveid",
    "seek": "seekid",
    "prio": "prioid",
    "playlistinfo": "playlistid",
    "swap": "swapid",
}


def resolve_target(verb: str, target: QueueTarget) -> str:
    """Return the command name to use for verb applied to target.

    SongId targets select the id form of the command; raises ValueError
    if verb has none.
    """
    if isinstance(target, SongId):
        try:
            return _ID_VARIANTS[verb]
        except KeyError:
            raise ValueError(
                "{} cannot address songs by id".format(verb))
    return verb


def format_argument(arg) -> str:
    if isinstance(arg, bool):
        return "1" if arg else "0"
    if isinstance(arg, (int, float)):
        return str(arg)
    if isinstance(arg, (Range, Position, SongId, QueueSlice)):
        return arg.to_argument()
    if isinstance(arg, enum.Enum):
        return quote(str(arg.value))
    return quote(str(arg))


def format_command(name: str, *args) -> str:
    """Build a command line: name followed by formatted arguments.

    None arguments are skipped, so optional trailing arguments can be
    passed through unconditionally.
    """
    parts = [name]
    parts.extend(format_argument(a) for a in args if a is not None)
    return " ".join(parts)
