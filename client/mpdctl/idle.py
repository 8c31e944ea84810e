"""Change notifications via the idle command.

The daemon answers idle only when one of the requested subsystems
changes, with one "changed: <subsystem>" pair per change followed by OK.
Writing "noidle" on the same connection ends the wait early; the daemon
then replies with whatever it has collected (often nothing).
"""

import enum
import logging
import threading
from typing import FrozenSet, Iterable, Optional, Set

from .errors import (
    ParseError, ParseErrorKind, ProtocolError, ProtocolErrorKind,
)
from .protocol import LineSource, iter_pairs

logger = logging.getLogger(__name__)


class Subsystem(enum.Enum):
    """Daemon subsystems reported by idle.

    The value is the wire name.  Two members are named after what they
    describe rather than their wire names: PLAYLIST is a stored playlist
    ("stored_playlist") and QUEUE is the play queue ("playlist").
    """

    DATABASE = "database"
    UPDATE = "update"
    PLAYLIST = "stored_playlist"
    QUEUE = "playlist"
    PLAYER = "player"
    MIXER = "mixer"
    OUTPUT = "output"
    OPTIONS = "options"
    STICKER = "sticker"
    SUBSCRIPTION = "subscription"
    MESSAGE = "message"

    @classmethod
    def from_wire(cls, name: str) -> "Subsystem":
        try:
            return cls(name)
        except ValueError:
            raise ParseError(ParseErrorKind.BAD_VALUE, name, "changed")

    def __str__(self) -> str:
        return self.value


class IdleState(enum.Enum):
    IDLE = "idle"
    NOTIFIED = "notified"
    CANCELLED = "cancelled"
    FAILED = "failed"


def idle_command(subsystems: Iterable[Subsystem]) -> str:
    """Build the idle command line for subsystems (all when empty)."""
    names = [s.value for s in subsystems]
    if not names:
        return "idle"
    return "idle " + " ".join(names)


class IdleWait:
    """One outstanding idle command.

    Created after "idle" has been written.  get() blocks the calling
    thread until the daemon answers; cancel() may be called from any
    other thread to make it answer now.

    Attributes:
        subsystems: The subsystems the wait was issued for (empty: all).
    """

    def __init__(self, source: LineSource,
                 subsystems: Iterable[Subsystem] = (),
                 on_done=None) -> None:
        self.subsystems = frozenset(subsystems)
        self._source = source
        self._on_done = on_done
        self._lock = threading.Lock()
        self._state = IdleState.IDLE
        self._result = None  # type: Optional[FrozenSet[Subsystem]]

    def __repr__(self) -> str:
        return "IdleWait({})".format(self._state.value)

    @property
    def state(self) -> IdleState:
        return self._state

    def get(self) -> FrozenSet[Subsystem]:
        """Block until the daemon reports changes and return them.

        A cancelled wait returns whatever the daemon reported, possibly
        an empty set.  Calling get() again returns the same result.
        Raises ServerError on ACK and TransportError/ParseError/
        ProtocolError on a broken reply; the wait is then FAILED.
        """
        if self._result is not None:
            return self._result
        if self._state is IdleState.FAILED:
            raise ProtocolError(ProtocolErrorKind.NOT_OK, "idle failed")

        changed = set()  # type: Set[Subsystem]
        try:
            for key, value in iter_pairs(self._source):
                if key != "changed":
                    raise ProtocolError(ProtocolErrorKind.NO_FIELD, "changed")
                changed.add(Subsystem.from_wire(value))
        except Exception:
            with self._lock:
                self._state = IdleState.FAILED
            self._finish()
            raise

        with self._lock:
            self._state = IdleState.NOTIFIED
            self._result = frozenset(changed)
        logger.debug("idle returned: %s",
                     ", ".join(sorted(s.value for s in changed)) or "-")
        self._finish()
        return self._result

    def cancel(self) -> None:
        """Ask the daemon to end the wait now by sending noidle.

        Does nothing unless the wait is still pending, so a late cancel
        never writes a stray noidle into the next command's reply.
        """
        with self._lock:
            if self._state is not IdleState.IDLE:
                return
            self._state = IdleState.CANCELLED
        logger.debug("cancelling idle")
        self._source.send_command("noidle")

    def _finish(self) -> None:
        if self._on_done is not None:
            callback, self._on_done = self._on_done, None
            callback(self)
