"""Domain records decoded from daemon replies.

All records are immutable and created fresh per call.
"""

import datetime
import enum
import re
from dataclasses import dataclass
from typing import Optional, Tuple


class State(enum.Enum):
    """Player state as reported by the status command."""

    STOP = "stop"
    PLAY = "play"
    PAUSE = "pause"


class ReplayGain(enum.Enum):
    OFF = "off"
    TRACK = "track"
    ALBUM = "album"
    AUTO = "auto"


@dataclass(frozen=True)
class AudioFormat:
    """Output audio format: sample rate, bits per sample, channels."""

    rate: int
    bits: int
    chans: int

    def __str__(self) -> str:
        return "{}:{}:{}".format(self.rate, self.bits, self.chans)


@dataclass(frozen=True)
class QueuePlace:
    """Where a song sits in the play queue."""

    id: int
    pos: int
    prio: int = 0


@dataclass(frozen=True)
class Range:
    """Playback range within a song.  end is None for an open range."""

    start: datetime.timedelta = datetime.timedelta(0)
    end: Optional[datetime.timedelta] = None

    def to_argument(self) -> str:
        """Render as the daemon's "start:end" argument form."""
        start = _seconds(self.start)
        if self.end is None:
            return "{}:".format(start)
        return "{}:{}".format(start, _seconds(self.end))


def _seconds(delta: datetime.timedelta) -> str:
    secs = delta.total_seconds()
    if secs == int(secs):
        return str(int(secs))
    return "{:.3f}".format(secs)


@dataclass(frozen=True)
class Status:
    volume: int
    repeat: bool
    random: bool
    single: bool
    consume: bool
    queue_version: int
    queue_len: int
    state: State
    song: Optional[QueuePlace] = None
    nextsong: Optional[QueuePlace] = None
    time: Optional[Tuple[datetime.timedelta, datetime.timedelta]] = None
    elapsed: Optional[datetime.timedelta] = None
    duration: Optional[datetime.timedelta] = None
    bitrate: Optional[int] = None
    crossfade: Optional[datetime.timedelta] = None
    mixrampdb: Optional[float] = None
    mixrampdelay: Optional[datetime.timedelta] = None
    audio: Optional[AudioFormat] = None
    updating_db: Optional[int] = None
    error: Optional[str] = None
    partition: Optional[str] = None
    lastloadedplaylist: Optional[str] = None


@dataclass(frozen=True)
class Stats:
    """Database and daemon statistics."""

    artists: int
    albums: int
    songs: int
    uptime: datetime.timedelta
    playtime: datetime.timedelta
    db_playtime: datetime.timedelta
    db_update: datetime.datetime


@dataclass(frozen=True)
class Song:
    """A song, from the queue, a stored playlist or the database.

    tags holds every field without a dedicated attribute, in reply order.
    """

    file: str
    name: Optional[str] = None
    title: Optional[str] = None
    artist: Optional[str] = None
    last_mod: Optional[str] = None
    duration: Optional[datetime.timedelta] = None
    place: Optional[QueuePlace] = None
    range: Optional[Range] = None
    tags: Tuple[Tuple[str, str], ...] = ()

    def tag(self, name: str) -> Optional[str]:
        """Return the first value of tag name, or None."""
        for key, value in self.tags:
            if key == name:
                return value
        return None


@dataclass(frozen=True)
class Output:
    """An audio output."""

    id: int
    name: str
    plugin: str
    enabled: bool
    attributes: Tuple[Tuple[str, str], ...] = ()


@dataclass(frozen=True)
class Playlist:
    """A stored playlist."""

    name: str
    last_mod: str


@dataclass(frozen=True)
class Mount:
    name: str
    storage: str


@dataclass(frozen=True)
class Neighbor:
    """A storage found on the network by a neighbor plugin."""

    storage: str
    name: str


@dataclass(frozen=True)
class Plugin:
    """A decoder plugin with the suffixes and MIME types it handles."""

    name: str
    suffixes: Tuple[str, ...] = ()
    mime_types: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Message:
    """A client-to-client message read from a subscribed channel."""

    channel: str
    message: str


_CHANNEL_RE = re.compile(r"[A-Za-z0-9_/.:]+")


class Channel(str):
    """A validated client-to-client channel name."""

    @staticmethod
    def is_valid_name(name: str) -> bool:
        return _CHANNEL_RE.fullmatch(name) is not None

    def __new__(cls, name: str) -> "Channel":
        if not cls.is_valid_name(name):
            raise ValueError("Invalid channel name: {!r}".format(name))
        return super().__new__(cls, name)


@dataclass(frozen=True)
class Sticker:
    """A name/value sticker attached to a database object."""

    name: str
    value: str
