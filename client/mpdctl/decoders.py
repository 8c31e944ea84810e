"""Typed decoders: daemon replies to domain records.

Every decoder accepts either a key -> value mapping or an iterable of
(key, value) pairs (a pair stream, or one record from split_records()).

Field rules shared by all decoders:

  - a required field that is absent raises ProtocolError(NO_FIELD);
  - booleans are true only for the exact value "1";
  - a malformed number in a field raises ParseError naming that field;
  - best-effort telemetry fields (bitrate, crossfade, audio, updating_db)
    become None when absent or malformed.
"""

import datetime
import math
from typing import (
    Callable, Iterable, List, Mapping, Optional, Tuple, TypeVar, Union,
)

from .errors import (
    ParseError, ParseErrorKind, ProtocolError, ProtocolErrorKind,
)
from .records import (
    AudioFormat, Message, Mount, Neighbor, Output, Playlist, Plugin,
    QueuePlace, Range, ReplayGain, Song, State, Stats, Status, Sticker,
)

Pairs = Union[Mapping[str, str], Iterable[Tuple[str, str]]]
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _items(pairs: Pairs) -> List[Tuple[str, str]]:
    if isinstance(pairs, Mapping):
        return list(pairs.items())
    return list(pairs)


def _require(record: Mapping[str, str], name: str) -> str:
    try:
        return record[name]
    except KeyError:
        raise ProtocolError(ProtocolErrorKind.NO_FIELD, name)


def _is_integer(text: str) -> bool:
    """True for an optional minus sign followed by ASCII digits only."""
    digits = text[1:] if text.startswith("-") else text
    return digits.isascii() and digits.isdigit()


def parse_int(value: str, name: Optional[str] = None) -> int:
    if not _is_integer(value):
        raise ParseError(ParseErrorKind.BAD_INTEGER, value, name)
    return int(value)


def parse_float(value: str, name: Optional[str] = None) -> float:
    try:
        result = float(value)
    except ValueError:
        raise ParseError(ParseErrorKind.BAD_FLOAT, value, name)
    if math.isnan(result) or math.isinf(result):
        raise ParseError(ParseErrorKind.BAD_FLOAT, value, name)
    return result


def parse_bool(value: str) -> bool:
    return value == "1"


def parse_seconds(value: str, name: Optional[str] = None) -> datetime.timedelta:
    """Parse a (possibly fractional) number of seconds."""
    seconds = parse_float(value, name)
    try:
        return datetime.timedelta(seconds=seconds)
    except OverflowError:
        raise ParseError(ParseErrorKind.BAD_FLOAT, value, name)


def parse_whole_seconds(value: str,
                        name: Optional[str] = None) -> datetime.timedelta:
    seconds = parse_int(value, name)
    try:
        return datetime.timedelta(seconds=seconds)
    except OverflowError:
        raise ParseError(ParseErrorKind.BAD_INTEGER, value, name)


def parse_timestamp(value: str,
                    name: Optional[str] = None) -> datetime.datetime:
    """Parse a Unix timestamp into an aware UTC datetime."""
    seconds = parse_int(value, name)
    try:
        return datetime.datetime.fromtimestamp(
            seconds, tz=datetime.timezone.utc)
    except (OverflowError, ValueError, OSError):
        raise ParseError(ParseErrorKind.BAD_INTEGER, value, name)


def _optional(record: Mapping[str, str], name: str,
              convert: Callable[[str, str], T]) -> Optional[T]:
    value = record.get(name)
    if value is None:
        return None
    return convert(value, name)


def _best_effort(record: Mapping[str, str], name: str,
                 convert: Callable[[str, str], T]) -> Optional[T]:
    value = record.get(name)
    if value is None:
        return None
    try:
        return convert(value, name)
    except ParseError:
        return None


def parse_audio_format(value: str) -> AudioFormat:
    """Parse "<rate>:<bits>:<chans>".  Every component is required."""
    parts = value.split(":")
    components = (
        (ParseErrorKind.NO_RATE, ParseErrorKind.BAD_RATE),
        (ParseErrorKind.NO_BITS, ParseErrorKind.BAD_BITS),
        (ParseErrorKind.NO_CHANS, ParseErrorKind.BAD_CHANS),
    )
    numbers = []  # type: List[int]
    for i, (missing, bad) in enumerate(components):
        if i >= len(parts) or not parts[i]:
            raise ParseError(missing, value, "audio")
        if not _is_integer(parts[i]):
            raise ParseError(bad, parts[i], "audio")
        numbers.append(int(parts[i]))
    if len(parts) > 3:
        raise ParseError(ParseErrorKind.BAD_VALUE, value, "audio")
    return AudioFormat(numbers[0], numbers[1], numbers[2])


def parse_range(value: str) -> Range:
    """Parse "<start>-<end>" where either side may be empty."""
    start, sep, end = value.partition("-")
    if not sep:
        raise ParseError(ParseErrorKind.BAD_VALUE, value, "Range")
    return Range(
        parse_seconds(start, "Range") if start else datetime.timedelta(0),
        parse_seconds(end, "Range") if end else None,
    )


def parse_time(value: str, name: str = "time") -> Tuple[
        datetime.timedelta, datetime.timedelta]:
    """Parse the "<elapsed>:<total>" form of the status time field."""
    elapsed, sep, total = value.partition(":")
    if not sep:
        raise ParseError(ParseErrorKind.BAD_VALUE, value, name)
    return (parse_seconds(elapsed, name), parse_seconds(total, name))


def _place(record: Mapping[str, str], pos_key: str,
           id_key: str) -> Optional[QueuePlace]:
    if pos_key not in record or id_key not in record:
        return None
    return QueuePlace(
        id=parse_int(record[id_key], id_key),
        pos=parse_int(record[pos_key], pos_key),
    )


# ---------------------------------------------------------------------------
# Status and stats (closed records)
# ---------------------------------------------------------------------------

_STATUS_FIELDS = frozenset([
    "volume", "repeat", "random", "single", "consume", "partition",
    "playlist", "playlistlength", "state", "song", "songid", "nextsong",
    "nextsongid", "time", "elapsed", "duration", "bitrate", "xfade",
    "mixrampdb", "mixrampdelay", "audio", "updating_db", "error",
    "lastloadedplaylist",
])

_STATS_FIELDS = frozenset([
    "artists", "albums", "songs", "uptime", "playtime", "db_playtime",
    "db_update",
])


def _check_closed(items: List[Tuple[str, str]], known: frozenset) -> None:
    for key, _value in items:
        if key not in known:
            raise ParseError(ParseErrorKind.UNKNOWN_FIELD, key)


def _mixramp_delay(value: str, name: str) -> Optional[datetime.timedelta]:
    # Older daemons report a disabled delay as "nan"
    if value == "nan":
        return None
    return parse_seconds(value, name)


def decode_status(pairs: Pairs) -> Status:
    """Decode the reply of the status command."""
    items = _items(pairs)
    _check_closed(items, _STATUS_FIELDS)
    record = dict(items)

    state_value = _require(record, "state")
    try:
        state = State(state_value)
    except ValueError:
        raise ParseError(ParseErrorKind.BAD_STATE, state_value, "state")

    return Status(
        volume=parse_int(_require(record, "volume"), "volume"),
        repeat=parse_bool(_require(record, "repeat")),
        random=parse_bool(_require(record, "random")),
        single=parse_bool(_require(record, "single")),
        consume=parse_bool(_require(record, "consume")),
        queue_version=parse_int(_require(record, "playlist"), "playlist"),
        queue_len=parse_int(
            _require(record, "playlistlength"), "playlistlength"),
        state=state,
        song=_place(record, "song", "songid"),
        nextsong=_place(record, "nextsong", "nextsongid"),
        time=_optional(record, "time", parse_time),
        elapsed=_optional(record, "elapsed", parse_seconds),
        duration=_optional(record, "duration", parse_seconds),
        bitrate=_best_effort(record, "bitrate", parse_int),
        crossfade=_best_effort(record, "xfade", parse_seconds),
        mixrampdb=_optional(record, "mixrampdb", parse_float),
        mixrampdelay=_optional(record, "mixrampdelay", _mixramp_delay),
        audio=_best_effort(
            record, "audio", lambda v, _name: parse_audio_format(v)),
        updating_db=_best_effort(record, "updating_db", parse_int),
        error=record.get("error"),
        partition=record.get("partition"),
        lastloadedplaylist=record.get("lastloadedplaylist"),
    )


def decode_stats(pairs: Pairs) -> Stats:
    """Decode the reply of the stats command."""
    items = _items(pairs)
    _check_closed(items, _STATS_FIELDS)
    record = dict(items)

    def count(name):
        # type: (str) -> int
        return parse_int(_require(record, name), name)

    def seconds(name):
        # type: (str) -> datetime.timedelta
        return parse_whole_seconds(_require(record, name), name)

    return Stats(
        artists=count("artists"),
        albums=count("albums"),
        songs=count("songs"),
        uptime=seconds("uptime"),
        playtime=seconds("playtime"),
        db_playtime=seconds("db_playtime"),
        db_update=parse_timestamp(_require(record, "db_update"), "db_update"),
    )


# ---------------------------------------------------------------------------
# Songs (open records)
# ---------------------------------------------------------------------------

def decode_song(pairs: Pairs) -> Song:
    """Decode one song.

    Fields without a dedicated attribute are kept in Song.tags, repeated
    tags included.  The queue place is set only for a positive Id; a
    missing Pos or Prio counts as 0.
    """
    file = None  # type: Optional[str]
    fields = {}  # type: dict
    tags = []  # type: List[Tuple[str, str]]
    song_id = pos = prio = None  # type: Optional[int]
    duration = time = None  # type: Optional[datetime.timedelta]

    for key, value in _items(pairs):
        if key == "file":
            file = value
        elif key == "Title":
            fields["title"] = value
        elif key == "Name":
            fields["name"] = value
        elif key == "Artist":
            fields["artist"] = value
        elif key == "Last-Modified":
            fields["last_mod"] = value
        elif key == "duration":
            duration = parse_seconds(value, key)
        elif key == "Time":
            time = parse_whole_seconds(value, key)
        elif key == "Range":
            fields["range"] = parse_range(value)
        elif key == "Id":
            song_id = parse_int(value, key)
        elif key == "Pos":
            pos = parse_int(value, key)
        elif key == "Prio":
            prio = parse_int(value, key)
        else:
            tags.append((key, value))

    if file is None:
        raise ProtocolError(ProtocolErrorKind.NO_FIELD, "file")

    place = None
    if song_id is not None and song_id > 0:
        place = QueuePlace(song_id, pos or 0, prio or 0)

    return Song(
        file=file,
        duration=duration if duration is not None else time,
        place=place,
        tags=tuple(tags),
        **fields
    )


def decode_current_song(pairs: Pairs) -> Optional[Song]:
    """Decode the reply of currentsong; an empty reply means no song."""
    items = _items(pairs)
    if not items:
        return None
    return decode_song(items)


# ---------------------------------------------------------------------------
# Outputs, playlists, storage
# ---------------------------------------------------------------------------

def decode_output(pairs: Pairs) -> Output:
    """Decode one audio output (records split on "outputid")."""
    attributes = []  # type: List[Tuple[str, str]]
    record = {}  # type: dict
    for key, value in _items(pairs):
        if key == "attribute":
            name, sep, attr_value = value.partition("=")
            if not sep:
                raise ProtocolError(ProtocolErrorKind.NOT_PAIR, value)
            attributes.append((name, attr_value))
        else:
            record[key] = value

    return Output(
        id=parse_int(record.get("outputid", "0"), "outputid"),
        name=_require(record, "outputname"),
        plugin=_require(record, "plugin"),
        enabled=parse_bool(record.get("outputenabled", "0")),
        attributes=tuple(attributes),
    )


def decode_playlist(pairs: Pairs) -> Playlist:
    """Decode one stored playlist (records split on "playlist")."""
    record = dict(pairs)
    return Playlist(
        name=_require(record, "playlist"),
        last_mod=_require(record, "Last-Modified"),
    )


def decode_mount(pairs: Pairs) -> Mount:
    record = dict(pairs)
    return Mount(
        name=_require(record, "mount"),
        storage=_require(record, "storage"),
    )


def decode_neighbor(pairs: Pairs) -> Neighbor:
    record = dict(pairs)
    return Neighbor(
        storage=_require(record, "neighbor"),
        name=_require(record, "name"),
    )


# ---------------------------------------------------------------------------
# Plugins, messages, stickers, replay gain
# ---------------------------------------------------------------------------

def decode_plugins(pairs: Pairs) -> List[Plugin]:
    """Decode the reply of the decoders command.

    Each "plugin" pair starts a new plugin; the "suffix" and "mime_type"
    pairs that follow belong to it.
    """
    collected = []  # type: List[Tuple[str, List[str], List[str]]]
    for key, value in _items(pairs):
        if key == "plugin":
            collected.append((value, [], []))
        elif key in ("suffix", "mime_type"):
            if not collected:
                raise ProtocolError(ProtocolErrorKind.NO_FIELD, "plugin")
            _name, suffixes, mime_types = collected[-1]
            if key == "suffix":
                suffixes.append(value)
            else:
                mime_types.append(value)
    return [Plugin(name, tuple(suffixes), tuple(mime_types))
            for name, suffixes, mime_types in collected]


def decode_message(pairs: Pairs) -> Message:
    """Decode one message (records split on "channel")."""
    record = dict(pairs)
    return Message(
        channel=_require(record, "channel"),
        message=_require(record, "message"),
    )


def decode_sticker(value: str) -> Sticker:
    """Decode a "name=value" sticker value, split at the first "="."""
    name, sep, sticker_value = value.partition("=")
    if not sep:
        raise ParseError(ParseErrorKind.BAD_VALUE, value, "sticker")
    return Sticker(name, sticker_value)


def decode_replay_gain(pairs: Pairs) -> ReplayGain:
    """Decode the reply of replay_gain_status."""
    value = _require(dict(pairs), "replay_gain_mode")
    try:
        return ReplayGain(value)
    except ValueError:
        raise ParseError(ParseErrorKind.BAD_VALUE, value, "replay_gain_mode")
