"""Wire protocol helpers for the mpdctl client.

Handles line reading, reply classification, pair streams and record
grouping for the MPD text protocol.  A reply is a run of "key: value"
lines terminated by "OK" (or "list_OK" inside a command list), or by a
single "ACK [code@pos] {command} detail" line when the daemon rejects the
command.  All wire communication uses UTF-8.
"""

import enum
import logging
import socket
from typing import (
    IO, Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional,
    Tuple, TypeVar,
)

from .errors import (
    ParseError, ParseErrorKind, ProtocolError, ProtocolErrorKind,
    ServerError, TransportError, parse_ack,
)
from .version import Version

ENCODING = "utf-8"
BANNER_PREFIX = "OK MPD "

logger = logging.getLogger(__name__)

Pair = Tuple[str, str]
Record = Dict[str, str]
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Line source
# ---------------------------------------------------------------------------

class LineSource:
    """Line-oriented reader/writer over a duplex byte stream.

    rfile and wfile are binary file objects (typically the two halves of
    socket.makefile()).  Reads and writes are independent, so one thread
    may block in read_line() while another calls write().
    """

    def __init__(self, rfile: IO[bytes], wfile: IO[bytes]) -> None:
        self._rfile = rfile
        self._wfile = wfile

    @classmethod
    def from_socket(cls, sock: socket.socket) -> "LineSource":
        return cls(sock.makefile("rb"), sock.makefile("wb"))

    def read_line(self) -> str:
        """Read a single line, stripping the trailing LF (and CR).

        Raises TransportError on EOF, timeout or socket error, and
        ParseError(BAD_ENCODING) if the line is not valid UTF-8.
        """
        try:
            raw = self._rfile.readline()
        except socket.timeout:
            raise TransportError("Timed out waiting for data from server")
        except OSError as e:
            raise TransportError("Socket error: {}".format(e)) from e

        if not raw:
            raise TransportError("Connection closed by server")
        if not raw.endswith(b"\n"):
            raise TransportError(
                "Connection closed mid-line (partial data: {!r})".format(raw))

        raw = raw[:-1]
        if raw.endswith(b"\r"):
            raw = raw[:-1]
        try:
            return raw.decode(ENCODING)
        except UnicodeDecodeError:
            raise ParseError(ParseErrorKind.BAD_ENCODING, repr(raw))

    def write(self, data: bytes) -> None:
        """Write raw bytes and flush them to the stream."""
        try:
            self._wfile.write(data)
            self._wfile.flush()
        except OSError as e:
            raise TransportError("Socket error: {}".format(e)) from e

    def send_command(self, command: str) -> None:
        """Send a command line.  Appends LF and encodes as UTF-8."""
        if command.startswith("password "):
            logger.debug("-> password ******")
        else:
            logger.debug("-> %s", command)
        self.write((command + "\n").encode(ENCODING))

    def close(self) -> None:
        for f in (self._rfile, self._wfile):
            try:
                f.close()
            except OSError:
                logger.debug("Error closing line source", exc_info=True)


# ---------------------------------------------------------------------------
# Reply classifier
# ---------------------------------------------------------------------------

class ReplyKind(enum.Enum):
    OK = "ok"
    ACK = "ack"
    PAIR = "pair"


class Reply(NamedTuple):
    """One classified reply line.

    For PAIR, key and value are set.  For ACK, error holds the parsed
    ServerError.  OK carries nothing.
    """

    kind: ReplyKind
    key: str = ""
    value: str = ""
    error: Optional[ServerError] = None


def parse_pair(line: str) -> Pair:
    """Split "key: value" at the first colon.

    At most one leading space is removed from the value; anything else is
    kept verbatim.  Raises ParseError(BAD_PAIR) if there is no colon.
    """
    key, sep, value = line.partition(":")
    if not sep:
        raise ParseError(ParseErrorKind.BAD_PAIR, line)
    if value.startswith(" "):
        value = value[1:]
    return (key, value)


def parse_reply(line: str) -> Reply:
    """Classify one raw line as OK, ACK or a key/value pair.

    The ACK grammar is tried before pair splitting, since the detail text
    of an ACK may itself contain a colon.
    """
    if line == "OK" or line == "list_OK":
        return Reply(ReplyKind.OK)
    if line.startswith("ACK ["):
        try:
            return Reply(ReplyKind.ACK, error=parse_ack(line))
        except ParseError:
            # Not a well-formed ACK; treat it like any other line
            pass
    key, value = parse_pair(line)
    return Reply(ReplyKind.PAIR, key, value)


def parse_banner(line: str) -> Version:
    """Parse the "OK MPD x.y.z" greeting sent on connect."""
    if not line.startswith(BANNER_PREFIX):
        raise ProtocolError(ProtocolErrorKind.BAD_BANNER, line)
    return Version.parse(line[len(BANNER_PREFIX):].strip())


# ---------------------------------------------------------------------------
# Pair stream and record grouper
# ---------------------------------------------------------------------------

def iter_pairs(source: LineSource) -> Iterator[Pair]:
    """Yield the (key, value) pairs of one reply.

    Stops after the terminating OK without reading further, so any
    buffered data belongs to the next reply.  An ACK terminator is raised
    as its ServerError on the pull that reaches it.  Single use.
    """
    while True:
        reply = parse_reply(source.read_line())
        if reply.kind is ReplyKind.OK:
            return
        if reply.error is not None:
            raise reply.error
        yield (reply.key, reply.value)


def split_records(pairs: Iterable[Pair],
                  separator: str) -> Iterator[List[Pair]]:
    """Split a pair stream into records, keeping every pair in order.

    Each occurrence of the separator key starts a new record, except the
    first one (the daemon sends the separator as the first field of every
    record).  A trailing non-empty record is flushed at the end; an empty
    stream yields nothing.  Errors from the underlying stream propagate
    immediately; records already yielded stay with the caller.
    """
    record = []  # type: List[Pair]
    for key, value in pairs:
        if key == separator and record:
            yield record
            record = []
        record.append((key, value))
    if record:
        yield record


def group_records(pairs: Iterable[Pair], separator: str) -> Iterator[Record]:
    """Like split_records(), but each record is a key -> value mapping.

    A key repeated inside one record keeps its last value.
    """
    for record in split_records(pairs, separator):
        yield dict(record)


# ---------------------------------------------------------------------------
# Response shape helpers
# ---------------------------------------------------------------------------

def expect_ok(source: LineSource) -> None:
    """Read one line that must be the OK terminator."""
    line = source.read_line()
    reply = parse_reply(line)
    if reply.error is not None:
        raise reply.error
    if reply.kind is not ReplyKind.OK:
        raise ProtocolError(ProtocolErrorKind.NOT_OK, line)


def read_pair(source: LineSource) -> Pair:
    """Read one line that must be a key/value pair."""
    reply = parse_reply(source.read_line())
    if reply.error is not None:
        raise reply.error
    if reply.kind is ReplyKind.OK:
        raise ProtocolError(ProtocolErrorKind.NOT_PAIR)
    return (reply.key, reply.value)


def read_field(source: LineSource, name: str) -> str:
    """Read a reply consisting of exactly one pair named name, then OK.

    On an unexpected key the rest of the reply is discarded before
    ProtocolError(NO_FIELD) is raised, so the connection stays usable.
    """
    key, value = read_pair(source)
    if key != name:
        drain(source)
        raise ProtocolError(ProtocolErrorKind.NO_FIELD, name)
    expect_ok(source)
    return value


def read_list(source: LineSource, key: str) -> List[str]:
    """Collect the values of every pair named key; other keys are skipped."""
    return [v for k, v in iter_pairs(source) if k == key]


def read_records(source: LineSource, separator: str,
                 decoder: Callable[[List[Pair]], T]) -> List[T]:
    """Split a reply by separator and decode every record.

    The decoder receives each record as an ordered list of pairs.  Any
    failure propagates; no partial list is returned.
    """
    return [decoder(r) for r in split_records(iter_pairs(source), separator)]


def drain(source: LineSource) -> None:
    """Discard the rest of a reply up to its terminator."""
    for _pair in iter_pairs(source):
        pass
