"""mpdctl -- Python client library for the Music Player Daemon.

Provides MpdConnection for talking to an MPD server over its text
protocol, typed records for the daemon's replies, and an exception
hierarchy mapping ACK error codes to Python exceptions.

Usage::

    with MpdConnection("localhost") as mpd:
        print(mpd.version)
        print(mpd.status().state)
"""

import logging
import socket
from typing import FrozenSet, List, Optional, Tuple

from .commands import (
    Position, QueueSlice, QueueTarget, SongId, format_command,
    resolve_target,
)
from .decoders import (
    decode_current_song, decode_message, decode_mount, decode_neighbor,
    decode_output, decode_playlist, decode_plugins, decode_replay_gain,
    decode_song, decode_stats, decode_status, decode_sticker, parse_int,
)
from .errors import (
    AlreadyExistsError, ArgumentError, ErrorCode, MpdError, NoExistError,
    NotListError, ParseError, ParseErrorKind, PasswordError,
    PermissionDeniedError, PlayerSyncError, PlaylistLoadError,
    PlaylistMaxError, ProtocolError, ProtocolErrorKind, ServerError,
    SystemFailureError, TransportError, UnknownCommandError,
    UpdateAlreadyError, parse_ack,
)
from .idle import IdleState, IdleWait, Subsystem, idle_command
from .protocol import (
    LineSource, Pair, drain, expect_ok, iter_pairs, parse_banner, read_field,
    read_list, read_pair, read_records, split_records,
)
from .records import (
    AudioFormat, Channel, Message, Mount, Neighbor, Output, Playlist,
    Plugin, QueuePlace, Range, ReplayGain, Song, State, Stats, Status,
    Sticker,
)
from .version import Version


__all__ = [
    "MpdConnection",
    # errors
    "MpdError",
    "TransportError",
    "ParseError",
    "ParseErrorKind",
    "ProtocolError",
    "ProtocolErrorKind",
    "ServerError",
    "ErrorCode",
    "NotListError",
    "ArgumentError",
    "PasswordError",
    "PermissionDeniedError",
    "UnknownCommandError",
    "NoExistError",
    "PlaylistMaxError",
    "SystemFailureError",
    "PlaylistLoadError",
    "UpdateAlreadyError",
    "PlayerSyncError",
    "AlreadyExistsError",
    "parse_ack",
    # records
    "AudioFormat",
    "Channel",
    "Message",
    "Mount",
    "Neighbor",
    "Output",
    "Playlist",
    "Plugin",
    "QueuePlace",
    "Range",
    "ReplayGain",
    "Song",
    "State",
    "Stats",
    "Status",
    "Sticker",
    "Version",
    # idle
    "IdleState",
    "IdleWait",
    "Subsystem",
    # queue targets
    "Position",
    "QueueSlice",
    "SongId",
]

DEFAULT_PORT = 6600

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Connection class
# ---------------------------------------------------------------------------

class MpdConnection:
    """A connection to an MPD server.

    Can be used as a context manager::

        with MpdConnection("localhost") as mpd:
            mpd.play()

    Or managed manually::

        conn = MpdConnection("/run/mpd/socket")
        conn.connect()
        try:
            print(conn.currentsong())
        finally:
            conn.close()

    A host starting with "/" is taken as the path of a Unix socket.  One
    connection serves one command at a time; the only call that may come
    from another thread is IdleWait.cancel().
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = DEFAULT_PORT,
        timeout: Optional[float] = None,
        password: Optional[str] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self.password = password
        self._sock = None  # type: Optional[socket.socket]
        self._source = None  # type: Optional[LineSource]
        self._version = None  # type: Optional[Version]
        self._idle = None  # type: Optional[IdleWait]

    # -- Context manager ---------------------------------------------------

    def __enter__(self) -> "MpdConnection":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        self.close()
        return None

    def __repr__(self) -> str:
        state = "connected" if self._sock is not None else "disconnected"
        if self.host.startswith("/"):
            return "MpdConnection({!r}, {})".format(self.host, state)
        return "MpdConnection({!r}, port={}, {})".format(
            self.host, self.port, state)

    # -- Connection lifecycle ----------------------------------------------

    def connect(self) -> None:
        """Open the connection, read and validate the banner.

        Socket errors from connecting propagate unchanged.  Sends the
        configured password, if any.
        """
        if self.host.startswith("/"):
            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            sock.settimeout(self.timeout)
            try:
                sock.connect(self.host)
            except OSError:
                sock.close()
                raise
        else:
            sock = socket.create_connection(
                (self.host, self.port), timeout=self.timeout)
        self._attach(sock)
        if self.password is not None:
            try:
                self.login(self.password)
            except MpdError:
                self._teardown()
                raise

    def _attach(self, sock: socket.socket) -> None:
        """Bind an open socket and consume the banner."""
        self._sock = sock
        self._source = LineSource.from_socket(sock)
        try:
            self._version = parse_banner(self._source.read_line())
        except MpdError:
            self._teardown()
            raise
        logger.debug("Connected to %r, protocol version %s",
                     self.host, self._version)

    def close(self) -> None:
        """Send close (best-effort) and close the socket."""
        if self._sock is None:
            return
        if self._source is not None and self._idle is None:
            try:
                self._source.send_command("close")
            except MpdError as e:
                logger.debug("Ignoring error on close: %s", e)
        self._teardown()

    def _teardown(self) -> None:
        if self._source is not None:
            self._source.close()
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                logger.debug("Error closing socket", exc_info=True)
        self._sock = None
        self._source = None
        self._idle = None

    @property
    def version(self) -> Optional[Version]:
        """Protocol version from the banner, or None if not connected."""
        return self._version

    # -- Internal helpers --------------------------------------------------

    def _send(self, name: str, *args) -> LineSource:
        """Send a command and return the line source to read its reply."""
        if self._source is None:
            raise ProtocolError(ProtocolErrorKind.NOT_CONNECTED)
        if self._idle is not None:
            raise ProtocolError(ProtocolErrorKind.IDLE_PENDING, name)
        self._source.send_command(format_command(name, *args))
        return self._source

    def _command(self, name: str, *args) -> None:
        """Send a command whose reply is a bare OK."""
        expect_ok(self._send(name, *args))

    def _pairs(self, name: str, *args) -> List[Pair]:
        """Send a command and collect every pair of its reply."""
        return list(iter_pairs(self._send(name, *args)))

    def _songs(self, name: str, *args) -> List[Song]:
        return read_records(self._send(name, *args), "file", decode_song)

    def _idle_done(self, wait: IdleWait) -> None:
        if self._idle is wait:
            self._idle = None

    # -- Commands ----------------------------------------------------------

    def ping(self) -> None:
        self._command("ping")

    def login(self, password: str) -> None:
        """Authenticate.  Raises PasswordError on a wrong password."""
        self._command("password", password)

    # -- Status ------------------------------------------------------------

    def status(self) -> Status:
        return decode_status(self._pairs("status"))

    def stats(self) -> Stats:
        return decode_stats(self._pairs("stats"))

    def currentsong(self) -> Optional[Song]:
        """Return the current song, or None when nothing is queued."""
        return decode_current_song(self._pairs("currentsong"))

    def clearerror(self) -> None:
        self._command("clearerror")

    def replaygain(self) -> ReplayGain:
        return decode_replay_gain(self._pairs("replay_gain_status"))

    def set_replaygain(self, mode: ReplayGain) -> None:
        self._command("replay_gain_mode", mode)

    # -- Playback options --------------------------------------------------

    def consume(self, value: bool) -> None:
        self._command("consume", value)

    def random(self, value: bool) -> None:
        self._command("random", value)

    def repeat(self, value: bool) -> None:
        self._command("repeat", value)

    def single(self, value: bool) -> None:
        self._command("single", value)

    def crossfade(self, seconds: int) -> None:
        self._command("crossfade", seconds)

    def mixrampdb(self, db: float) -> None:
        self._command("mixrampdb", db)

    def mixrampdelay(self, seconds: float) -> None:
        self._command("mixrampdelay", seconds)

    def volume(self, volume: int) -> None:
        """Set the volume (0-100)."""
        self._command("setvol", volume)

    # -- Playback control --------------------------------------------------

    def play(self) -> None:
        self._command("play")

    def play_at(self, target: QueueTarget) -> None:
        """Start playing the queue entry given by Position or SongId."""
        self._command(resolve_target("play", target), target)

    def pause(self, value: bool = True) -> None:
        self._command("pause", value)

    def toggle_pause(self) -> None:
        self._command("pause")

    def stop(self) -> None:
        self._command("stop")

    def next(self) -> None:
        self._command("next")

    def prev(self) -> None:
        self._command("previous")

    def seek(self, target: QueueTarget, seconds: float) -> None:
        """Seek to seconds within the queue entry given by target."""
        self._command(resolve_target("seek", target), target, seconds)

    def rewind(self, seconds: float) -> None:
        """Seek within the current song."""
        self._command("seekcur", seconds)

    # -- Queue -------------------------------------------------------------

    def queue(self) -> List[Song]:
        return self._songs("playlistinfo")

    def songs(self, target: QueueTarget) -> List[Song]:
        """Return the queue entries addressed by target."""
        return self._songs(resolve_target("playlistinfo", target), target)

    def push(self, path: str) -> int:
        """Append path to the queue and return its song id."""
        return parse_int(
            read_field(self._send("addid", path), "Id"), "Id")

    def insert(self, path: str, pos: int) -> int:
        """Insert path at queue position pos and return its song id."""
        return parse_int(
            read_field(self._send("addid", path, pos), "Id"), "Id")

    def delete(self, target: QueueTarget) -> None:
        self._command(resolve_target("delete", target), target)

    def shift(self, target: QueueTarget, to: int) -> None:
        """Move the entries addressed by target to position to."""
        self._command(resolve_target("move", target), target, to)

    def swap(self, first: QueueTarget, second: QueueTarget) -> None:
        """Swap two entries, both given as Position or both as SongId."""
        if isinstance(first, SongId) and isinstance(second, SongId):
            self._command("swapid", first, second)
        elif isinstance(first, Position) and isinstance(second, Position):
            self._command("swap", first, second)
        else:
            raise ValueError(
                "swap needs two positions or two song ids, got {!r} "
                "and {!r}".format(first, second))

    def shuffle(self, entries: Optional[QueueSlice] = None) -> None:
        self._command("shuffle", entries)

    def clear(self) -> None:
        self._command("clear")

    def priority(self, prio: int, target: QueueTarget) -> None:
        """Set the priority (0-255) of the entries addressed by target."""
        self._command(resolve_target("prio", target), prio, target)

    def set_range(self, song_id: int, play_range: Range) -> None:
        """Limit playback of queue entry song_id to play_range."""
        self._command("rangeid", song_id, play_range)

    # -- Stored playlists --------------------------------------------------

    def playlists(self) -> List[Playlist]:
        return read_records(
            self._send("listplaylists"), "playlist", decode_playlist)

    def playlist(self, name: str) -> List[Song]:
        """Return the songs of stored playlist name."""
        return self._songs("listplaylistinfo", name)

    def load(self, name: str, entries: Optional[QueueSlice] = None) -> None:
        self._command("load", name, entries)

    def save(self, name: str) -> None:
        self._command("save", name)

    def pl_rename(self, name: str, new_name: str) -> None:
        self._command("rename", name, new_name)

    def pl_remove(self, name: str) -> None:
        self._command("rm", name)

    def pl_clear(self, name: str) -> None:
        self._command("playlistclear", name)

    def pl_push(self, name: str, path: str) -> None:
        self._command("playlistadd", name, path)

    def pl_delete(self, name: str, pos: int) -> None:
        self._command("playlistdelete", name, pos)

    # -- Database ----------------------------------------------------------

    def update(self, path: Optional[str] = None) -> int:
        """Start a database update and return its job id."""
        job = read_field(self._send("update", path), "updating_db")
        return parse_int(job, "updating_db")

    def rescan(self, path: Optional[str] = None) -> int:
        """Like update(), but also rescans unmodified files."""
        job = read_field(self._send("rescan", path), "updating_db")
        return parse_int(job, "updating_db")

    def find(self, *filters: Tuple[str, str],
             window: Optional[QueueSlice] = None) -> List[Song]:
        """Find songs whose tags exactly match every (tag, value) filter."""
        return self._songs("find", *self._search_args(filters, window))

    def search(self, *filters: Tuple[str, str],
               window: Optional[QueueSlice] = None) -> List[Song]:
        """Like find(), but case-insensitive substring matching."""
        return self._songs("search", *self._search_args(filters, window))

    @staticmethod
    def _search_args(filters, window):
        # type: (Tuple[Tuple[str, str], ...], Optional[QueueSlice]) -> list
        if not filters:
            raise ValueError("at least one filter is required")
        args = []  # type: list
        for tag, value in filters:
            args.extend((tag, value))
        if window is not None:
            args.extend(("window", window))
        return args

    # -- Outputs -----------------------------------------------------------

    def outputs(self) -> List[Output]:
        return read_records(self._send("outputs"), "outputid", decode_output)

    def output_enable(self, output_id: int) -> None:
        self._command("enableoutput", output_id)

    def output_disable(self, output_id: int) -> None:
        self._command("disableoutput", output_id)

    def output_toggle(self, output_id: int) -> None:
        self._command("toggleoutput", output_id)

    # -- Reflection --------------------------------------------------------

    def commands(self) -> List[str]:
        return read_list(self._send("commands"), "command")

    def notcommands(self) -> List[str]:
        return read_list(self._send("notcommands"), "command")

    def urlhandlers(self) -> List[str]:
        return read_list(self._send("urlhandlers"), "handler")

    def tagtypes(self) -> List[str]:
        return read_list(self._send("tagtypes"), "tagtype")

    def decoders(self) -> List[Plugin]:
        return decode_plugins(self._pairs("decoders"))

    # -- Client to client --------------------------------------------------

    def channels(self) -> List[str]:
        return read_list(self._send("channels"), "channel")

    def subscribe(self, channel: str) -> None:
        """Subscribe to channel.  Raises ValueError for invalid names."""
        self._command("subscribe", Channel(channel))

    def unsubscribe(self, channel: str) -> None:
        self._command("unsubscribe", Channel(channel))

    def readmessages(self) -> List[Message]:
        return read_records(
            self._send("readmessages"), "channel", decode_message)

    def sendmessage(self, channel: str, message: str) -> None:
        self._command("sendmessage", Channel(channel), message)

    # -- Stickers ----------------------------------------------------------

    def sticker(self, typ: str, uri: str, name: str) -> str:
        """Return the value of sticker name on object uri of type typ."""
        source = self._send("sticker get", typ, uri, name)
        key, value = read_pair(source)
        if key != "sticker":
            drain(source)
            raise ProtocolError(ProtocolErrorKind.BAD_STICKER, key)
        expect_ok(source)
        return decode_sticker(value).value

    def set_sticker(self, typ: str, uri: str, name: str, value: str) -> None:
        self._command("sticker set", typ, uri, name, value)

    def delete_sticker(self, typ: str, uri: str,
                       name: Optional[str] = None) -> None:
        """Delete sticker name, or every sticker when name is None."""
        self._command("sticker delete", typ, uri, name)

    def stickers(self, typ: str, uri: str) -> List[Sticker]:
        values = read_list(
            self._send("sticker list", typ, uri), "sticker")
        return [decode_sticker(v) for v in values]

    def find_sticker(self, typ: str, uri: str,
                     name: str) -> List[Tuple[str, str]]:
        """Return (file, value) for every object below uri with sticker
        name set."""
        source = self._send("sticker find", typ, uri, name)
        found = []
        for record in split_records(iter_pairs(source), "file"):
            fields = dict(record)
            if "file" not in fields:
                raise ProtocolError(ProtocolErrorKind.NO_FIELD, "file")
            if "sticker" not in fields:
                raise ProtocolError(ProtocolErrorKind.NO_FIELD, "sticker")
            found.append(
                (fields["file"], decode_sticker(fields["sticker"]).value))
        return found

    # -- Mounts and neighbors ----------------------------------------------

    def mounts(self) -> List[Mount]:
        return read_records(self._send("listmounts"), "mount", decode_mount)

    def neighbors(self) -> List[Neighbor]:
        return read_records(
            self._send("listneighbors"), "neighbor", decode_neighbor)

    def mount(self, path: str, uri: str) -> None:
        self._command("mount", path, uri)

    def unmount(self, path: str) -> None:
        self._command("unmount", path)

    # -- Idle --------------------------------------------------------------

    def idle(self, *subsystems: Subsystem) -> IdleWait:
        """Start waiting for changes in subsystems (all when none given).

        Returns at once with an IdleWait.  Block on its get(); call its
        cancel() from another thread to end the wait early.  No other
        command may be sent until get() has returned.
        """
        source = self._send(idle_command(subsystems))
        logger.debug("idle started")
        wait = IdleWait(source, subsystems, on_done=self._idle_done)
        self._idle = wait
        return wait

    def wait(self, *subsystems: Subsystem) -> FrozenSet[Subsystem]:
        """Block until one of subsystems changes; return what changed."""
        return self.idle(*subsystems).get()
