"""Error taxonomy for the mpdctl client.

Every failure surfaced by the library is one of four kinds, all deriving
from MpdError:

  - TransportError: the byte stream failed (EOF, timeout, socket error).
  - ParseError: a line or field value did not match its grammar.
  - ProtocolError: well-formed lines arrived in the wrong shape (a
    required field is missing, OK where a pair was expected, ...).
  - ServerError: the daemon answered with an ACK line.  Known ACK codes
    map to a ServerError subclass so callers can catch them selectively.
"""

import enum
from typing import Dict, Optional, Type, Union


class MpdError(Exception):
    """Base exception for every error raised by mpdctl."""


class TransportError(MpdError):
    """Raised when the connection fails underneath the protocol
    (unexpected EOF, timeout, socket error)."""


# ---------------------------------------------------------------------------
# Parse errors
# ---------------------------------------------------------------------------

class ParseErrorKind(enum.Enum):
    BAD_INTEGER = "bad integer"
    BAD_FLOAT = "bad float"
    BAD_VALUE = "bad value"
    BAD_VERSION = "bad version"
    BAD_PAIR = "bad pair"
    BAD_ENCODING = "bad encoding"
    NOT_ACK = "not an ACK line"
    NO_CODE_POS = "missing error code and position"
    BAD_CODE = "bad error code"
    BAD_POS = "bad error position"
    NO_MESSAGE = "missing error message"
    NO_RATE = "missing sample rate"
    NO_BITS = "missing sample size"
    NO_CHANS = "missing channel count"
    BAD_RATE = "bad sample rate"
    BAD_BITS = "bad sample size"
    BAD_CHANS = "bad channel count"
    BAD_STATE = "bad player state"
    UNKNOWN_FIELD = "unknown field"


class ParseError(MpdError):
    """Raised when a line or a field value does not match its grammar.

    Attributes:
        kind: ParseErrorKind naming the offending construct.
        value: The text that failed to parse.
        field: Name of the field being decoded, if any.
    """

    def __init__(self, kind: ParseErrorKind, value: str = "",
                 field: Optional[str] = None) -> None:
        self.kind = kind
        self.value = value
        self.field = field
        if field is not None:
            msg = "{} in field {!r}: {!r}".format(kind.value, field, value)
        else:
            msg = "{}: {!r}".format(kind.value, value)
        super().__init__(msg)


# ---------------------------------------------------------------------------
# Protocol errors
# ---------------------------------------------------------------------------

class ProtocolErrorKind(enum.Enum):
    NOT_OK = "expected OK"
    NOT_PAIR = "expected a key/value pair"
    BAD_BANNER = "invalid banner"
    NO_FIELD = "missing required field"
    BAD_STICKER = "unexpected sticker reply"
    NOT_CONNECTED = "not connected"
    IDLE_PENDING = "idle in progress"


class ProtocolError(MpdError):
    """Raised when well-formed lines arrive in an unexpected shape.

    Attributes:
        kind: ProtocolErrorKind.
        field: The missing field for NO_FIELD, otherwise extra detail
            (the unexpected line, for instance) or None.
    """

    def __init__(self, kind: ProtocolErrorKind,
                 field: Optional[str] = None) -> None:
        self.kind = kind
        self.field = field
        if field is None:
            msg = kind.value
        else:
            msg = "{}: {!r}".format(kind.value, field)
        super().__init__(msg)


# ---------------------------------------------------------------------------
# Server errors (ACK lines)
# ---------------------------------------------------------------------------

class ErrorCode(enum.IntEnum):
    NOT_LIST = 1
    ARGUMENT = 2
    PASSWORD = 3
    PERMISSION = 4
    UNKNOWN_CMD = 5
    NO_EXIST = 50
    PLAYLIST_MAX = 51
    SYSTEM = 52
    PLAYLIST_LOAD = 53
    UPDATE_ALREADY = 54
    PLAYER_SYNC = 55
    EXIST = 56


class ServerError(MpdError):
    """Raised when the daemon rejects a command with an ACK line.

    Attributes:
        code: ErrorCode member, or the raw integer for codes this client
            does not know.
        pos: Index of the failing command within a command list.
        command: Name of the failing command (may be empty).
        detail: Human-readable message from the daemon.
    """

    def __init__(self, code: Union[ErrorCode, int], pos: int,
                 command: str, detail: str) -> None:
        self.code = code
        self.pos = pos
        self.command = command
        self.detail = detail
        super().__init__("{} error ({!r}) at {}".format(
            _code_name(code), detail, pos))

    def to_line(self) -> str:
        """Render the error back into its ACK wire form."""
        return "ACK [{}@{}] {{{}}} {}".format(
            int(self.code), self.pos, self.command, self.detail)

    @classmethod
    def from_line(cls, line: str) -> "ServerError":
        return parse_ack(line)


class NotListError(ServerError):
    """ACK 1 -- command list expected."""


class ArgumentError(ServerError):
    """ACK 2 -- wrong number or type of arguments."""


class PasswordError(ServerError):
    """ACK 3 -- incorrect password."""


class PermissionDeniedError(ServerError):
    """ACK 4 -- the connection lacks permission for the command."""


class UnknownCommandError(ServerError):
    """ACK 5 -- unknown command."""


class NoExistError(ServerError):
    """ACK 50 -- the referenced object does not exist."""


class PlaylistMaxError(ServerError):
    """ACK 51 -- playlist is at its maximum length."""


class SystemFailureError(ServerError):
    """ACK 52 -- system error on the daemon side."""


class PlaylistLoadError(ServerError):
    """ACK 53 -- stored playlist could not be loaded."""


class UpdateAlreadyError(ServerError):
    """ACK 54 -- a database update is already running."""


class PlayerSyncError(ServerError):
    """ACK 55 -- player state is out of sync."""


class AlreadyExistsError(ServerError):
    """ACK 56 -- the object already exists."""


# Map ACK codes to exception classes.  Unknown codes fall back to the
# base ServerError.
_ERROR_MAP = {
    ErrorCode.NOT_LIST: NotListError,
    ErrorCode.ARGUMENT: ArgumentError,
    ErrorCode.PASSWORD: PasswordError,
    ErrorCode.PERMISSION: PermissionDeniedError,
    ErrorCode.UNKNOWN_CMD: UnknownCommandError,
    ErrorCode.NO_EXIST: NoExistError,
    ErrorCode.PLAYLIST_MAX: PlaylistMaxError,
    ErrorCode.SYSTEM: SystemFailureError,
    ErrorCode.PLAYLIST_LOAD: PlaylistLoadError,
    ErrorCode.UPDATE_ALREADY: UpdateAlreadyError,
    ErrorCode.PLAYER_SYNC: PlayerSyncError,
    ErrorCode.EXIST: AlreadyExistsError,
}  # type: Dict[ErrorCode, Type[ServerError]]


def _code_name(code: Union[ErrorCode, int]) -> str:
    if isinstance(code, ErrorCode):
        return code.name
    return "code {}".format(code)


def error_code(value: int) -> Union[ErrorCode, int]:
    """Return the ErrorCode for value, or value itself if unknown."""
    try:
        return ErrorCode(value)
    except ValueError:
        return value


def parse_ack(line: str) -> ServerError:
    """Parse an ACK line into the matching ServerError subclass.

    The line has the form "ACK [<code>@<pos>] {<command>} <detail>".
    Returns the exception instance (it does not raise it).  Raises
    ParseError naming the broken part when the line is not a valid ACK.
    """
    if not line.startswith("ACK ["):
        raise ParseError(ParseErrorKind.NOT_ACK, line)
    rest = line[5:]

    at = rest.find("@")
    close = rest.find("]")
    if at < 0 or close < 0 or close < at:
        raise ParseError(ParseErrorKind.NO_CODE_POS, line)
    try:
        raw_code = int(rest[:at])
    except ValueError:
        raise ParseError(ParseErrorKind.BAD_CODE, rest[:at])
    try:
        pos = int(rest[at + 1:close])
    except ValueError:
        raise ParseError(ParseErrorKind.BAD_POS, rest[at + 1:close])

    rest = rest[close + 1:]
    lbrace = rest.find("{")
    rbrace = rest.find("}")
    if lbrace < 0 or rbrace < 0 or rbrace < lbrace:
        raise ParseError(ParseErrorKind.NO_MESSAGE, line)
    command = rest[lbrace + 1:rbrace]
    detail = rest[rbrace + 1:].strip()

    code = error_code(raw_code)
    exc_class = ServerError
    if isinstance(code, ErrorCode):
        exc_class = _ERROR_MAP.get(code, ServerError)
    return exc_class(code, pos, command, detail)
