"""Unit tests for the error taxonomy and ACK parsing."""

import pytest

from mpdctl import (
    AlreadyExistsError, ArgumentError, ErrorCode, MpdError, NoExistError,
    ParseError, ParseErrorKind, PasswordError, ProtocolError,
    ProtocolErrorKind, ServerError, SystemFailureError, TransportError,
    UnknownCommandError, parse_ack,
)
from mpdctl.errors import _ERROR_MAP, error_code


# ---------------------------------------------------------------------------
# TestParseAck
# ---------------------------------------------------------------------------

class TestParseAck:
    """Tests for parse_ack()."""

    def test_full_line(self):
        err = parse_ack("ACK [2@3] {setvol} Invalid volume value")
        assert isinstance(err, ArgumentError)
        assert err.code is ErrorCode.ARGUMENT
        assert err.pos == 3
        assert err.command == "setvol"
        assert err.detail == "Invalid volume value"

    def test_detail_trimmed(self):
        err = parse_ack("ACK [5@0] {bogus}   unknown command \"bogus\"  ")
        assert err.detail == 'unknown command "bogus"'

    def test_empty_command(self):
        err = parse_ack("ACK [5@0] {} unknown command")
        assert isinstance(err, UnknownCommandError)
        assert err.command == ""

    def test_unknown_code_kept(self):
        err = parse_ack("ACK [99@0] {x} something new")
        assert type(err) is ServerError
        assert err.code == 99
        assert not isinstance(err.code, ErrorCode)

    def test_not_ack(self):
        with pytest.raises(ParseError) as exc_info:
            parse_ack("OK")
        assert exc_info.value.kind is ParseErrorKind.NOT_ACK

    def test_missing_code_pos(self):
        with pytest.raises(ParseError) as exc_info:
            parse_ack("ACK [50] {play} x")
        assert exc_info.value.kind is ParseErrorKind.NO_CODE_POS

    def test_bad_code(self):
        with pytest.raises(ParseError) as exc_info:
            parse_ack("ACK [x@0] {play} x")
        assert exc_info.value.kind is ParseErrorKind.BAD_CODE

    def test_bad_pos(self):
        with pytest.raises(ParseError) as exc_info:
            parse_ack("ACK [50@y] {play} x")
        assert exc_info.value.kind is ParseErrorKind.BAD_POS

    def test_missing_command(self):
        with pytest.raises(ParseError) as exc_info:
            parse_ack("ACK [50@0] play x")
        assert exc_info.value.kind is ParseErrorKind.NO_MESSAGE

    def test_from_line(self):
        err = ServerError.from_line("ACK [56@0] {save} Playlist already exists")
        assert isinstance(err, AlreadyExistsError)


# ---------------------------------------------------------------------------
# TestServerError
# ---------------------------------------------------------------------------

class TestServerError:
    """Tests for ServerError codes, subclasses and re-serialisation."""

    @pytest.mark.parametrize("line", [
        "ACK [50@0] {play} No such song",
        "ACK [2@7] {add} wrong number of arguments",
        "ACK [123@1] {future} new error",
        "ACK [4@0] {} you don't have permission for \"x\"",
    ])
    def test_to_line_reparses_equal(self, line):
        err = parse_ack(line)
        again = parse_ack(err.to_line())
        assert (again.code, again.pos, again.command, again.detail) == (
            err.code, err.pos, err.command, err.detail)
        assert type(again) is type(err)

    def test_every_known_code_has_subclass(self):
        for code in ErrorCode:
            err = parse_ack("ACK [{}@0] {{x}} y".format(int(code)))
            assert type(err) is _ERROR_MAP[code]
            assert err.code is code

    def test_code_values(self):
        assert ErrorCode.NOT_LIST == 1
        assert ErrorCode.UNKNOWN_CMD == 5
        assert ErrorCode.NO_EXIST == 50
        assert ErrorCode.SYSTEM == 52
        assert ErrorCode.EXIST == 56

    def test_error_code_helper(self):
        assert error_code(3) is ErrorCode.PASSWORD
        assert error_code(1000) == 1000

    def test_message(self):
        err = parse_ack("ACK [50@1] {play} No such song")
        assert str(err) == "NO_EXIST error ('No such song') at 1"

    def test_message_unknown_code(self):
        err = parse_ack("ACK [77@0] {x} odd")
        assert "code 77" in str(err)

    def test_catch_specific_subclass(self):
        with pytest.raises(PasswordError):
            raise parse_ack("ACK [3@0] {password} incorrect password")

    def test_system_error_name_does_not_shadow_builtin(self):
        err = parse_ack("ACK [52@0] {x} failed")
        assert isinstance(err, SystemFailureError)
        assert not isinstance(err, SystemError)


# ---------------------------------------------------------------------------
# TestHierarchy
# ---------------------------------------------------------------------------

class TestHierarchy:
    """All four error kinds share the MpdError base."""

    @pytest.mark.parametrize("exc", [
        TransportError("closed"),
        ParseError(ParseErrorKind.BAD_PAIR, "x"),
        ProtocolError(ProtocolErrorKind.NO_FIELD, "file"),
        NoExistError(ErrorCode.NO_EXIST, 0, "play", "gone"),
    ])
    def test_base_class(self, exc):
        assert isinstance(exc, MpdError)

    def test_parse_error_names_field(self):
        err = ParseError(ParseErrorKind.BAD_INTEGER, "abc", "volume")
        assert err.field == "volume"
        assert "volume" in str(err)
        assert "abc" in str(err)

    def test_protocol_error_field(self):
        err = ProtocolError(ProtocolErrorKind.NO_FIELD, "outputname")
        assert err.field == "outputname"
        assert "outputname" in str(err)

    def test_protocol_error_without_field(self):
        err = ProtocolError(ProtocolErrorKind.NOT_CONNECTED)
        assert str(err) == "not connected"
