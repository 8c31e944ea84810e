"""Tests for subsystem names and the idle wait engine."""

import threading

import pytest

from conftest import make_source, written_lines

from mpdctl import (
    ArgumentError, IdleState, IdleWait, NoExistError, ParseError,
    ProtocolError, ProtocolErrorKind, Subsystem, TransportError,
    UnknownCommandError,
)
from mpdctl.idle import idle_command


# ---------------------------------------------------------------------------
# TestSubsystem
# ---------------------------------------------------------------------------

class TestSubsystem:
    """Tests for the Subsystem wire mapping."""

    def test_inverted_names(self):
        assert Subsystem.PLAYLIST.value == "stored_playlist"
        assert Subsystem.QUEUE.value == "playlist"
        assert Subsystem.from_wire("playlist") is Subsystem.QUEUE
        assert Subsystem.from_wire("stored_playlist") is Subsystem.PLAYLIST

    def test_round_trip_every_member(self):
        for subsystem in Subsystem:
            assert Subsystem.from_wire(str(subsystem)) is subsystem

    def test_member_count(self):
        assert len(Subsystem) == 11

    def test_unknown_name(self):
        with pytest.raises(ParseError):
            Subsystem.from_wire("neighbor")

    def test_idle_command(self):
        assert idle_command([]) == "idle"
        assert idle_command([Subsystem.QUEUE, Subsystem.MIXER]) == \
            "idle playlist mixer"


# ---------------------------------------------------------------------------
# TestIdleWait
# ---------------------------------------------------------------------------

class TestIdleWait:
    """Tests for IdleWait.get() against canned replies."""

    def test_single_change(self):
        wait = IdleWait(make_source("changed: player", "OK"))
        assert wait.state is IdleState.IDLE
        assert wait.get() == frozenset([Subsystem.PLAYER])
        assert wait.state is IdleState.NOTIFIED

    def test_duplicates_collapse(self):
        wait = IdleWait(make_source(
            "changed: mixer", "changed: player", "changed: mixer", "OK"))
        assert wait.get() == frozenset([Subsystem.MIXER, Subsystem.PLAYER])

    def test_empty_notification(self):
        assert IdleWait(make_source("OK")).get() == frozenset()

    def test_get_twice_returns_same(self):
        wait = IdleWait(make_source("changed: output", "OK", "junk"))
        first = wait.get()
        assert wait.get() is first

    def test_ack_fails(self):
        wait = IdleWait(make_source("ACK [50@0] {idle} weird"))
        with pytest.raises(NoExistError):
            wait.get()
        assert wait.state is IdleState.FAILED

    def test_get_after_failure(self):
        wait = IdleWait(make_source("ACK [50@0] {idle} weird"))
        with pytest.raises(NoExistError):
            wait.get()
        with pytest.raises(ProtocolError):
            wait.get()

    def test_unexpected_key(self):
        wait = IdleWait(make_source("volume: 5", "OK"))
        with pytest.raises(ProtocolError) as exc_info:
            wait.get()
        assert exc_info.value.kind is ProtocolErrorKind.NO_FIELD
        assert exc_info.value.field == "changed"
        assert wait.state is IdleState.FAILED

    def test_unknown_subsystem(self):
        wait = IdleWait(make_source("changed: teleport", "OK"))
        with pytest.raises(ParseError):
            wait.get()
        assert wait.state is IdleState.FAILED

    def test_connection_lost(self):
        wait = IdleWait(make_source())
        with pytest.raises(TransportError):
            wait.get()
        assert wait.state is IdleState.FAILED

    def test_cancel_sends_noidle(self):
        source = make_source("OK")
        wait = IdleWait(source)
        wait.cancel()
        assert wait.state is IdleState.CANCELLED
        assert written_lines(source) == ["noidle"]
        assert wait.get() == frozenset()
        assert wait.state is IdleState.NOTIFIED

    def test_cancel_is_noop_after_notification(self):
        source = make_source("changed: player", "OK")
        wait = IdleWait(source)
        wait.get()
        wait.cancel()
        assert written_lines(source) == []
        assert wait.state is IdleState.NOTIFIED

    def test_cancel_twice_sends_once(self):
        source = make_source("OK")
        wait = IdleWait(source)
        wait.cancel()
        wait.cancel()
        assert written_lines(source) == ["noidle"]

    def test_cancel_is_noop_after_failure(self):
        source = make_source("ACK [5@0] {idle} nope")
        wait = IdleWait(source)
        with pytest.raises(UnknownCommandError):
            wait.get()
        wait.cancel()
        assert written_lines(source) == []

    def test_done_callback_runs_once(self):
        calls = []
        wait = IdleWait(make_source("OK"), on_done=calls.append)
        wait.get()
        wait.get()
        assert calls == [wait]


# ---------------------------------------------------------------------------
# TestIdleOverSocket
# ---------------------------------------------------------------------------

class TestIdleOverSocket:
    """Idle through MpdConnection with a fake daemon on a socket pair."""

    def test_wait_for_change(self, conn, daemon):
        daemon.reply("changed: player", "changed: mixer", "OK")
        changed = conn.wait(Subsystem.PLAYER, Subsystem.MIXER)
        assert changed == frozenset([Subsystem.PLAYER, Subsystem.MIXER])
        assert daemon.received() == ["idle player mixer"]

    def test_cancel_from_other_thread(self, conn, daemon):
        wait = conn.idle(Subsystem.DATABASE)
        assert daemon.recv_line() == "idle database"

        result = {}

        def waiter():
            result["changed"] = wait.get()

        thread = threading.Thread(target=waiter)
        thread.start()
        wait.cancel()
        assert daemon.recv_line() == "noidle"
        daemon.reply("OK")
        thread.join(5)
        assert not thread.is_alive()
        assert result["changed"] == frozenset()
        assert wait.state is IdleState.NOTIFIED

    def test_notification_wins_race_with_cancel(self, conn, daemon):
        wait = conn.idle()
        daemon.reply("changed: update", "OK")
        assert wait.get() == frozenset([Subsystem.UPDATE])
        wait.cancel()
        assert daemon.received() == ["idle"]

    def test_commands_refused_while_idle(self, conn, daemon):
        conn.idle()
        with pytest.raises(ProtocolError) as exc_info:
            conn.status()
        assert exc_info.value.kind is ProtocolErrorKind.IDLE_PENDING

    def test_commands_allowed_after_idle(self, conn, daemon):
        wait = conn.idle(Subsystem.OPTIONS)
        daemon.reply("changed: options", "OK")
        wait.get()
        daemon.reply("OK")
        conn.ping()
        assert daemon.received() == ["idle options", "ping"]

    def test_commands_allowed_after_failed_idle(self, conn, daemon):
        wait = conn.idle()
        daemon.reply("ACK [2@0] {idle} Unrecognized idle event: x")
        with pytest.raises(ArgumentError):
            wait.get()
        daemon.reply("OK")
        conn.ping()
