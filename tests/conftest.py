"""Shared fixtures and helpers for mpdctl tests.

These tests never talk to a real daemon.  Replies are either fed from
memory (make_source) or written into one end of a socket pair that the
client under test reads from (FakeDaemon).

Usage:
    pytest tests/ -v
"""

import io
import os
import socket
import sys

import pytest

# Add the client library to the path so tests can import mpdctl
_client_dir = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "client",
)
if _client_dir not in sys.path:
    sys.path.insert(0, _client_dir)

from mpdctl import MpdConnection
from mpdctl.protocol import LineSource


# ---------------------------------------------------------------------------
# In-memory line sources
# ---------------------------------------------------------------------------

def make_source(*lines):
    """Build a LineSource that reads lines (LF appended to each).

    Whatever the client writes is collected in source.written (bytes).
    """
    data = "".join(line + "\n" for line in lines).encode("utf-8")
    wfile = io.BytesIO()
    source = LineSource(io.BytesIO(data), wfile)
    source.written = wfile
    return source


def written_lines(source):
    """Return the command lines written to a make_source() source."""
    return source.written.getvalue().decode("utf-8").splitlines()


# ---------------------------------------------------------------------------
# Socket-pair fake daemon
# ---------------------------------------------------------------------------

class FakeDaemon:
    """The daemon end of a socket pair.

    Replies are queued up front with reply(); the kernel buffers them
    until the client reads.  received() returns the command lines the
    client has sent so far.
    """

    def __init__(self):
        self.server, self.client = socket.socketpair()
        self.server.settimeout(5)
        self.client.settimeout(5)
        self._pending = b""

    def reply(self, *lines):
        self.server.sendall(
            "".join(line + "\n" for line in lines).encode("utf-8"))

    def received(self):
        data = self._pending
        self.server.setblocking(False)
        try:
            while True:
                try:
                    chunk = self.server.recv(65536)
                except BlockingIOError:
                    break
                if not chunk:
                    break
                data += chunk
        finally:
            self.server.settimeout(5)
        lines = data.split(b"\n")
        self._pending = lines.pop()
        return [line.decode("utf-8") for line in lines]

    def recv_line(self):
        """Block until the client sends one full line and return it."""
        while b"\n" not in self._pending:
            chunk = self.server.recv(65536)
            if not chunk:
                raise ConnectionError("client closed the connection")
            self._pending += chunk
        line, self._pending = self._pending.split(b"\n", 1)
        return line.decode("utf-8")

    def close(self):
        for sock in (self.server, self.client):
            try:
                sock.close()
            except OSError:
                pass


@pytest.fixture
def daemon():
    """A FakeDaemon, closed after the test."""
    d = FakeDaemon()
    yield d
    d.close()


@pytest.fixture
def conn(daemon):
    """An MpdConnection attached to the fake daemon, banner consumed."""
    daemon.reply("OK MPD 0.23.5")
    c = MpdConnection("localhost")
    c._attach(daemon.client)
    yield c
    c._teardown()
