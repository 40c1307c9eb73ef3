import socket
import struct
import threading
from typing import Dict, List, Optional

import pytest

from relay_config import RelayConfig
from relay_server import RelayServer

_HEADER = struct.Struct("<IIII")
_MAGIC1 = 0x1234ABCD
_MAGIC2 = 0xABCD1234


def hrd_frame(text: str) -> bytes:
    payload = (text + "\x00").encode("utf-16-le")
    return _HEADER.pack(_HEADER.size + len(payload), _MAGIC1, _MAGIC2, 0) + payload


class FakeHRD:
    """
    Stand-in for HRD's TCP server: one frame in, one frame out per connection.

    Every command text is appended to `commands`; the reply is looked up in
    `replies` by exact command and falls back to `default_reply`. With
    `reset_instead_of_reply` the connection is aborted after the command is read.
    """

    def __init__(self, default_reply: str = "OK", replies: Optional[Dict[str, str]] = None):
        self.default_reply = default_reply
        self.reset_instead_of_reply = False
        self.replies = dict(replies or {})
        self.commands: List[str] = []
        self.connections = 0
        self._lock = threading.Lock()
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._sock.bind(("127.0.0.1", 0))
        self._sock.listen(16)
        self._sock.settimeout(0.2)
        self.port = self._sock.getsockname()[1]
        self._running = True
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while self._running:
            try:
                conn, _ = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _read_exact(self, conn, n: int, buffer: bytes) -> bytes:
        while len(buffer) < n:
            chunk = conn.recv(4096)
            if not chunk:
                break
            buffer += chunk
        return buffer

    def _handle(self, conn):
        with conn:
            conn.settimeout(2.0)
            data = self._read_exact(conn, _HEADER.size, b"")
            if len(data) < _HEADER.size:
                return
            size = _HEADER.unpack_from(data, 0)[0]
            data = self._read_exact(conn, size, data)
            text = data[_HEADER.size:size].decode("utf-16-le").split("\x00", 1)[0]
            with self._lock:
                self.commands.append(text)
                self.connections += 1
            if self.reset_instead_of_reply:
                # zero linger: close() sends RST instead of FIN
                conn.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
                return
            conn.sendall(hrd_frame(self.replies.get(text, self.default_reply)))

    def close(self):
        self._running = False
        self._sock.close()
        self._thread.join(timeout=2.0)


class UdpReceiver:
    def __init__(self):
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(2.0)
        self.port = self.sock.getsockname()[1]

    def recv_text(self) -> str:
        data, _ = self.sock.recvfrom(65535)
        return data.decode("utf-8")

    def close(self):
        self.sock.close()


@pytest.fixture
def fake_hrd():
    server = FakeHRD()
    yield server
    server.close()


@pytest.fixture
def udp_receiver():
    receiver = UdpReceiver()
    yield receiver
    receiver.close()


@pytest.fixture
def closed_port():
    """A localhost TCP port with nothing listening on it."""
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.fixture
def make_relay():
    """Build RelayServers from RelayConfig overrides and close them after the test."""
    created: List[RelayServer] = []

    def _make(debug: bool = False, **overrides) -> RelayServer:
        overrides.setdefault("http_host", "127.0.0.1")
        overrides.setdefault("http_port", 0)
        relay = RelayServer(RelayConfig(**overrides), debug=debug)
        created.append(relay)
        return relay

    yield _make
    for relay in created:
        relay.close()
