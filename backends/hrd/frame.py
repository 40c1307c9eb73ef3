# backends/hrd/frame.py
"""
Ham Radio Deluxe v5 frame codec.

Wire layout (all little-endian):

    offset  size  field
    0       4     total frame size (header + payload)
    4       4     magic1 = 0x1234ABCD
    8       4     magic2 = 0xABCD1234
    12      4     checksum, always 0
    16      n     UTF-16LE command text + one NUL code unit

The only message boundary is the size field, so a reader must buffer partial
reads until the declared size is present; anything past it belongs to no one.
"""

import socket
import struct
import time
from typing import Optional

from backend_interface import BackendTimeout, ConnectFailed, FrameTooShort, IncompleteFrame, MagicMismatch
from loghandler import get_logger

HEADER = struct.Struct("<IIII")
HEADER_SIZE = HEADER.size  # 16
MAGIC1 = 0x1234ABCD
MAGIC2 = 0xABCD1234
CONTEXT_PREFIX = "[0] "
DEFAULT_TIMEOUT_S = 5.0

logger = None


def build_frame(command: str, use_context_prefix: bool = False) -> bytes:
    """Encode one command as a complete frame (header + UTF-16LE payload + NUL)."""
    text = (CONTEXT_PREFIX + command if use_context_prefix else command) + "\x00"
    payload = text.encode("utf-16-le")
    header = HEADER.pack(HEADER_SIZE + len(payload), MAGIC1, MAGIC2, 0)
    return header + payload


def declared_size(data: bytes) -> int:
    """Total frame size from the header; caller guarantees 16 bytes are present."""
    return HEADER.unpack_from(data, 0)[0]


def parse_frame(data: bytes) -> str:
    """
    Decode a frame's text.

    Raises FrameTooShort (< 16 bytes), MagicMismatch (either magic wrong) or
    IncompleteFrame (declared size beyond the buffer). Text ends at the first
    NUL; what follows it is discarded.
    """
    if len(data) < HEADER_SIZE:
        raise FrameTooShort(f"HRD response too short: {len(data)} bytes")

    size, magic1, magic2, _checksum = HEADER.unpack_from(data, 0)
    if magic1 != MAGIC1 or magic2 != MAGIC2:
        raise MagicMismatch(f"HRD magic mismatch: 0x{magic1:08X} 0x{magic2:08X}")
    if len(data) < size:
        raise IncompleteFrame(f"Incomplete HRD response: {len(data)} of {size} bytes")

    payload = data[HEADER_SIZE:size]
    # An odd trailing byte is not a full code unit; drop it rather than fail.
    text = payload[: len(payload) - (len(payload) % 2)].decode("utf-16-le", errors="replace")
    nul = text.find("\x00")
    return text if nul < 0 else text[:nul]


def accumulate_response(stream, timeout: float = DEFAULT_TIMEOUT_S) -> bytes:
    """
    Read one complete frame from a socket-like object (recv/settimeout).

    Re-checks the buffer after every chunk: first for the 16-byte header,
    then for the declared size. Returns exactly one frame. Raises
    BackendTimeout when the deadline passes or the peer closes early, and
    ConnectFailed when the connection is reset.
    """
    global logger
    if logger is None:
        logger = get_logger()

    deadline = time.monotonic() + timeout
    buffer = b""
    expected: Optional[int] = None

    while True:
        if expected is None and len(buffer) >= HEADER_SIZE:
            expected = declared_size(buffer)
            if expected < HEADER_SIZE:
                raise IncompleteFrame(f"HRD declared frame size {expected} is smaller than its header")

        if expected is not None and len(buffer) >= expected:
            if len(buffer) > expected:
                logger.debug(f"[HRD] discarding {len(buffer) - expected} bytes past end of frame")
            return buffer[:expected]

        left = deadline - time.monotonic()
        if left <= 0:
            raise BackendTimeout(f"HRD response timeout with {len(buffer)} bytes in buffer")

        stream.settimeout(left)
        try:
            chunk = stream.recv(4096)
        except socket.timeout:
            raise BackendTimeout(f"HRD response timeout with {len(buffer)} bytes in buffer")
        except OSError as e:
            raise ConnectFailed(f"HRD connection dropped while awaiting reply: {e}") from e

        if not chunk:
            raise BackendTimeout(
                f"HRD closed the connection before a complete frame arrived ({len(buffer)} bytes)"
            )
        buffer += chunk
