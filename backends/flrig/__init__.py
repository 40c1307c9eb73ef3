# backends/flrig/__init__.py
"""
FLRIG XML-RPC client package.

Exports:
- FlrigClient (radio control via rig.get_vfo / rig.set_vfo / rig.get_mode / rig.set_mode)
- build_method_call / parse_method_response (minimal XML-RPC codec)
"""

from .client import FlrigClient
from .xmlrpc import build_method_call, parse_method_response

__all__ = [
    "FlrigClient",
    "build_method_call",
    "parse_method_response",
]
