"""
Daemon-side infrastructure for TTS Overlay.

Provides the Unix socket server that accepts client connections and
dispatches them to a bounded pool of handler threads.
"""

from .ipc_server import IPCServer

__all__ = [
    'IPCServer',
]
