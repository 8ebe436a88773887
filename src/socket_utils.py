#!/usr/bin/env python3
"""
Socket path helpers shared by the TTS Overlay daemon and its client.
"""

import os

SOCKET_NAME = 'tts-overlay.sock'


def get_socket_path() -> str:
    """Get socket path using XDG_RUNTIME_DIR or fallback to /tmp.

    The /tmp fallback carries the numeric uid so users sharing a machine
    never collide on the same socket file.
    """
    runtime_dir = os.environ.get('XDG_RUNTIME_DIR')
    if runtime_dir:
        return os.path.join(runtime_dir, SOCKET_NAME)

    return os.path.join('/tmp', f'tts-overlay-{os.getuid()}.sock')
