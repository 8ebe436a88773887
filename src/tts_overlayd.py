#!/usr/bin/env python3
"""
TTS Overlay daemon - Speaks text lines received over a Unix socket.
Applies configured whole-word replacements, then renders and plays speech.
"""

import argparse
import signal
import socket
import sys
import threading
from pathlib import Path
from typing import Optional

from config_loader import ConfigLoader, TTSOverlayConfig
from daemon.ipc_server import IPCServer
from replacements import apply_replacements, compile_replacements
from socket_utils import get_socket_path
from speech_output import SpeechError, SpeechSynthesizer

# Longest request line read from a client, in bytes
MAX_LINE_BYTES = 64 * 1024


class TTSOverlayDaemon:
    """
    Main daemon process for TTS Overlay.
    Coordinates socket server → replacements → speech pipeline.
    """

    def __init__(
        self,
        config: TTSOverlayConfig,
        socket_path: Optional[str] = None,
        synthesizer: Optional[SpeechSynthesizer] = None
    ):
        """
        Initialize TTS Overlay daemon.

        Args:
            config: Loaded configuration
            socket_path: Unix socket path for IPC (default: resolved from environment)
            synthesizer: Speech pipeline (default: built from config.speech)
        """
        self.config = config
        self.socket_path = socket_path or get_socket_path()
        self.read_timeout = config.daemon.read_timeout

        # Rules are compiled once and shared read-only by every handler
        self.matchers = compile_replacements(config.replacements)

        self.synthesizer = synthesizer or SpeechSynthesizer(
            renderer=config.speech.renderer,
            player=config.speech.player
        )

        self.server = IPCServer(
            self.socket_path,
            self.handle_connection,
            max_workers=config.daemon.max_workers
        )

        self._stop_requested = threading.Event()
        self._stop_signal: Optional[int] = None

        self.stats = {
            'received': 0,
            'empty': 0,
            'dropped': 0,
            'spoken': 0,
            'failed': 0
        }
        self.stats_lock = threading.Lock()

    def _count(self, key: str):
        with self.stats_lock:
            self.stats[key] += 1

    def handle_connection(self, conn: socket.socket):
        """
        Serve a single request: read one line, rewrite it, speak it.

        Anything after the first newline is ignored. Read and decode errors
        propagate to the server, which logs them.
        """
        conn.settimeout(self.read_timeout)

        with conn.makefile('rb') as reader:
            raw = reader.readline(MAX_LINE_BYTES + 1)

        self._count('received')
        if len(raw) > MAX_LINE_BYTES and not raw.endswith(b'\n'):
            self._count('dropped')
            print(f"✗ Request line exceeds {MAX_LINE_BYTES // 1024} KiB, dropped",
                  file=sys.stderr, flush=True)
            return

        text = raw.decode('utf-8').strip()
        if not text:
            self._count('empty')
            return

        to_play = apply_replacements(text, self.matchers)
        print(f'Daemon received: "{text}" -> "{to_play}"', flush=True)

        try:
            self.synthesizer.speak(to_play)
        except SpeechError as e:
            self._count('failed')
            print(f'✗ Speech failed for "{to_play}": {e}', file=sys.stderr, flush=True)
            return

        self._count('spoken')

    def request_stop(self, signum: Optional[int] = None):
        """Ask the main loop to shut down (safe from signal handlers)"""
        self._stop_signal = signum
        self._stop_requested.set()

    def start(self):
        """Start daemon and block until a stop is requested"""
        print("=" * 60, flush=True)
        print("TTS Overlay Daemon Starting", flush=True)
        print("=" * 60, flush=True)

        try:
            self.server.start()
        except OSError as e:
            print(f"✗ Failed to bind unix socket at {self.socket_path}: {e}",
                  file=sys.stderr, flush=True)
            sys.exit(1)

        missing = self.synthesizer.missing_tools()
        for tool in missing:
            print(f"⚠️  {tool} not found on PATH; requests will fail until it is installed",
                  file=sys.stderr, flush=True)

        print(f"  Replacement rules: {len(self.matchers)}", flush=True)
        print("✓ Daemon started", flush=True)
        print("  Press Ctrl+C to stop\n", flush=True)

        try:
            self._stop_requested.wait()
            if self._stop_signal is not None:
                print(f"\nReceived signal {self._stop_signal}", flush=True)
        except KeyboardInterrupt:
            print("\n\nReceived Ctrl+C, shutting down...")
        finally:
            self.stop()

    def stop(self):
        """Stop accepting connections and clean up the socket"""
        print("Stopping daemon...", flush=True)
        self.server.stop()

        with self.stats_lock:
            stats = dict(self.stats)
        if stats['received'] > 0:
            print("\n📊 Request Statistics:", flush=True)
            print(f"  Received: {stats['received']}", flush=True)
            print(f"  Empty: {stats['empty']}", flush=True)
            print(f"  Dropped: {stats['dropped']}", flush=True)
            print(f"  Spoken: {stats['spoken']}", flush=True)
            print(f"  Failed: {stats['failed']}", flush=True)

        print("✓ Daemon stopped", flush=True)


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(description='TTS Overlay speech daemon')
    parser.add_argument('--config', type=Path, help='Config file (default: ~/.config/tts-overlay/config.toml)')
    parser.add_argument('--socket', help='Unix socket path (default: $XDG_RUNTIME_DIR/tts-overlay.sock)')
    args = parser.parse_args(argv)

    # Load configuration
    config_loader = ConfigLoader(args.config)
    config = config_loader.load()

    print("⚙️  Configuration loaded:", flush=True)
    print(f"   Replacements: {len(config.replacements)}", flush=True)
    print(f"   Renderer: {config.speech.renderer}", flush=True)
    print(f"   Player: {config.speech.player}", flush=True)
    print(f"   Max workers: {config.daemon.max_workers}", flush=True)
    print(f"   Config file: {config_loader.config_path}", flush=True)
    print(flush=True)

    daemon = TTSOverlayDaemon(config, socket_path=args.socket)

    def signal_handler(signum, frame):
        daemon.request_stop(signum)

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    daemon.start()


if __name__ == '__main__':
    main()
