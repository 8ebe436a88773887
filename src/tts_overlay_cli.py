#!/usr/bin/env python3
"""
TTS Overlay CLI - Send text to the daemon via Unix socket.
"""

import sys
import socket
import argparse
from pathlib import Path

from config_loader import ConfigLoader
from replacements import apply_replacements, compile_replacements
from socket_utils import get_socket_path


def send_line(text: str, socket_path: str) -> dict:
    """
    Send one line of text to the daemon.

    The daemon never replies; the connection is closed after writing.

    Args:
        text: Text to speak (trimmed before sending)
        socket_path: Path to Unix socket

    Returns:
        {'status': 'ok'} or {'error': message}
    """
    text = text.strip()
    if not text:
        return {'status': 'ok', 'message': 'Nothing to send'}

    try:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as client:
            client.settimeout(5.0)
            client.connect(socket_path)
            client.sendall(f"{text}\n".encode('utf-8'))
        return {'status': 'ok'}

    except FileNotFoundError:
        return {'error': 'Daemon not running (socket not found)'}
    except ConnectionRefusedError:
        return {'error': 'Daemon not running (connection refused)'}
    except socket.timeout:
        return {'error': 'Daemon not responding (timeout)'}
    except OSError as e:
        return {'error': f'Communication error: {e}'}


def _read_text(args) -> str:
    if args.text:
        return ' '.join(args.text)
    return sys.stdin.readline()


def cmd_say(args):
    """Send text to the daemon to be spoken"""
    response = send_line(_read_text(args), args.socket or get_socket_path())

    if 'error' in response:
        print(f"✗ Error: {response['error']}", file=sys.stderr)
        return 1

    return 0


def cmd_preview(args):
    """Print text after replacements without speaking it"""
    config = ConfigLoader(args.config).load()
    matchers = compile_replacements(config.replacements)
    print(apply_replacements(_read_text(args).strip(), matchers))
    return 0


def cmd_socket_path(args):
    """Print the daemon socket path"""
    print(args.socket or get_socket_path())
    return 0


def main(argv=None):
    """CLI entry point"""
    parser = argparse.ArgumentParser(
        description='TTS Overlay text-to-speech control'
    )
    parser.add_argument('--socket', help='Unix socket path (default: $XDG_RUNTIME_DIR/tts-overlay.sock)')
    parser.add_argument('--config', type=Path, help='Config file (default: ~/.config/tts-overlay/config.toml)')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    say_parser = subparsers.add_parser(
        'say',
        help='Speak text (reads one line from stdin if no text is given)'
    )
    say_parser.add_argument('text', nargs='*', help='Text to speak')
    say_parser.set_defaults(func=cmd_say)

    preview_parser = subparsers.add_parser(
        'preview',
        help='Show text after replacements without speaking'
    )
    preview_parser.add_argument('text', nargs='*', help='Text to preview')
    preview_parser.set_defaults(func=cmd_preview)

    socket_parser = subparsers.add_parser(
        'socket-path',
        help='Print the daemon socket path'
    )
    socket_parser.set_defaults(func=cmd_socket_path)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
