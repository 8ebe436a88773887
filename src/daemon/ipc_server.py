"""
Unix socket server for the TTS Overlay daemon.

Accepts one-shot client connections and hands each to a worker pool:
- Stale socket file removed before binding
- Non-blocking listener watched by a selector, woken for shutdown by a pipe
- Bounded thread pool for connection handling
- Shutdown stops accepting without cancelling in-flight handlers
"""

import os
import selectors
import socket
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional


class IPCServer:
    """
    Accept loop plus worker pool around a Unix stream socket.

    Every accepted connection is passed to ``on_connection`` on a pool
    thread. The callback owns reading from the socket; the server closes it
    afterwards and logs anything the callback raises.
    """

    def __init__(
        self,
        socket_path: str,
        on_connection: Callable[[socket.socket], None],
        max_workers: int = 8,
        retry_delay: float = 0.1
    ):
        """
        Initialize IPC server.

        Args:
            socket_path: Unix socket path to bind
            on_connection: Called with each accepted connection
            max_workers: Maximum connections handled concurrently
            retry_delay: Backoff in seconds after a failed accept
        """
        self.socket_path = socket_path
        self.on_connection = on_connection
        self.max_workers = max_workers
        self.retry_delay = retry_delay

        self.server_socket: Optional[socket.socket] = None
        self.accept_thread: Optional[threading.Thread] = None
        self.accepted_count: Optional[int] = None
        self._cancel: Optional[threading.Event] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._wake_r: Optional[int] = None
        self._wake_w: Optional[int] = None

    @property
    def running(self) -> bool:
        return self.accept_thread is not None and self.accept_thread.is_alive()

    def start(self):
        """
        Bind the socket and start the accept thread.

        Raises:
            RuntimeError: If the server is already running
            OSError: If the socket cannot be bound or made non-blocking
        """
        if self.server_socket is not None:
            raise RuntimeError(f"IPC server already bound at {self.socket_path}")

        # Remove stale socket left by an unclean exit
        if os.path.exists(self.socket_path):
            os.remove(self.socket_path)

        server_socket = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            server_socket.bind(self.socket_path)
            server_socket.listen(16)
            os.chmod(self.socket_path, 0o600)
            server_socket.setblocking(False)
        except OSError:
            server_socket.close()
            raise

        self.server_socket = server_socket
        self._wake_r, self._wake_w = os.pipe()
        self._cancel = threading.Event()
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix='tts-overlay-conn'
        )
        self.accepted_count = None

        self.accept_thread = threading.Thread(
            target=self._run,
            args=(self._cancel,),
            name='tts-overlay-accept',
            daemon=True
        )
        self.accept_thread.start()

        print(f"✓ Daemon listening on: {self.socket_path}", flush=True)

    def _run(self, cancel: threading.Event):
        self.accepted_count = self._accept_loop(cancel)
        print("Accept loop exiting.", flush=True)

    def _accept_loop(self, cancel: threading.Event) -> int:
        """
        Wait for connections until cancel is set.

        Returns:
            Number of connections accepted
        """
        accepted = 0
        with selectors.DefaultSelector() as selector:
            selector.register(self.server_socket, selectors.EVENT_READ)
            selector.register(self._wake_r, selectors.EVENT_READ)

            while not cancel.is_set():
                try:
                    events = selector.select()
                except OSError as e:
                    print(f"✗ Listener select error: {e}", file=sys.stderr, flush=True)
                    cancel.wait(self.retry_delay)
                    continue

                if cancel.is_set():
                    break

                for key, _ in events:
                    if key.fileobj is self.server_socket:
                        accepted += self._accept_pending(cancel)

        return accepted

    def _accept_pending(self, cancel: threading.Event) -> int:
        """Accept every queued connection; returns how many were dispatched"""
        accepted = 0
        while not cancel.is_set():
            try:
                conn, _ = self.server_socket.accept()
            except BlockingIOError:
                break
            except OSError as e:
                print(f"✗ Listener accept error: {e}", file=sys.stderr, flush=True)
                cancel.wait(self.retry_delay)
                break

            self._executor.submit(self._serve, conn)
            accepted += 1
        return accepted

    def _serve(self, conn: socket.socket):
        """Run the connection callback, isolating its failures"""
        try:
            self.on_connection(conn)
        except Exception as e:
            print(f"✗ Client handler error: {e}", file=sys.stderr, flush=True)
        finally:
            conn.close()

    def stop(self, timeout: float = 2.0):
        """Stop accepting connections and remove the socket file."""
        if self._cancel is not None:
            self._cancel.set()
        if self._wake_w is not None:
            try:
                os.write(self._wake_w, b'\0')
            except OSError:
                pass

        # Wait for accept thread
        if self.accept_thread and self.accept_thread.is_alive():
            self.accept_thread.join(timeout=timeout)

        if self.accept_thread and self.accept_thread.is_alive():
            # Socket, pipe and pool stay open while the loop can still use them
            print("⚠️  Accept loop did not exit in time; leaving listener open",
                  file=sys.stderr, flush=True)
        else:
            self._release()

        # Remove socket file
        if os.path.exists(self.socket_path):
            try:
                os.remove(self.socket_path)
            except OSError as e:
                print(f"  Warning: Could not remove socket {self.socket_path}: {e}",
                      file=sys.stderr, flush=True)

    def _release(self):
        """Close the listener, wake pipe and pool once the accept loop is gone"""
        if self.server_socket:
            self.server_socket.close()
            self.server_socket = None

        for fd in (self._wake_r, self._wake_w):
            if fd is not None:
                os.close(fd)
        self._wake_r = self._wake_w = None

        # In-flight handlers keep running; only new work is refused
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None
