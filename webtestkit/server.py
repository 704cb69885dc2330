from __future__ import annotations

import selectors
import signal
import socket
import sys
import threading
import traceback
from collections.abc import Callable

import greenlet

from webtestkit.request import Request
from webtestkit.response import Response

HandlerFunc = Callable[[Request], Response]

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_CONFIG: dict[str, int] = {
    "max_header_size": 32768,
    "max_body_size": 1_048_576,
    "recv_size": 65536,
}
SELECT_TIMEOUT: float = 0.05  # upper bound on how long a stop() goes unnoticed


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def log(msg: str, *, source: str = "server") -> None:
    """Write a log line to stderr."""
    print(f"[{source}] {msg}", file=sys.stderr, flush=True)


# ---------------------------------------------------------------------------
# Socket creation
# ---------------------------------------------------------------------------


def _create_listen_socket(host: str, port: int, *, backlog: int = 1024) -> socket.socket:
    """Create a non-blocking TCP listening socket."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(backlog)
        sock.setblocking(False)
    except BaseException:
        sock.close()
        raise
    return sock


class _RequestTooLarge(Exception):
    """Request head or body exceeds the configured limit."""

    def __init__(self, status: int) -> None:
        super().__init__(status)
        self.status = status


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


class HttpServer:
    """Single-threaded HTTP/1.1 server: one hub greenlet, one greenlet per connection.

    Every greenlet that needs to wait for a socket registers in ``_waiting``
    and switches to the hub. Newly spawned greenlets go through the
    ``_ready`` queue, which the hub drains before blocking on I/O. The hub
    is the only greenlet that calls select().
    """

    def __init__(
        self,
        handler: HandlerFunc,
        listen_sock: socket.socket,
        config: dict[str, int] | None = None,
    ) -> None:
        self.handler = handler
        self.listen_sock = listen_sock
        self.config = {**DEFAULT_CONFIG, **(config or {})}
        self.running = False
        self._sel: selectors.DefaultSelector | None = None
        self._hub: greenlet.greenlet | None = None
        self._waiting: dict[int, greenlet.greenlet] = {}
        self._ready: list[greenlet.greenlet] = []

    # -- cooperative socket primitives --------------------------------------

    def _wait(self, sock: socket.socket, events: int) -> None:
        sel, hub = self._sel, self._hub
        if sel is None or hub is None:
            raise RuntimeError("socket wait outside a running server")
        fd = sock.fileno()
        sel.register(fd, events)
        self._waiting[fd] = greenlet.getcurrent()
        try:
            hub.switch()
        finally:
            sel.unregister(fd)

    def green_accept(self, sock: socket.socket) -> socket.socket:
        """Accept a connection, yielding to the hub until one is ready."""
        while True:
            self._wait(sock, selectors.EVENT_READ)
            try:
                conn, _ = sock.accept()
            except BlockingIOError:
                continue
            conn.setblocking(False)
            return conn

    def green_recv(self, sock: socket.socket, bufsize: int) -> bytes:
        """Read from a socket, yielding to the hub until data is available."""
        self._wait(sock, selectors.EVENT_READ)
        return sock.recv(bufsize)

    def green_sendall(self, sock: socket.socket, data: bytes) -> None:
        """Write all of *data*, yielding to the hub whenever the socket is full."""
        view = memoryview(data)
        while view:
            self._wait(sock, selectors.EVENT_WRITE)
            sent = sock.send(view)
            view = view[sent:]

    def spawn(self, fn: greenlet.greenlet) -> None:
        """Schedule a greenlet to be started on the next hub iteration."""
        self._ready.append(fn)

    # -- HTTP ---------------------------------------------------------------

    def _read_request(self, conn: socket.socket, buf: bytes) -> tuple[Request, bytes] | None:
        """Read one request from *conn*; returns it with any pipelined leftover.

        Returns None on a clean EOF between requests.

        Raises:
            ValueError: The request is malformed or truncated.
            _RequestTooLarge: A size limit was exceeded.
        """
        max_header_size = self.config["max_header_size"]
        recv_size = self.config["recv_size"]

        while b"\r\n\r\n" not in buf:
            if len(buf) > max_header_size:
                raise _RequestTooLarge(431)
            data = self.green_recv(conn, recv_size)
            if not data:
                if buf:
                    raise ValueError("connection closed mid-request")
                return None
            buf += data

        head, _, rest = buf.partition(b"\r\n\r\n")
        if len(head) > max_header_size:
            raise _RequestTooLarge(431)

        request = Request._from_raw(head, b"")
        if "transfer-encoding" in request.headers:
            raise ValueError("chunked request bodies are not supported")

        length_text = request.headers.get("content-length", "0")
        if not length_text.isdigit():
            raise ValueError(f"invalid Content-Length: {length_text!r}")
        length = int(length_text)
        if length > self.config["max_body_size"]:
            raise _RequestTooLarge(413)

        while len(rest) < length:
            data = self.green_recv(conn, recv_size)
            if not data:
                raise ValueError("connection closed mid-body")
            rest += data

        request.body = rest[:length]
        return request, rest[length:]

    def _try_send_error(self, conn: socket.socket, status_code: int) -> None:
        """Best-effort error response. Does NOT close the connection."""
        response = Response.error(status_code)
        try:
            self.green_sendall(conn, response.to_bytes(keep_alive=False))
        except OSError:
            pass

    def _handle_connection(self, conn: socket.socket) -> None:
        """Per-connection greenlet: read, hand the request to the entrypoint, write, repeat."""
        buf = b""
        try:
            while self.running:
                result = self._read_request(conn, buf)
                if result is None:
                    return
                request, buf = result

                try:
                    response = self.handler(request)
                except Exception:
                    log(f"unhandled error for {request.method} {request.full_path}")
                    log(traceback.format_exc())
                    self._try_send_error(conn, 500)
                    return

                keep_alive = request.keep_alive and self.running
                self.green_sendall(conn, response.to_bytes(keep_alive=keep_alive))
                if not keep_alive:
                    return
        except ValueError:
            self._try_send_error(conn, 400)
        except _RequestTooLarge as e:
            self._try_send_error(conn, e.status)
        except OSError:
            pass  # network error, just close
        finally:
            conn.close()

    def _acceptor(self) -> None:
        """Accept loop: runs in its own greenlet, spawns handlers."""
        while self.running:
            try:
                conn = self.green_accept(self.listen_sock)
            except OSError as e:
                if self.running:
                    log(f"acceptor error: {e}")
                break
            worker = greenlet.greenlet(
                lambda c=conn: self._handle_connection(c),
                parent=self._hub,
            )
            self.spawn(worker)

    # -- lifecycle ----------------------------------------------------------

    def stop(self) -> None:
        """Ask the hub loop to exit. Safe to call from another thread or a signal handler."""
        self.running = False

    def run(self) -> None:
        """Run the hub loop. Blocks until stop() is called."""
        self._sel = selectors.DefaultSelector()
        self._hub = greenlet.getcurrent()
        self.running = True

        acceptor_g = greenlet.greenlet(self._acceptor, parent=self._hub)
        self._ready.append(acceptor_g)

        try:
            while self.running:
                while self._ready:
                    g = self._ready.pop(0)
                    if not g.dead:
                        g.switch()

                events = self._sel.select(timeout=SELECT_TIMEOUT)
                for key, _ in events:
                    worker = self._waiting.pop(key.fd, None)
                    if worker is not None and not worker.dead:
                        worker.switch()
        finally:
            # Unwind parked greenlets so their sockets get closed
            parked = list(self._waiting.values())
            self._waiting.clear()
            for g in parked:
                if not g.dead:
                    g.throw()
            self._ready.clear()
            self.listen_sock.close()
            self._sel.close()


# ---------------------------------------------------------------------------
# Signals
# ---------------------------------------------------------------------------


def _install_signal_handlers(server: HttpServer) -> Callable[[], None]:
    """Stop *server* on SIGTERM / SIGINT. Returns a function restoring the old handlers."""
    if threading.current_thread() is not threading.main_thread():
        return lambda: None

    def _on_signal(signum: int, frame: object) -> None:
        log(f"received {signal.Signals(signum).name}, shutting down")
        server.stop()

    original_sigterm = signal.signal(signal.SIGTERM, _on_signal)
    original_sigint = signal.signal(signal.SIGINT, _on_signal)

    def restore() -> None:
        signal.signal(signal.SIGTERM, original_sigterm)
        signal.signal(signal.SIGINT, original_sigint)

    return restore


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def serve(
    handler: HandlerFunc,
    host: str = "127.0.0.1",
    port: int = 8000,
    *,
    _ready: threading.Event | None = None,
    config: dict[str, int] | None = None,
) -> None:
    """Start the HTTP server.

    Args:
        handler: Entrypoint called with each parsed Request; returns the Response to send.
        host: Address to bind to.
        port: Port to bind to.
        _ready: Event set once the socket is listening.
        config: Optional overrides for DEFAULT_CONFIG. Supported keys:
                max_header_size, max_body_size, recv_size.
    """
    sock = _create_listen_socket(host, port)
    server = HttpServer(handler, sock, config)
    restore_signals = _install_signal_handlers(server)
    log(f"listening on {host}:{port}")

    if _ready is not None:
        _ready.set()

    try:
        server.run()
    finally:
        restore_signals()
        log("stopped")
