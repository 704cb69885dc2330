from __future__ import annotations

import functools
import re
import traceback
from collections.abc import Callable
from dataclasses import dataclass, field

from webtestkit.request import Request
from webtestkit.response import Response, reason_phrase
from webtestkit.server import log, serve

RouteHandler = Callable[[Request, Response], None]
NextFn = RouteHandler
MiddlewareFunc = Callable[[Request, Response, NextFn], None]

_PARAM = re.compile(r"\{(\w+)\}")


def _pattern_regex(pattern: str) -> re.Pattern[str]:
    """'/users/{id}' -> '/users/(?P<id>[^/]+)', literal parts escaped."""
    # With one capture group, split() alternates literal text and param names
    pieces = _PARAM.split(pattern)
    return re.compile(
        "".join(
            f"(?P<{piece}>[^/]+)" if i % 2 else re.escape(piece)
            for i, piece in enumerate(pieces)
        )
    )


@dataclass(frozen=True)
class Route:
    pattern: str
    methods: frozenset[str]
    handler: RouteHandler
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "regex", _pattern_regex(self.pattern))

    def match(self, path: str) -> dict[str, str] | None:
        """Path parameters when *path* fits this route, else None."""
        m = self.regex.fullmatch(path)
        return None if m is None else m.groupdict()


def _call_middleware(
    middleware: MiddlewareFunc, next_fn: NextFn, request: Request, response: Response
) -> None:
    middleware(request, response, next_fn)


class Framework:
    """Application framework with routing and middleware.

    ``handle`` is the one entrypoint: the HTTP server and in-process tests
    both hand it a ``Request`` and get back a finished ``Response``.
    """

    def __init__(self) -> None:
        self.routes: list[Route] = []
        self._middleware: list[MiddlewareFunc] = []

    def route(
        self, path: str, methods: list[str] | None = None
    ) -> Callable[[RouteHandler], RouteHandler]:
        """Decorator: @app.route("/hello", methods=["GET"])"""
        allowed = frozenset(m.upper() for m in methods) if methods else frozenset({"GET"})

        def decorator(fn: RouteHandler) -> RouteHandler:
            self.routes.append(Route(path, allowed, fn))
            return fn

        return decorator

    def use(self, middleware: MiddlewareFunc) -> None:
        """Register middleware (executed in registration order)."""
        self._middleware.append(middleware)

    def _chain(self, handler: RouteHandler) -> RouteHandler:
        # Fold from the innermost handler outwards so the first middleware runs first
        return functools.reduce(
            lambda next_fn, mw: functools.partial(_call_middleware, mw, next_fn),
            reversed(self._middleware),
            handler,
        )

    def dispatch(self, request: Request, response: Response) -> None:
        """Fill *response* for *request*; handler errors propagate."""
        path_matched = False
        for route in self.routes:
            params = route.match(request.path)
            if params is None:
                continue
            if request.method not in route.methods:
                path_matched = True
                continue
            request.params = params
            self._chain(route.handler)(request, response)
            return

        status = 405 if path_matched else 404
        response.set_status(status)
        response.text(reason_phrase(status))

    def handle(self, request: Request) -> Response:
        """Turn *request* into a finished response.

        A handler that raises is logged and answered with
        ``Response.error(500)``, the same reply the server sends for any
        entrypoint failure.
        """
        response = Response()
        try:
            self.dispatch(request, response)
        except Exception:
            log(f"unhandled error for {request.method} {request.full_path}", source="app")
            log(traceback.format_exc(), source="app")
            return Response.error(500)
        return response

    def run(self, host: str = "127.0.0.1", port: int = 8000) -> None:
        """Serve ``handle`` and block until the server is told to stop."""
        serve(self.handle, host, port)
