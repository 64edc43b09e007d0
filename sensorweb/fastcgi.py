"""
FastCGI binding

The FastAPI app is an ASGI application. a2wsgi turns it into a WSGI
application which flup's threaded FastCGI server serves on a Unix socket
that nginx talks to:

    location /sensor/ {
        include fastcgi_params;
        fastcgi_pass unix:/tmp/sensorsocket;
    }
"""
from __future__ import annotations
import logging
import os
from typing import Callable, Iterable
from urllib.parse import unquote

from a2wsgi import ASGIMiddleware
from flup.server.fcgi import WSGIServer

logger = logging.getLogger(__name__)

# socket becomes rw for everyone so the nginx worker can connect
DEFAULT_UMASK = 0o111

MISSING_PARAMS_HINT = "Please add 'include fastcgi_params;' to the nginx conf.\n"


class FastCGIEnviron:
    """
    WSGI middleware which makes the FastCGI environ look like a plain request.

    nginx passes the whole URI as SCRIPT_NAME, so the request path is taken
    from REQUEST_URI and SCRIPT_NAME is cleared. As WSGI expects, PATH_INFO
    carries the percent-decoded bytes as a latin-1 string. Without
    REQUEST_URI the web server did not send the standard parameters at
    all and the request is refused with a hint.
    """

    def __init__(self, app: Callable) -> None:
        self.app = app

    def __call__(self, environ: dict, start_response: Callable) -> Iterable[bytes]:
        request_uri = environ.get("REQUEST_URI")
        if request_uri is None:
            logger.error(MISSING_PARAMS_HINT.strip())
            start_response("500 Internal Server Error", [("Content-Type", "text/plain; charset=utf-8")])
            return [MISSING_PARAMS_HINT.encode("utf-8")]
        path, _, query = request_uri.partition("?")
        environ["SCRIPT_NAME"] = ""
        environ["PATH_INFO"] = unquote(path, encoding="latin-1") or "/"
        if not environ.get("QUERY_STRING"):
            environ["QUERY_STRING"] = query
        return self.app(environ, start_response)


def make_wsgi_app(asgi_app) -> FastCGIEnviron:
    return FastCGIEnviron(ASGIMiddleware(asgi_app))


def serve_fastcgi(asgi_app, socket_path: str, umask: int = DEFAULT_UMASK) -> bool:
    """
    Serve the app on a FastCGI Unix socket until SIGHUP, SIGINT or SIGTERM.

    Must be called from the main thread because flup installs the signal
    handlers itself. Returns True if the server was stopped by SIGHUP.
    """
    server = WSGIServer(
        make_wsgi_app(asgi_app),
        bindAddress=socket_path,
        umask=umask,
        multithreaded=True,
        debug=False,
    )
    logger.info(f"FastCGI listening on {socket_path}")
    try:
        return bool(server.run())
    finally:
        try:
            os.unlink(socket_path)
        except FileNotFoundError:
            pass
