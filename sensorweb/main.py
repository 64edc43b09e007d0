from __future__ import annotations
import argparse
import logging
import os
import signal
import sys
import time
from typing import Callable, List, Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .buffer import ReadingBuffer
from .config import SENSOR_KINDS, TRANSPORTS, Settings
from .fastcgi import serve_fastcgi
from .routes import router
from .sensors.interface import SensorReadError
from .sensors.manager import SensorPoller, make_sensor
from .service import SensorService

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGHUP, signal.SIGINT, signal.SIGTERM)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(name)s: %(message)s'
    )
    logging.getLogger("sensorweb").setLevel(level)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log request and response information."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()
        client_ip = request.client.host if request.client else "unknown"

        query_params = dict(request.query_params) if request.query_params else None
        logger.debug(
            f"Request: {request.method} {request.url.path} | "
            f"IP: {client_ip} | "
            f"Query: {query_params}"
        )

        response = await call_next(request)

        process_time = time.time() - start_time
        # the browser polls GET several times a second, keep those out of INFO
        log = logger.info if request.method != "GET" else logger.debug
        log(
            f"Response: {request.method} {request.url.path} | "
            f"Status: {response.status_code} | "
            f"Time: {process_time:.3f}s"
        )
        return response


def create_app(service: SensorService) -> FastAPI:
    app = FastAPI(title="Sensor Web API", version="0.1.0")
    app.state.service = service
    app.add_middleware(LoggingMiddleware)
    app.include_router(router)
    return app


def serve_http(app: FastAPI, settings: Settings) -> None:
    """Serve with uvicorn on a TCP port, or on the Unix socket if no port is set."""
    if settings.http_port:
        config = uvicorn.Config(app, host=settings.http_host, port=settings.http_port, log_level="warning")
        logger.info(f"HTTP listening on {settings.http_host}:{settings.http_port}")
    else:
        config = uvicorn.Config(app, uds=settings.socket_path, log_level="warning")
        logger.info(f"HTTP listening on {settings.socket_path}")
    server = uvicorn.Server(config)

    # uvicorn only handles SIGINT and SIGTERM and re-raises them on exit,
    # so all three end the server here instead of killing the process
    def _exit(signum, frame):
        server.should_exit = True

    for sig in SHUTDOWN_SIGNALS:
        signal.signal(sig, _exit)
    try:
        server.run()
    finally:
        if not settings.http_port:
            try:
                os.unlink(settings.socket_path)
            except FileNotFoundError:
                pass


class ShutdownRequested(Exception):
    """A shutdown signal arrived before the server loop took over the signals."""


def _request_shutdown(signum, frame):
    raise ShutdownRequested(signal.Signals(signum).name)


def run(settings: Settings, prog: str = "sensorweb") -> int:
    """
    Run one demo: sample the sensor in the background and serve the
    readings until SIGHUP, SIGINT or SIGTERM. Returns the exit code.
    """
    try:
        client = make_sensor(settings)
    except (SensorReadError, ValueError) as e:
        logger.error(f"Could not start sensor {settings.sensor_kind}: {e}")
        return 1

    buffer = ReadingBuffer(settings.resolved_buffer_size)

    def _on_failure(err: SensorReadError) -> None:
        # wakes up the server loop in the main thread which then shuts down
        signal.raise_signal(signal.SIGTERM)

    poller = SensorPoller(client, buffer, interval_s=settings.interval_s, on_failure=_on_failure)
    service = SensorService(buffer, client, poller)
    app = create_app(service)

    # until flup or uvicorn installs its own handlers a signal must still
    # end the program through the cleanup below
    previous = {sig: signal.signal(sig, _request_shutdown) for sig in SHUTDOWN_SIGNALS}
    try:
        poller.start()
        logger.info(f"'{prog}' up and running.")
        if settings.transport == "http":
            serve_http(app, settings)
        else:
            serve_fastcgi(app, settings.socket_path)
    except ShutdownRequested as e:
        logger.info(f"{e} received before the server was up")
    finally:
        for sig in SHUTDOWN_SIGNALS:
            signal.signal(sig, signal.SIG_IGN)
        logger.info(f"'{prog}' shutting down.")
        poller.stop()
        client.close()
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    return 1 if poller.failed else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sensorweb",
        description="Poll a sensor and serve the readings as JSON over FastCGI.",
    )
    parser.add_argument("--sensor", dest="sensor_kind", choices=SENSOR_KINDS, help="sensor driver")
    parser.add_argument("--socket", dest="socket_path", help="Unix socket shared with the web server")
    parser.add_argument("--transport", choices=TRANSPORTS, help="fastcgi (nginx) or http (uvicorn)")
    parser.add_argument("--port", dest="http_port", type=int, help="TCP port for the http transport")
    parser.add_argument("--ds18b20-path", dest="ds18b20_path",
                        help="temperature file, e.g. /sys/bus/w1/devices/28-3ce1e380ac02/temperature")
    parser.add_argument("--buffer-size", dest="buffer_size", type=int, help="readings kept in the buffer")
    parser.add_argument("--interval", dest="interval_s", type=float, help="seconds between readings")
    parser.add_argument("--log-level", dest="log_level", type=str.upper,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="logging level")
    return parser


def parse_settings(argv: Optional[List[str]] = None, base: Optional[Settings] = None) -> Settings:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = (base or Settings()).with_overrides(**vars(args))
    try:
        return settings.validate()
    except ValueError as e:
        parser.error(str(e))


def main(argv: Optional[List[str]] = None) -> int:
    settings = parse_settings(argv)
    configure_logging(settings.log_level)
    return run(settings, prog=os.path.basename(sys.argv[0]) or "sensorweb")


if __name__ == "__main__":
    sys.exit(main())
