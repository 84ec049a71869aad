"""
Process entry point.

Usage:
    demo-web
    demo-web -jaeger-endpoint http://localhost:4318/v1/traces
    demo-web --port 8080 --no-random-result
"""

from __future__ import annotations

import argparse
import contextlib
import signal
import sys
import threading
from types import FrameType
from typing import Any, Dict, Iterator, List, Optional

import uvicorn

from .core.config import Settings, get_settings
from .core.context import StartupError, build_context
from .main import create_app
from .observability.logging import get_logger, setup_logging

logger = get_logger("cli")


class GracefulServer(uvicorn.Server):
    """
    uvicorn server whose SIGINT/SIGTERM handling only asks it to stop.

    The stock handlers re-raise the signal once the server has shut down,
    which kills the process before the exit status is decided. Here
    ``run()`` simply returns after a graceful shutdown.
    """

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        previous = {
            sig: signal.signal(sig, self.request_exit)
            for sig in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            yield
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def request_exit(self, sig: int, frame: Optional[FrameType]) -> None:
        # A second Ctrl-C skips waiting for open connections.
        if self.should_exit and sig == signal.SIGINT:
            self.force_exit = True
        else:
            logger.info("Shutdown requested", extra={"signal": signal.Signals(sig).name})
            self.should_exit = True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="demo-web",
        description="Demo HTTP service: echo, health and failure-injection endpoints.",
    )
    parser.add_argument(
        "-jaeger-endpoint",
        "--jaeger-endpoint",
        dest="jaeger_endpoint",
        default="",
        help="Trace collector endpoint (overrides JAEGER_TRACE_URL)",
    )
    parser.add_argument("--host", default=None, help="Bind host")
    parser.add_argument("--port", type=int, default=None, help="Bind port")
    parser.add_argument(
        "--no-random-result",
        dest="enable_random_result",
        action="store_false",
        default=None,
        help="Do not mount /randomResult",
    )
    return parser


def resolve_settings(args: argparse.Namespace, settings: Optional[Settings] = None) -> Settings:
    """Apply command-line overrides on top of environment settings."""
    settings = settings or get_settings()
    update: Dict[str, Any] = {}

    # Flag wins over JAEGER_TRACE_URL when given.
    if args.jaeger_endpoint:
        update["jaeger_trace_url"] = args.jaeger_endpoint
    if args.host is not None:
        update["host"] = args.host
    if args.port is not None:
        update["port"] = args.port
    if args.enable_random_result is not None:
        update["enable_random_result"] = args.enable_random_result

    return settings.model_copy(update=update) if update else settings


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = resolve_settings(args)
    server_cfg = settings.server

    setup_logging(server_cfg.log_level)
    logger.info("GIT Version: %s @ %s", settings.build.branch, settings.build.hash)

    try:
        ctx = build_context(settings, install_global=True)
    except StartupError as exc:
        logger.critical("Startup failed", extra={"error": str(exc)})
        return 1

    app = create_app(ctx)

    # Bind failures make uvicorn exit with status 1 on its own.
    server = GracefulServer(
        uvicorn.Config(
            app,
            host=server_cfg.host,
            port=server_cfg.port,
            access_log=False,
            log_config=None,
        )
    )
    server.run()

    if not app.state.trace_flushed:
        return 1

    logger.info("Exiting cleanly")
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
