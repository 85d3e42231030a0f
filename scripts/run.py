#!/usr/bin/env python3
"""Service entrypoint — wires the pipeline, starts the worker and the HTTP API.

Usage::

    # Run with default config
    python scripts/run.py

    # Custom config file
    python scripts/run.py --config config/settings.yaml

    # Override log level / port
    python scripts/run.py --log-level DEBUG --port 3001
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

import structlog

from alerting.api.app import start_api_server
from alerting.core.config import load_settings
from alerting.core.logging import setup_logging
from alerting.factory import create_pipeline

logger = structlog.get_logger(__name__)


async def run(args: argparse.Namespace) -> int:
    """Start the worker and API and run until interrupted."""
    settings = load_settings(args.config)
    setup_logging(level=args.log_level, fmt=args.log_format)

    host = args.host or settings.server.host
    port = args.port or settings.server.port

    pipeline = create_pipeline(settings)
    logger.info(
        "service_starting",
        host=host,
        port=port,
        seeded_preferences=len(settings.preferences),
        custom_rules=settings.rules is not None,
    )

    await pipeline.start()
    try:
        runner = await start_api_server(
            pipeline, host=host, port=port, service_name=settings.server.service_name
        )
    except OSError:
        logger.exception("api_bind_failed", host=host, port=port)
        await pipeline.stop()
        return 1

    logger.info("service_running", health=f"http://{host}:{port}/health")

    # ── Wait for shutdown signal ─────────────────────────────────
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows: signal handlers not supported on ProactorEventLoop
            pass

    try:
        await stop_event.wait()
    except KeyboardInterrupt:
        logger.info("keyboard_interrupt")

    # ── Graceful shutdown ────────────────────────────────────────
    logger.info("service_shutting_down")
    await runner.cleanup()
    await pipeline.stop()

    stats = pipeline.queue_stats()
    logger.info(
        "service_stopped",
        **{name: s.model_dump() for name, s in stats.items()},
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Alerting service")
    parser.add_argument("--config", default=None, help="Path to settings YAML")
    parser.add_argument("--log-level", default=None, help="Override log level")
    parser.add_argument(
        "--log-format", default=None, choices=["json", "console"], help="Override log renderer"
    )
    parser.add_argument("--host", default=None, help="Override bind host")
    parser.add_argument("--port", type=int, default=None, help="Override bind port")
    args = parser.parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
