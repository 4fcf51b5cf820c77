"""Run the pairing/status process: ``python -m pykaya`` or ``pykaya``."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Any

from pykaya.config import KayaConfig
from pykaya.exceptions import KayaConfigError
from pykaya.manager import SessionManager
from pykaya.web import create_app, run_web_app

_logger = logging.getLogger("pykaya")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pykaya",
        description="Keep a linked-device session alive and serve its pairing code over HTTP.",
    )
    parser.add_argument("--port", type=int, default=None, help="Status page port (env: PORT, default 3000).")
    parser.add_argument(
        "--auth-path",
        default=None,
        help="Credential store file (env: AUTH_FILE_PATH, default ./auth_info).",
    )
    parser.add_argument("--log-level", default=None, help="Logging level (env: LOG_LEVEL, default info).")
    parser.add_argument("--broker-host", default=None, help="Link broker host (env: KAYA_BROKER_HOST).")
    parser.add_argument("--broker-port", type=int, default=None, help="Link broker port (env: KAYA_BROKER_PORT).")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> KayaConfig:
    """Environment configuration with command-line overrides applied."""
    overrides: dict[str, Any] = {}
    if args.port is not None:
        overrides["listen_port"] = args.port
    if args.auth_path is not None:
        overrides["auth_path"] = args.auth_path
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    broker: dict[str, Any] = {}
    if args.broker_host is not None:
        broker["host"] = args.broker_host
    if args.broker_port is not None:
        broker["port"] = args.broker_port
    if broker:
        overrides["broker"] = broker
    return KayaConfig.from_env(**overrides)


async def serve(config: KayaConfig, stop_event: asyncio.Event | None = None) -> None:
    """Serve the status page and keep the session alive until *stop_event* is set."""
    stop = stop_event or asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop.set)
        except (NotImplementedError, RuntimeError):
            _logger.debug("Signal handler for %s unavailable", signum)

    async with SessionManager(config) as manager:
        runner = await run_web_app(create_app(manager.snapshot), config.listen_port)
        try:
            await manager.start()
            await stop.wait()
            _logger.info("Shutting down")
        finally:
            await runner.cleanup()


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config = build_config(args)
    except KayaConfigError as exc:
        print(f"pykaya: {exc}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level_number,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(serve(config))
    return 0


if __name__ == "__main__":
    sys.exit(main())
