from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Any

from album_edge.config import YamlConfigLoader
from album_edge.config.models import AppConfig, ConfigLoadRequest
from album_edge.factory import build_fetcher, build_worker
from album_edge.logging import init_logging
from album_edge.offline.connectivity import ConnectivityMonitor
from album_edge.server import EdgeServer

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="album-edge", description="Album showcase edge cache")
    parser.add_argument(
        "--config",
        default="data/config/config.yaml",
        help="Path to config.yaml (default: data/config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True, help="Command to run")

    # Command: serve
    serve_parser = subparsers.add_parser("serve", help="Run the edge proxy in front of the upstream site")
    serve_parser.add_argument(
        "--run-seconds",
        type=float,
        default=None,
        help="Serve for N seconds then exit (useful for smoke testing).",
    )

    # Command: install
    subparsers.add_parser("install", help="Pre-cache the core assets and reconcile cache generations")

    # Command: offline-add
    add_parser = subparsers.add_parser("offline-add", help="Download resources into the offline cache")
    add_parser.add_argument("urls", nargs="+", help="Resource URLs, absolute or relative to the scope")

    # Command: offline-clear
    subparsers.add_parser("offline-clear", help="Remove every resource from the offline cache")

    return parser


class _LoggingClient:
    """Bus client that reports broadcast events to the log for CLI runs."""

    client_id = "cli"

    async def send(self, payload: dict[str, Any]) -> None:
        logger.info("event %s", " ".join(f"{k}={v}" for k, v in payload.items()))


async def _load_config(args: argparse.Namespace) -> AppConfig:
    loader = YamlConfigLoader()
    request = ConfigLoadRequest(
        yaml_path=args.config,
    )
    return await loader.load(request)


async def _serve(args: argparse.Namespace) -> None:
    config = await _load_config(args)
    init_logging(config.logging)
    logger.info("Starting edge server. version=%s", config.app.version)

    async with build_fetcher(config) as fetcher:
        worker = build_worker(config, fetcher)
        monitor = None
        if config.connectivity.enabled:
            monitor = ConnectivityMonitor(
                probe=worker.probe_origin,
                on_restored=worker.on_connectivity_restored,
                interval_seconds=config.connectivity.interval_seconds,
            )
        server = EdgeServer(config=config, worker=worker, monitor=monitor)
        await server.serve(run_seconds=args.run_seconds)


async def _install(args: argparse.Namespace) -> None:
    config = await _load_config(args)
    init_logging(config.logging)

    async with build_fetcher(config) as fetcher:
        worker = build_worker(config, fetcher)
        cached = await worker.install()
        if not worker.controlling:
            await worker.activate()
        logger.info("Install completed. core_cached=%d", cached)


async def _offline_add(args: argparse.Namespace) -> None:
    config = await _load_config(args)
    init_logging(config.logging)

    async with build_fetcher(config) as fetcher:
        worker = build_worker(config, fetcher)
        worker.bus.register(_LoggingClient())
        report = await worker.offline.add_resources(args.urls)
        for url in report.skipped:
            logger.warning("Not available offline. url=%s", url)
        logger.info(
            "Offline download completed. cached=%d skipped=%d",
            len(report.cached),
            len(report.skipped),
        )


async def _offline_clear(args: argparse.Namespace) -> None:
    config = await _load_config(args)
    init_logging(config.logging)

    async with build_fetcher(config) as fetcher:
        worker = build_worker(config, fetcher)
        removed = await worker.offline.clear_current()
        logger.info("Offline cache cleared. removed=%d", removed)


async def _main_async() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    if args.command == "serve":
        await _serve(args)
    elif args.command == "install":
        await _install(args)
    elif args.command == "offline-add":
        await _offline_add(args)
    elif args.command == "offline-clear":
        await _offline_clear(args)


def main() -> None:
    try:
        asyncio.run(_main_async())
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")


if __name__ == "__main__":
    main()
