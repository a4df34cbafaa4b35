"""
Playcast Server - Entry Point

Run with: python -m playcast
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from playcast import __version__
from playcast.config import PluginConfig, load_config
from playcast.exceptions import PlaycastError
from playcast.server import PlaybackServer


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="playcast",
        description="Playcast - serve the current playback info over HTTP and WebSocket",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="Path to a TOML config file (default: packaged defaults)",
    )

    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host address to bind to (overrides config)",
    )

    parser.add_argument(
        "-p",
        "--port",
        type=int,
        default=None,
        help="Listening port (overrides config, default: 23232)",
    )

    parser.add_argument(
        "--enable",
        action="store_true",
        help="Start the server even if the config has enabled = false",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PluginConfig:
    """Load the config file and apply command line overrides."""
    config = load_config(args.config)
    return config.replace(
        host=args.host,
        port=args.port,
        enabled=True if args.enable else None,
    )


async def run_server(config: PluginConfig) -> None:
    """Start and run the Playcast server."""
    server = PlaybackServer(config)
    await server.run()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)

    try:
        config = build_config(args)
    except PlaycastError as e:
        logger.error("%s", e)
        return 1

    if not config.enabled:
        logger.warning("Server is disabled; set enabled = true in the config or pass --enable")
        return 0

    logger.info("Starting Playcast server...")

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except PlaycastError as e:
        logger.error("Fatal error: %s", e)
        return 1
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1

    logger.info("Server stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
