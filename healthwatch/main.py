"""Entry point for healthwatch — `healthwatch -c config.toml` console script."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel

from healthwatch import __version__
from healthwatch.config import settings
from healthwatch.health import Config, ConfigError, RequestBuildError, Service, load_config

console = Console(stderr=True)
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="healthwatch",
        description="Probe an HTTP endpoint and run a command when it stays unhealthy",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=Path(settings.healthwatch_config) if settings.healthwatch_config else None,
        help="Path to the configuration file (TOML or YAML)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)
    if args.config is None:
        parser.error("the following arguments are required: -c/--config (or set HEALTHWATCH_CONFIG)")
    return args


def _print_banner(config: Config) -> None:
    grace = config.grace
    console.print(
        Panel.fit(
            f"[bold]healthwatch {__version__}[/bold]\n"
            f"Probe:   {config.request.method} {config.request.url}\n"
            f"Command: {config.command.command}\n"
            f"Grace:   every {grace.check_interval.total_seconds():g}s "
            f"(failed {grace.check_interval_failed.total_seconds():g}s), "
            f"{grace.retry_count} retries, "
            f"wait {grace.wait_after_command.total_seconds():g}s after command",
            title="healthwatch",
            border_style="green",
        )
    )


async def serve(service: Service) -> None:
    """Run the service until it fails, closing the HTTP client on the way out."""
    try:
        await service.run()
    finally:
        await service.aclose()


def main(argv: list[str] | None = None) -> None:
    """Load the config and run the watchdog. Only returns by exiting non-zero."""
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    try:
        config = load_config(args.config)
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    try:
        service = Service(config)
    except (OSError, ValueError) as e:
        logger.error("Could not create HTTP client: %s", e)
        sys.exit(1)

    _print_banner(config)

    try:
        asyncio.run(serve(service))
    except RequestBuildError as e:
        logger.error("Cannot build health request: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
        sys.exit(130)


if __name__ == "__main__":
    main()
