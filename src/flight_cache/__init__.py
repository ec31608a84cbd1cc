"""Single-flight TTL cache for asynchronous producers."""

import asyncio
from dataclasses import replace
import json
import logging
from typing import Any

import click
from dotenv import load_dotenv

from .cache import CacheConfig, SingleFlightCache

__version__ = "0.1.0"

logger = logging.getLogger("flight-cache")


@click.group()
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (can be used multiple times)",
)
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to .env file",
)
def main(verbose: int, env_file: str | None) -> None:
    """Single-flight TTL cache for asynchronous producers."""
    logging_level = logging.WARNING
    if verbose == 1:
        logging_level = logging.INFO
    elif verbose >= 2:
        logging_level = logging.DEBUG

    logging.basicConfig(
        level=logging_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if env_file:
        logger.debug("Loading environment from file: %s", env_file)
        load_dotenv(env_file)
    else:
        load_dotenv()


async def _run_rounds(
    cache: SingleFlightCache[str],
    *,
    calls: int,
    rounds: int,
    interval_ms: int,
    invocations: dict[str, int],
) -> list[dict[str, Any]]:
    from .errors import normalize_error

    reports: list[dict[str, Any]] = []
    for index in range(rounds):
        if index and interval_ms:
            await asyncio.sleep(interval_ms / 1000.0)
        outcomes = await asyncio.gather(*[cache.get() for _ in range(calls)], return_exceptions=True)
        report: dict[str, Any] = {"round": index + 1}
        failure = next((item for item in outcomes if isinstance(item, BaseException)), None)
        if failure is not None:
            report.update(normalize_error(cache.event, failure))
        else:
            report["results"] = list(outcomes)
        report["producer_calls"] = invocations["count"]
        reports.append(report)
    return reports


@main.command("run", context_settings={"ignore_unknown_options": True})
@click.option("--expiry-ms", type=click.IntRange(min=0), default=None, help="Cache TTL in ms (0 = until cleared)")
@click.option("--event", default=None, help="Event label used in log records")
@click.option("--calls", type=click.IntRange(min=1), default=3, show_default=True, help="Concurrent get() calls per round")
@click.option("--rounds", type=click.IntRange(min=1), default=1, show_default=True, help="Number of rounds")
@click.option("--interval-ms", type=click.IntRange(min=0), default=0, show_default=True, help="Pause between rounds")
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def run_command(
    expiry_ms: int | None,
    event: str | None,
    calls: int,
    rounds: int,
    interval_ms: int,
    command: tuple[str, ...],
) -> None:
    """Cache the stdout of COMMAND and issue concurrent reads against it."""
    from .config import load_config
    from .producers import from_command

    try:
        config = load_config()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc

    invocations = {"count": 0}
    run_once = from_command(command)

    async def produce() -> str:
        invocations["count"] += 1
        return await run_once()

    if expiry_ms is not None:
        config = replace(config, expiry_ms=expiry_ms)
    if event:
        config = replace(config, event=event)
    cache = SingleFlightCache(config.cache_config(produce))

    reports = asyncio.run(
        _run_rounds(cache, calls=calls, rounds=rounds, interval_ms=interval_ms, invocations=invocations)
    )
    for report in reports:
        click.echo(json.dumps(report, ensure_ascii=False))
    if any("error" in report for report in reports):
        raise SystemExit(1)


__all__ = ["CacheConfig", "SingleFlightCache", "__version__", "main"]

if __name__ == "__main__":
    main()
