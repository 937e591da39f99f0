"""Command-line interface for the cast mirror."""

import asyncio
import json
import logging
import signal
import sys
from typing import Optional

import typer
from typing_extensions import Annotated

from cast_mirror.components import Components, build_components
from cast_mirror.config import Config
from cast_mirror.exceptions import CastMirrorError
from cast_mirror.monitoring.metrics import PrometheusExporter
from cast_mirror.services.votes import parse_direction
from cast_mirror.utils.logging_utils import setup_logging

app = typer.Typer(help="Cast Mirror - mirror a Farcaster channel feed with local voting")

logger = logging.getLogger(__name__)

ConfigOption = Annotated[str, typer.Option("--config", "-c", help="Path to configuration file")]
LogLevelOption = Annotated[str, typer.Option("--loglevel", "-l", help="Logging level")]

# Scheduler reference for signal handling in daemon mode
_scheduler = None


def load_config(config_path: str, require_feed: Optional[bool] = True) -> Config:
    """
    Load and validate configuration, exiting on errors.

    Args:
        config_path: Path to the YAML configuration file
        require_feed: Whether a missing feed API key is fatal; None makes it
            fatal only when the API runs the scheduler itself
    """
    config = Config.from_files(config_path)
    validation_errors = config.validate()
    if require_feed is None:
        require_feed = config.api.run_scheduler
    if not require_feed:
        validation_errors = [e for e in validation_errors if "NEYNAR_API_KEY" not in e]

    if validation_errors:
        for error in validation_errors:
            logger.error(f"Configuration error: {error}")
        logger.critical("Invalid configuration, aborting")
        sys.exit(1)
    return config


def build_exporter(config: Config) -> Optional[PrometheusExporter]:
    if not config.monitoring.enable_prometheus:
        return None
    exporter = PrometheusExporter(port=config.monitoring.prometheus_port)
    exporter.start_server()
    return exporter


async def run_sync_once(components: Components) -> int:
    """Run one cycle and print its summary. Returns the process exit code."""
    try:
        result = await components.synchronizer.run_once()
    except CastMirrorError as e:
        logger.error(f"Sync failed ({e.kind}): {e.detail}")
        typer.echo(json.dumps({"error": e.message, "kind": e.kind, "details": e.detail}))
        return 1
    finally:
        await components.close()

    typer.echo(json.dumps({"message": "Casts processed", **result.to_dict()}))
    return 0


async def run_daemon(components: Components) -> None:
    """Run the scheduler until SIGINT/SIGTERM."""
    global _scheduler
    _scheduler = components.scheduler

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, handle_shutdown_signal, sig)
        except NotImplementedError:
            # Signal handlers are unavailable on this platform's event loop
            pass

    try:
        await components.scheduler.run_daemon()
    finally:
        _scheduler = None
        await components.close()


def handle_shutdown_signal(signum) -> None:
    """Handle shutdown signals (SIGTERM, SIGINT)."""
    signal_name = signal.Signals(signum).name
    logger.info(f"Received {signal_name} signal, initiating graceful shutdown")
    if _scheduler:
        _scheduler.stop()


@app.command()
def sync(
    config: ConfigOption = "config.yaml",
    loglevel: LogLevelOption = "INFO",
) -> None:
    """Run a single sync cycle against the upstream feed."""
    setup_logging(loglevel)
    cfg = load_config(config)
    components = build_components(cfg)
    exit_code = asyncio.run(run_sync_once(components))
    raise typer.Exit(code=exit_code)


@app.command()
def daemon(
    config: ConfigOption = "config.yaml",
    loglevel: LogLevelOption = "INFO",
) -> None:
    """Run sync cycles on a fixed schedule (sync_interval_sec)."""
    setup_logging(loglevel)
    cfg = load_config(config)
    exporter = build_exporter(cfg)
    components = build_components(cfg, prometheus_exporter=exporter)

    logger.info(f"Starting Cast Mirror daemon (interval={cfg.sync_interval_sec}s)")
    try:
        asyncio.run(run_daemon(components))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")


@app.command()
def serve(
    config: ConfigOption = "config.yaml",
    loglevel: LogLevelOption = "INFO",
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Bind port")] = None,
) -> None:
    """Serve the HTTP API."""
    import uvicorn

    from cast_mirror.api.main import create_app

    setup_logging(loglevel)
    cfg = load_config(config, require_feed=None)
    exporter = build_exporter(cfg)
    api = create_app(cfg, prometheus_exporter=exporter)
    uvicorn.run(api, host=host or cfg.api.host, port=port or cfg.api.port, log_config=None)


@app.command("list")
def list_casts(
    config: ConfigOption = "config.yaml",
    loglevel: LogLevelOption = "WARNING",
    limit: Annotated[int, typer.Option("--limit", "-n", help="Number of casts to show")] = 20,
) -> None:
    """Print the top ranked casts."""
    setup_logging(loglevel)
    cfg = load_config(config, require_feed=False)
    components = build_components(cfg)

    try:
        for position, record in enumerate(components.reader.list_ranked()[:limit], start=1):
            author = record.payload.get("author") or {}
            name = author.get("username", "?") if isinstance(author, dict) else "?"
            text = str(record.payload.get("text", "")).replace("\n", " ")[:80]
            typer.echo(f"{position:>3}. [{record.votes:+d}] {record.id} @{name}: {text}")
    finally:
        asyncio.run(components.close())


@app.command()
def show(
    cast_hash: Annotated[str, typer.Argument(help="Hash of the cast")],
    config: ConfigOption = "config.yaml",
    loglevel: LogLevelOption = "WARNING",
) -> None:
    """Print one stored cast as JSON."""
    setup_logging(loglevel)
    cfg = load_config(config, require_feed=False)
    components = build_components(cfg)

    try:
        record = components.reader.get(cast_hash)
    except CastMirrorError as e:
        typer.echo(f"{e.kind}: {e.detail}", err=True)
        raise typer.Exit(code=1)
    except ValueError as e:
        typer.echo(f"store_failure: Stored cast {cast_hash} is corrupt: {str(e)}", err=True)
        raise typer.Exit(code=1)
    finally:
        asyncio.run(components.close())
    typer.echo(json.dumps(record.to_dict()))


@app.command()
def vote(
    cast_hash: Annotated[str, typer.Argument(help="Hash of the cast")],
    action: Annotated[str, typer.Argument(help="'upvote' or 'downvote'")],
    config: ConfigOption = "config.yaml",
    loglevel: LogLevelOption = "WARNING",
) -> None:
    """Record a single vote on a stored cast."""
    setup_logging(loglevel)
    cfg = load_config(config, require_feed=False)
    components = build_components(cfg)

    try:
        record = components.votes.vote(cast_hash, parse_direction(action))
    except CastMirrorError as e:
        typer.echo(f"{e.kind}: {e.detail}", err=True)
        raise typer.Exit(code=1)
    finally:
        asyncio.run(components.close())
    typer.echo(json.dumps(record.to_dict()))


if __name__ == "__main__":
    app()
