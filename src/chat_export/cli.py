from __future__ import annotations

import asyncio
import json
import signal
import sys
from typing import Optional

import typer
from loguru import logger

from .config import ExportSettings, load_config
from .errors import ChatExportError, ConfigError
from .log import configure_logging, fatal
from .pipeline import PipelineOrchestrator
from .sinks import FanoutWriter, build_sinks
from .transport import load_transport

app = typer.Typer(help="Chat history export CLI")


def config_arg() -> str:
    return typer.Argument(..., help="Path to the JSON config file", envvar="CHAT_EXPORT_CONFIG")


def _signal_handler(orchestrator: PipelineOrchestrator, task: Optional[asyncio.Task]):
    def on_signal() -> None:
        if orchestrator.shutdown_requested:
            logger.info("Shutdown already in progress")
            return
        orchestrator.request_shutdown()
        # Mid-backfill there is nothing to wait on; interrupt the read loop.
        if not orchestrator.watching and task is not None:
            task.cancel()

    return on_signal


async def _run(settings: ExportSettings) -> None:
    if not settings.transport:
        raise ConfigError("No transport configured (set 'transport' to 'module:factory')")
    transport = load_transport(settings.transport, settings)
    writer = FanoutWriter(build_sinks(settings))
    orchestrator = PipelineOrchestrator(settings, transport, writer)

    loop = asyncio.get_running_loop()
    on_signal = _signal_handler(orchestrator, asyncio.current_task())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, on_signal)
        except NotImplementedError:  # Windows
            pass

    try:
        await orchestrator.run()
    except asyncio.CancelledError:
        logger.info("Export interrupted")


@app.command()
def run(
    config: str = config_arg(),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override log level"),
    metrics_port: Optional[int] = typer.Option(
        None, "--metrics-port", help="Expose Prometheus metrics on this port"
    ),
):
    """Backfill the configured chats and, if enabled, keep watching them."""
    try:
        settings = load_config(config)
    except ConfigError as e:
        configure_logging(log_level or "INFO")
        fatal(str(e))
        sys.exit(1)

    configure_logging(log_level or settings.log_level)
    logger.info("Initializing")

    if metrics_port is not None:
        from prometheus_client import start_http_server

        start_http_server(metrics_port)
        logger.info(f"Prometheus metrics available at http://localhost:{metrics_port}/metrics")

    try:
        asyncio.run(_run(settings))
    except ChatExportError as e:
        fatal(str(e))
        sys.exit(1)
    except Exception as e:
        fatal(f"{type(e).__name__}: {e}")
        sys.exit(1)


@app.command("check-config")
def check_config(config: str = config_arg()):
    """Validate a config file and print the effective settings."""
    try:
        settings = load_config(config)
    except ConfigError as e:
        typer.echo(f"[Fatal error] {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(settings.model_dump(), indent=2))


if __name__ == "__main__":
    app()
