"""Command line interface for the webhook dispatcher."""

import json
import signal
import sys
import threading
from pathlib import Path
from typing import Optional

import click
import structlog

from webhook_dispatcher.api import start_api_server, stop_api_server
from webhook_dispatcher.config import DispatcherConfig
from webhook_dispatcher.dispatcher import WebhookDispatcher
from webhook_dispatcher.logging_config import configure_logging
from webhook_dispatcher.metrics import start_metrics_server
from webhook_dispatcher.webhook.signer import sign, verify as verify_signature

logger = structlog.get_logger(__name__)


def load_config(config_path: Optional[Path] = None) -> DispatcherConfig:
    """Load configuration from a JSON file, falling back to the environment.

    Args:
        config_path: Path to the configuration file.

    Returns:
        DispatcherConfig with file values layered over environment values.
    """
    config = DispatcherConfig.from_env()
    if config_path and config_path.exists():
        with open(config_path) as f:
            user_config = json.load(f)
        merged = {**config.__dict__, **user_config}
        return DispatcherConfig.from_dict(merged)
    return config


@click.group()
def cli():
    """Webhook Dispatcher CLI"""
    pass


@cli.command()
@click.option(
    "--config", "-c", type=click.Path(exists=True, path_type=Path), help="Path to config file"
)
@click.option("--host", default="localhost", help="API bind address")
@click.option("--port", default=8080, type=int, help="API port")
@click.option("--no-metrics", is_flag=True, help="Do not start the Prometheus metrics server")
def serve(config: Optional[Path], host: str, port: int, no_metrics: bool):
    """Run the API and delivery workers until interrupted."""
    try:
        cfg = load_config(config)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    configure_logging(cfg.log_level, cfg.log_json)

    dispatcher = WebhookDispatcher(cfg)
    dispatcher.start()
    if not no_metrics:
        start_metrics_server(cfg.metrics_port)
    start_api_server(host, port, dispatcher)
    click.echo(f"Webhook dispatcher listening on http://{host}:{port}")

    stop_requested = threading.Event()

    def handle_signal(signum, frame):
        stop_requested.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)
    stop_requested.wait()

    stop_api_server()
    abandoned = dispatcher.shutdown(timeout=cfg.request_timeout)
    click.echo(f"Stopped; {abandoned} pending deliveries abandoned")


@cli.command("sign")
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--secret", required=True, envvar="WEBHOOK_SECRET", help="Signing secret")
def sign_command(payload_file: Path, secret: str):
    """Print the signature of a payload file's exact bytes."""
    click.echo(sign(payload_file.read_bytes(), secret))


@cli.command()
@click.argument("payload_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--secret", required=True, envvar="WEBHOOK_SECRET", help="Signing secret")
@click.option("--signature", required=True, help="Value of the X-Webhook-Signature header")
def verify(payload_file: Path, secret: str, signature: str):
    """Check a received signature against the payload file."""
    if verify_signature(payload_file.read_bytes(), secret, signature):
        click.echo("Signature is valid")
        return
    click.echo("Signature does not match", err=True)
    sys.exit(1)


if __name__ == "__main__":
    cli()
