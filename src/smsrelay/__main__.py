"""CLI entry point for the SMS relay."""

import logging
import os
from pathlib import Path

import typer
import uvicorn
from dotenv import load_dotenv
from typing_extensions import Annotated

from .core.config import Settings, resolve_settings
from .core.exceptions import ConfigurationError
from .server import CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH, create_app

app = typer.Typer(
    name="smsrelay",
    help="Slack thread <-> Twilio SMS relay"
)


def _load(config: Path) -> Settings:
    """Load settings from YAML, or from the environment when the file is absent."""
    load_dotenv()
    return resolve_settings(config)


@app.command()
def run(
    host: Annotated[str, typer.Option("--host", "-h", help="Host to bind to")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port to bind to")] = 3000,
    log_level: Annotated[str, typer.Option("--log-level", help="Log level")] = "INFO",
    reload: Annotated[bool, typer.Option("--reload", help="Enable auto-reload for development")] = False,
    config: Annotated[Path, typer.Option("--config", "-c", help="Path to YAML config file")] = Path(DEFAULT_CONFIG_PATH),
):
    """Run the relay server."""

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        settings = _load(config)
    except ConfigurationError as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Starting SMS relay on {host}:{port}")
    typer.echo(f"Twilio webhook: {settings.inbound_url}")
    typer.echo(f"Slack events: {settings.public_base_url}{settings.outbound_path}")

    if reload:
        # The reloader re-imports the app in a child process, so pass the
        # config path through the environment and the app as an import string
        os.environ[CONFIG_ENV_VAR] = str(config.absolute())
        target = "smsrelay.server:app_from_config"
        options = {"factory": True, "reload": True}
    else:
        target = create_app(settings)
        options = {}

    try:
        uvicorn.run(
            target,
            host=host,
            port=port,
            log_level=log_level.lower(),
            **options
        )
    except KeyboardInterrupt:
        typer.echo("\nShutting down...")


@app.command()
def validate_config(
    config: Annotated[Path, typer.Option("--config", "-c", help="Path to YAML config file")] = Path(DEFAULT_CONFIG_PATH),
):
    """Validate configuration without starting the server."""
    try:
        settings = _load(config)
    except ConfigurationError as e:
        typer.echo(f"❌ Configuration error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("✅ Configuration is valid")
    typer.echo(f"Slack channel: {settings.slack_channel_id}")
    typer.echo(f"Twilio Account SID: {settings.twilio_account_sid[:8]}...")
    typer.echo(f"From number: {settings.twilio_from_number}")
    typer.echo(f"Twilio webhook URL: {settings.inbound_url}")
    typer.echo(f"Thread text fallback: {'on' if settings.thread_text_fallback else 'off'}")
    typer.echo(f"Log directory: {settings.log_dir.absolute()}")


if __name__ == "__main__":
    app()
