"""CLI commands for API management.

This module provides commands for managing the Worklog REST API,
including starting the server, generating tokens, and checking status.
"""

import sys
from pathlib import Path
from typing import Optional

import click

from worklog.api.auth import create_token_for_user
from worklog.cli.common import get_config


@click.group()
def api() -> None:
    """API server management commands."""
    pass


@api.command()
@click.option("--host", default=None, help="Host address (default: from config)")
@click.option("--port", type=int, default=None, help="Port number (default: from config)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--ssl-cert", type=click.Path(exists=True), help="Path to SSL certificate file")
@click.option("--ssl-key", type=click.Path(exists=True), help="Path to SSL key file")
@click.pass_context
def serve(
    ctx: click.Context,
    host: Optional[str],
    port: Optional[int],
    reload: bool,
    ssl_cert: Optional[str],
    ssl_key: Optional[str],
) -> None:
    """Start the API server.

    Examples:
        worklog api serve
        worklog api serve --host 0.0.0.0 --port 8080
        worklog api serve --ssl-cert cert.pem --ssl-key key.pem
    """
    from worklog.api.server import run_server

    config = get_config(ctx)

    if not config.get("api.enabled", False):
        click.echo(click.style("API is not enabled in configuration", fg="yellow"), err=True)
        click.echo("\nTo enable the API, run:")
        click.echo("  worklog config set api.enabled true")
        sys.exit(1)

    if config.get("api.authentication.enabled", True):
        config.ensure_api_secret_key()

    final_host = host or config.get("api.host", "localhost")
    final_port = port or config.get("api.port", 8000)

    ssl_cert_path = None
    ssl_key_path = None
    if ssl_cert and ssl_key:
        ssl_cert_path = Path(ssl_cert)
        ssl_key_path = Path(ssl_key)
    elif config.get("api.ssl.enabled", False):
        cert_file = config.get("api.ssl.cert_file")
        key_file = config.get("api.ssl.key_file")
        if cert_file and key_file:
            ssl_cert_path = Path(cert_file)
            ssl_key_path = Path(key_file)

    protocol = "https" if ssl_cert_path and ssl_key_path else "http"
    click.echo("Starting Worklog API server...")
    click.echo(f"   URL: {protocol}://{final_host}:{final_port}")
    click.echo(f"   Docs: {protocol}://{final_host}:{final_port}/docs")
    if reload:
        click.echo("   Mode: Development (auto-reload enabled)")
    click.echo()

    data_dir = ctx.find_root().obj.get("data_dir")
    try:
        run_server(
            host=final_host,
            port=final_port,
            reload=reload,
            workers=config.get("api.workers", 1),
            ssl_certfile=ssl_cert_path,
            ssl_keyfile=ssl_key_path,
            config=config,
            data_dir=Path(data_dir) if data_dir else None,
        )
    except KeyboardInterrupt:
        click.echo("\nShutting down API server...")


@api.command()
@click.option("--user-id", default="cli-user", help="User ID for the token")
@click.pass_context
def token(ctx: click.Context, user_id: str) -> None:
    """Create an authentication token.

    The expiry comes from api.authentication.token_expiry_hours.

    Examples:
        worklog api token
        worklog api token --user-id alice
    """
    config = get_config(ctx)
    try:
        token_data = create_token_for_user(config, user_id=user_id)
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(f"Token: {token_data['access_token']}")
    click.echo(f"Expires in: {token_data['expires_in'] // 3600} hours")
    click.echo()
    click.echo("Use this token in API requests:")
    click.echo(f"  Authorization: Bearer {token_data['access_token']}")


@api.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show API configuration status."""
    config = get_config(ctx)

    click.echo("Worklog API Status")
    click.echo("=" * 50)

    enabled = config.get("api.enabled", False)
    click.echo(f"\nAPI Enabled: {enabled}")

    if not enabled:
        click.echo("\nTo enable the API:")
        click.echo("  worklog config set api.enabled true")
        return

    click.echo("\nServer Configuration:")
    click.echo(f"  Host: {config.get('api.host', 'localhost')}")
    click.echo(f"  Port: {config.get('api.port', 8000)}")
    click.echo(f"  Workers: {config.get('api.workers', 1)}")

    click.echo("\nAuthentication:")
    auth_enabled = config.get("api.authentication.enabled", True)
    click.echo(f"  Enabled: {auth_enabled}")
    if auth_enabled:
        expiry = config.get("api.authentication.token_expiry_hours", 24)
        has_secret = bool(config.get("api.authentication.secret_key"))
        click.echo(f"  Token Expiry: {expiry} hours")
        click.echo(f"  Secret Key: {'Set' if has_secret else 'Not set'}")

    click.echo("\nCORS:")
    cors_enabled = config.get("api.cors.enabled", True)
    click.echo(f"  Enabled: {cors_enabled}")
    if cors_enabled:
        for origin in config.get("api.cors.origins", []):
            click.echo(f"    - {origin}")

    click.echo("\nSSL/TLS:")
    click.echo(f"  Enabled: {config.get('api.ssl.enabled', False)}")
