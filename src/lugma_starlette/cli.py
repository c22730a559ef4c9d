"""lugma demo server CLI.

Usage:
    lugma-demo                          # Serve on 127.0.0.1:4096
    lugma-demo --port 8080 --reload     # Custom port, auto-reload
    lugma-demo --health                 # Check a running server and exit
"""

from __future__ import annotations

import logging
import sys

import click
import httpx

LOG_LEVELS = ["debug", "info", "warning", "error"]


@click.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=4096, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="info",
    help="Logging level",
)
@click.option("--health", "health_check", is_flag=True, help="Check server health and exit")
@click.option("--health-url", default="http://localhost:4096", help="Server URL for health check")
def main(
    host: str,
    port: int,
    reload: bool,
    log_level: str,
    health_check: bool,
    health_url: str,
) -> None:
    """Serve the lugma demo app (chat stream, divide and ping RPCs)."""
    if health_check:
        _do_health_check(health_url)
        return

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    _run_http_server(host, port, reload, log_level)


def _do_health_check(url: str) -> None:
    """Check a running server's /health endpoint."""
    try:
        response = httpx.get(f"{url.rstrip('/')}/health", timeout=5.0)
    except httpx.HTTPError as e:
        click.echo(f"Cannot connect to server at {url}: {e}", err=True)
        sys.exit(1)

    if response.status_code == 200:
        click.echo(f"Server is healthy: {response.json()}")
    else:
        click.echo(f"Server returned {response.status_code}", err=True)
        sys.exit(1)


def _run_http_server(host: str, port: int, reload: bool, log_level: str) -> None:
    """Run the demo app under uvicorn."""
    import uvicorn

    click.echo(f"Starting lugma demo on http://{host}:{port}", err=True)
    click.echo("  RPC: POST /divide, POST /ping    Stream: WS /chat", err=True)
    click.echo("Press Ctrl+C to stop", err=True)

    uvicorn.run(
        "lugma_starlette.demo:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
    )


if __name__ == "__main__":
    main()
