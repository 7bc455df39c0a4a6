#!/usr/bin/env python3
"""
CLI for BOQ Activity / KPI reconciliation.

Usage:
    python cli.py report data/activities.csv --kpis data/kpis.csv --project P5066
    python cli.py export data/activities.xlsx out/activities.xlsx --kpis data/kpis.xlsx
    python cli.py unmatched data/activities.csv data/kpis.csv
    python cli.py import data/activities.csv --kpis data/kpis.csv --replace
    python cli.py serve --port 8000

Commands:
    report     Print the activity report (or project/zone rollups) with totals
    export     Write the activity report to CSV/XLSX with a TOTAL row
    unmatched  List KPI records that match no activity
    import     Store export files in the report database
    serve      Start the API server
"""
import click
import logging

from boqrecon.cli import register_commands
from boqrecon.config import get_config

# Configure logging
logging.basicConfig(
    level=getattr(logging, get_config().log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=get_config().version)
def cli():
    """BOQ Activity Reconciliation CLI.

    Match KPI progress logs to BOQ activities and report actual units,
    earned value, progress, status and dates.
    """
    pass


@cli.command()
@click.option('--port', default=8000, help='Port to listen on')
@click.option('--host', default='127.0.0.1', help='Host to bind to')
@click.option('--reload', is_flag=True, help='Enable auto-reload for development')
def serve(port: int, host: str, reload: bool):
    """Start the API server.

    Runs the FastAPI application with uvicorn.

    Example:
        python cli.py serve --port 8000 --reload
    """
    import uvicorn

    click.echo(click.style('BOQ Activity Reconciliation - API Server', fg='cyan', bold=True))
    click.echo(f"Starting server at http://{host}:{port}")
    click.echo("Press CTRL+C to stop\n")

    uvicorn.run(
        "boqrecon.main:app",
        host=host,
        port=port,
        reload=reload
    )


register_commands(cli)


if __name__ == '__main__':
    cli()
