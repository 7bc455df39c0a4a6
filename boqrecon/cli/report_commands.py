"""
Report CLI Commands - activity reports straight from BOQ/KPI export files.

Provides command-line interface for:
- Printing the activity report (or project/zone rollups)
- Exporting the report to CSV/XLSX
- Listing unmatched KPI records
- Importing export files into the database
"""
import click
import logging
from typing import Optional

from ..domain.entities import Snapshot
from ..domain.exceptions import DomainError, UnknownProjectError
from ..modules.diagnostics import find_unmatched_records
from ..modules.etl import load_activity_rows, load_kpi_rows, load_snapshot
from ..modules.export import write_report
from ..modules.reconciliation import compute_report
from ..modules.rollups import summarize_by_project, summarize_by_zone

logger = logging.getLogger(__name__)


STATUS_COLORS = {
    'Not Started': 'white',
    'Completed': 'green',
    'Delayed': 'red',
    'On Track': 'cyan',
    'In Progress': 'yellow',
}


def _snapshot(activities: str, kpis: Optional[str], project: Optional[str]) -> Snapshot:
    snapshot = load_snapshot(activities, kpis)
    if project:
        snapshot = snapshot.for_project(project)
        if not snapshot.activities:
            raise click.ClickException(UnknownProjectError(project).message)
    return snapshot


def _fmt(value: float) -> str:
    return f"{value:,.2f}"


@click.command()
@click.argument('activities', type=click.Path(exists=True))
@click.option('--kpis', type=click.Path(exists=True), help='KPI export (CSV/XLSX)')
@click.option('--project', default=None, help='Short or full project code')
@click.option(
    '--by',
    'group_by',
    type=click.Choice(['activity', 'project', 'zone']),
    default='activity',
    help='Report granularity'
)
def report(activities: str, kpis: Optional[str], project: Optional[str], group_by: str):
    """Print the activity report with totals."""
    snapshot = _snapshot(activities, kpis, project)
    result = compute_report(snapshot.activities, snapshot.kpis)

    if group_by == 'project':
        click.echo(click.style("Project rollup", fg='cyan', bold=True))
        for p in summarize_by_project(result.rows):
            click.echo(
                f"  {p['project_full_code']:<20} activities={p['activity_count']:<4} "
                f"EV={_fmt(p['earned_value'])} of {_fmt(p['total_value'])} "
                f"planned={p['planned_progress_pct']:.1f}% actual={p['actual_progress_pct']:.1f}% "
                f"variance={p['variance_pct']:+.1f}%"
            )
    elif group_by == 'zone':
        click.echo(click.style("Zone breakdown", fg='cyan', bold=True))
        for z in summarize_by_zone(result.rows):
            click.echo(
                f"  {z['project_full_code']:<20} zone={z['zone_key'] or '-':<6} "
                f"activities={z['activity_count']:<4} actual={_fmt(z['actual_units'])} "
                f"of {_fmt(z['planned_units'])} ({z['progress_pct']:.1f}%)"
            )
    else:
        click.echo(click.style("Activity report", fg='cyan', bold=True))
        for row in result.rows:
            status = click.style(f"{row.status.value:<12}", fg=STATUS_COLORS[row.status.value])
            click.echo(
                f"  {row.activity.name[:40]:<40} {row.activity.zone_display:<16} "
                f"{row.progress:6.1f}% {status} "
                f"actual={_fmt(row.actual_units)} EV={_fmt(row.earned_value)} "
                f"start={row.actual_start or 'N/A'} end={row.actual_end or 'N/A'}"
            )

    totals = result.totals
    click.echo("")
    click.echo(click.style("TOTAL", bold=True))
    click.echo(f"  Activities:    {totals.activity_count}")
    click.echo(f"  Planned units: {_fmt(totals.planned_units)}")
    click.echo(f"  Actual units:  {_fmt(totals.actual_units)}")
    click.echo(f"  Total value:   {_fmt(totals.total_value)}")
    click.echo(f"  Planned value: {_fmt(totals.planned_value)}")
    click.echo(f"  Earned value:  {_fmt(totals.earned_value)}")
    counts = ", ".join(f"{label}: {count}" for label, count in result.status_counts.items())
    click.echo(f"  Status:        {counts}")


@click.command()
@click.argument('activities', type=click.Path(exists=True))
@click.argument('output', type=click.Path())
@click.option('--kpis', type=click.Path(exists=True), help='KPI export (CSV/XLSX)')
@click.option('--project', default=None, help='Short or full project code')
@click.option('--format', 'fmt', type=click.Choice(['csv', 'xlsx']), default=None,
              help='Output format (default: from file suffix)')
def export(activities: str, output: str, kpis: Optional[str], project: Optional[str], fmt: Optional[str]):
    """Export the activity report with a TOTAL row."""
    snapshot = _snapshot(activities, kpis, project)
    result = compute_report(snapshot.activities, snapshot.kpis)
    try:
        path = write_report(result, output, fmt=fmt)
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(click.style(f"✓ Exported {len(result.rows)} activities to {path}", fg='green'))


@click.command()
@click.argument('activities', type=click.Path(exists=True))
@click.argument('kpis', type=click.Path(exists=True))
@click.option('--min-score', default=None, type=float, help='Minimum suggestion score (0-100)')
def unmatched(activities: str, kpis: str, min_score: Optional[float]):
    """List KPI records that match no activity."""
    snapshot = load_snapshot(activities, kpis)
    records = find_unmatched_records(snapshot.activities, snapshot.kpis, min_score=min_score)

    if not records:
        click.echo(click.style("✓ Every KPI record matches an activity", fg='green'))
        return

    click.echo(click.style(f"{len(records)} unmatched KPI record(s):", fg='yellow'))
    for item in records:
        record = item.record
        click.echo(
            f"  [{item.index}] {record.activity_name or '(no name)'} | "
            f"{record.project_full_code or record.project_code} | zone={record.zone or '-'} | "
            f"{record.input_type or '?'} qty={record.quantity:g} ({item.reason})"
        )
        for suggestion in item.suggestions:
            click.echo(f"      -> {suggestion.activity_name} ({suggestion.score:.0f})")


@click.command('import')
@click.argument('activities', type=click.Path(exists=True))
@click.option('--kpis', type=click.Path(exists=True), help='KPI export (CSV/XLSX)')
@click.option('--replace', is_flag=True, help='Delete stored rows first')
def import_rows(activities: str, kpis: Optional[str], replace: bool):
    """Import export files into the report database."""
    from ..infrastructure.repositories import SnapshotRepository
    from ..models import get_db, init_db

    init_db()
    db = next(get_db())
    try:
        repo = SnapshotRepository(db)
        activity_count, kpi_count = repo.import_snapshot(
            load_activity_rows(activities),
            load_kpi_rows(kpis) if kpis else None,
            replace=replace,
        )
    except DomainError as e:
        raise click.ClickException(e.message)
    finally:
        db.close()

    click.echo(click.style(
        f"✓ Imported {activity_count} activities and {kpi_count} KPI records", fg='green'
    ))


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report)
    cli.add_command(export)
    cli.add_command(unmatched)
    cli.add_command(import_rows)
