"""CLI commands for the report workflow.

Transitions act on behalf of the user id given with ``--user``.
"""

import asyncio
import json
import sys

import click

from ..db import close_all_connections
from ..errors import ReportError
from ..reports.models import ReportResponse
from ..reports.workflow import get_report_workflow


@click.group("reports")
def reports_group() -> None:
    """Inspect and moderate reports."""
    pass


async def _with_cleanup(coro):
    try:
        return await coro
    finally:
        await close_all_connections()


def _run(coro):
    """Run a workflow coroutine, exiting non-zero on workflow errors."""
    try:
        return asyncio.run(_with_cleanup(coro))
    except ReportError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)


def _echo_reports(reports: list[ReportResponse], as_json: bool) -> None:
    if as_json:
        data = [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in reports]
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"Reports ({len(reports)} total):")
    click.echo("")
    for report in reports:
        click.echo(f"  {report.id}")
        click.echo(f"    Reporter: {report.reporter_name} <{report.reporter_email}>")
        click.echo(f"    Institution: {report.institution_name or report.institution_id or '-'}")
        click.echo(f"    Status: {report.status.value}")
        if report.assigned_to:
            click.echo(f"    Assigned to: {report.assigned_to}")
        click.echo(f"    Created: {report.created_at}")
        click.echo("")


@reports_group.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_reports(as_json: bool) -> None:
    """List all reports, newest first."""
    reports = _run(get_report_workflow().list_all())
    _echo_reports(reports, as_json)


@reports_group.command("available")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_available(as_json: bool) -> None:
    """List pending reports nobody has claimed."""
    reports = _run(get_report_workflow().list_available())
    _echo_reports(reports, as_json)


@reports_group.command("assigned")
@click.option("--user", "-u", "user_id", required=True, help="Moderator user id")
@click.option("--completed", is_flag=True, help="Show completed reports instead")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def list_assigned(user_id: str, completed: bool, as_json: bool) -> None:
    """List reports held by a moderator."""
    workflow = get_report_workflow()
    if completed:
        reports = _run(workflow.list_completed_by(user_id))
    else:
        reports = _run(workflow.list_assigned_to(user_id))
    _echo_reports(reports, as_json)


@reports_group.command("show")
@click.argument("report_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def show_report(report_id: str, as_json: bool) -> None:
    """Show one report."""
    report = _run(get_report_workflow().get(report_id))
    if as_json:
        click.echo(json.dumps(report.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2))
        return

    click.echo(f"Report: {report.id}")
    click.echo(f"  Reporter: {report.reporter_name} <{report.reporter_email}>")
    click.echo(f"  Institution: {report.institution_name or '-'} ({report.institution_id or '-'})")
    click.echo(f"  Reason: {report.report_reason or '-'}")
    click.echo(f"  Status: {report.status.value}")
    click.echo(f"  Assigned to: {report.assigned_to or '-'}")
    click.echo(f"  Assigned at: {report.assigned_at or '-'}")
    click.echo(f"  Completed at: {report.completed_at or '-'}")
    click.echo(f"  PDF: {report.pdf_path or '-'}")


@reports_group.command("assign")
@click.argument("report_id")
@click.option("--user", "-u", "user_id", required=True, help="Moderator user id")
def assign_report(report_id: str, user_id: str) -> None:
    """Claim a report for a moderator."""
    result = _run(get_report_workflow().assign(report_id, user_id))
    click.echo(f"{result.message}: {result.report_id} -> {result.moderator_id}")


@reports_group.command("unassign")
@click.argument("report_id")
@click.option("--user", "-u", "user_id", required=True, help="Moderator user id")
def unassign_report(report_id: str, user_id: str) -> None:
    """Release a report held by a moderator."""
    result = _run(get_report_workflow().unassign(report_id, user_id))
    click.echo(f"{result.message}: {result.report_id}")
