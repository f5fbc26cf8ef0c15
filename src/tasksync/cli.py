"""tasksync CLI - Google Tasks with an offline cache."""

import asyncio
import json
import logging
import sys

import click

from .adapters.google_session import AuthenticationError, GoogleSession
from .adapters.google_tasks_api import GoogleTasksClient
from .adapters.sqlite_cache import SqliteCacheStore
from .config import SORT_CHOICES, TOKEN_FILE, Config, load_config
from .core.sorting import SortCriterion, SortDirection
from .core.tasks import Task
from .dashboard import Dashboard, DashboardView


def build_dashboard(config: Config) -> Dashboard:
    """Wire the real adapters into a dashboard."""
    return Dashboard(
        provider=GoogleTasksClient(config),
        cache=SqliteCacheStore(config.cache_path),
        session=GoogleSession(TOKEN_FILE, config.google_client_secret_file),
        config=config,
    )


def _open_dashboard(ctx: click.Context) -> Dashboard:
    dashboard = build_dashboard(ctx.obj["config"])
    asyncio.run(dashboard.start())
    return dashboard


def _report(dashboard: Dashboard) -> None:
    """Print the dashboard's notice or error; exit 1 on error."""
    if dashboard.notice:
        click.echo(dashboard.notice, err=True)
    if dashboard.error:
        click.echo(f"Error: {dashboard.error}", err=True)
        dashboard.dismiss_error()
        sys.exit(1)


def _serialize_task(task: Task, view: DashboardView, depth: int) -> dict:
    return {
        **task.to_dict(),
        "depth": depth,
        "list_id": view.membership.get(task.id),
        "list": view.list_label(task) or None,
    }


def _format_task(task: Task, view: DashboardView, depth: int, show_list: bool) -> str:
    box = "[x]" if task.is_completed else "[ ]"
    line = f"{'  ' * depth}{box} {task.title or '(untitled)'}"
    due = task.due_date()
    if due:
        line += f" (due {due.strftime('%b %d, %Y')}"
        line += ", overdue)" if task.is_overdue() else ")"
    if show_list and depth == 0:
        label = view.list_label(task)
        if label:
            line += f"  · {label}"
    return f"{line}  [{task.id}]"


@click.group()
@click.version_option(package_name="tasksync")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, debug: bool):
    """tasksync - Google Tasks with an offline cache."""
    config = load_config()
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.DEBUG if debug else getattr(logging, config.log_level, logging.WARNING),
    )
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.pass_context
def auth(ctx: click.Context):
    """Authenticate with Google Tasks."""
    config = ctx.obj["config"]
    session = GoogleSession(TOKEN_FILE, config.google_client_secret_file)
    try:
        user = session.authenticate()
    except AuthenticationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Authenticated{f' as {user.email}' if user.email else ''}.")


@main.command()
@click.pass_context
def logout(ctx: click.Context):
    """Sign out and clear the offline cache."""
    dashboard = build_dashboard(ctx.obj["config"])
    asyncio.run(dashboard.logout())
    click.echo("Signed out.")


@main.command()
@click.pass_context
def sync(ctx: click.Context):
    """Refresh the offline cache from Google Tasks."""
    dashboard = _open_dashboard(ctx)
    ok = asyncio.run(dashboard.sync())
    _report(dashboard)
    if not ok:
        sys.exit(1)
    click.echo(
        f"Synced {len(dashboard.state.tasks)} tasks "
        f"across {len(dashboard.state.task_lists)} lists."
    )
    if not dashboard.cache_available:
        click.echo("Warning: offline cache unavailable, nothing was saved.", err=True)


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def lists(ctx: click.Context, as_json: bool):
    """List cached task lists."""
    dashboard = _open_dashboard(ctx)
    task_lists = dashboard.state.task_lists

    if as_json:
        click.echo(json.dumps([tl.to_dict() for tl in task_lists], indent=2))
        return

    if not task_lists:
        click.echo("No task lists. Run 'tasksync sync' to get started.")
        return

    membership = dashboard.state.membership
    for tl in task_lists:
        count = sum(1 for list_id in membership.values() if list_id == tl.id)
        click.echo(f"{tl.title} ({count})  [{tl.id}]")


@main.command()
@click.option("--tab", default=None, help="List id to show (default: all)")
@click.option("--sort", "sort_by", type=click.Choice(SORT_CHOICES), default=None, help="Sort criterion")
@click.option("--desc", is_flag=True, help="Sort descending")
@click.option("--search", "query", default=None, help="Filter by title/notes substring")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def tasks(ctx: click.Context, tab: str | None, sort_by: str | None, desc: bool, query: str | None, as_json: bool):
    """Show cached tasks as a tree."""
    dashboard = _open_dashboard(ctx)

    if tab:
        dashboard.select_tab(tab)
    if sort_by:
        dashboard.select_sort(SortCriterion(sort_by))
    if desc and dashboard.sort_state.direction == SortDirection.ASC:
        dashboard.select_sort(dashboard.sort_state.criterion)
    dashboard.search(query)

    view = dashboard.view()

    if as_json:
        click.echo(
            json.dumps(
                {
                    "pending": [_serialize_task(t, view, d) for d, t in view.rows()],
                    "completed": [_serialize_task(t, view, d) for d, t in view.rows(completed=True)],
                },
                indent=2,
            )
        )
        return

    show_list = dashboard.active_tab == "all"
    pending_rows = list(view.rows())
    completed_rows = list(view.rows(completed=True))

    click.echo("Search Results" if view.searching else "Pending Tasks")
    if not pending_rows:
        click.echo("  No tasks found." if view.searching else "  No pending tasks. Run 'tasksync sync' to get started.")
    for depth, task in pending_rows:
        click.echo(_format_task(task, view, depth, show_list))

    if completed_rows:
        click.echo()
        click.echo("Completed Tasks")
        for depth, task in completed_rows:
            click.echo(_format_task(task, view, depth, show_list))


@main.command()
@click.argument("list_id")
@click.argument("title")
@click.option("--notes", default=None, help="Task notes")
@click.option("--parent", default=None, help="Parent task id")
@click.pass_context
def add(ctx: click.Context, list_id: str, title: str, notes: str | None, parent: str | None):
    """Add a task to a list."""
    dashboard = _open_dashboard(ctx)
    try:
        task = asyncio.run(dashboard.create_task(list_id, title, notes, parent))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    _report(dashboard)
    if task:
        click.echo(f"Added {task.title}  [{task.id}]")


def _update(ctx: click.Context, coro_factory, done: str) -> None:
    dashboard = _open_dashboard(ctx)
    task = asyncio.run(coro_factory(dashboard))
    _report(dashboard)
    if task is None:
        sys.exit(1)
    click.echo(f"{done}: {task.title}")


@main.command()
@click.argument("task_id")
@click.pass_context
def complete(ctx: click.Context, task_id: str):
    """Mark a task completed."""
    _update(ctx, lambda d: d.toggle_completed(task_id, True), "Completed")


@main.command()
@click.argument("task_id")
@click.pass_context
def reopen(ctx: click.Context, task_id: str):
    """Mark a completed task as pending again."""
    _update(ctx, lambda d: d.toggle_completed(task_id, False), "Reopened")


@main.command()
@click.argument("task_id")
@click.argument("title")
@click.pass_context
def rename(ctx: click.Context, task_id: str, title: str):
    """Change a task's title."""
    _update(ctx, lambda d: d.rename_task(task_id, title), "Renamed")


@main.command()
@click.argument("task_id")
@click.argument("text")
@click.pass_context
def notes(ctx: click.Context, task_id: str, text: str):
    """Replace a task's notes."""
    _update(ctx, lambda d: d.edit_notes(task_id, text), "Updated notes")


@main.command()
@click.argument("task_id")
@click.pass_context
def delete(ctx: click.Context, task_id: str):
    """Delete a task."""
    dashboard = _open_dashboard(ctx)
    deleted = asyncio.run(dashboard.delete_task(task_id))
    _report(dashboard)
    if not deleted:
        sys.exit(1)
    click.echo(f"Deleted {task_id}")
