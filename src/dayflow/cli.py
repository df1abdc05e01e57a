"""
Command Line Interface for DayFlow.
"""

import click
from pathlib import Path
from .version import VERSION
from .config import StoreConfig
from .data import DataCore
from .export import export_csv, export_json, export_plain_text
from .hierarchy import get_all_items
from .models import Priority, TaskBoard, TaskList
from .recovery import DayflowError
from .store import DEFAULT_LIST_ID, TaskStore

EXPORTERS = {
    'json': export_json,
    'csv': export_csv,
    'text': export_plain_text,
}

def _context(ctx):
    return DataCore.get_context(ctx.obj['board'], config=StoreConfig.from_env())


@click.group()
@click.version_option(version=VERSION, prog_name="dayflow")
@click.option('--board', type=click.Path(dir_okay=False, path_type=Path), envvar='DAYFLOW_BOARD',
              help='Board file to use (YAML, or JSON with a .json suffix)')
@click.pass_context
def main(ctx, board):
    """
    DayFlow - lists, tasks, subtasks and activities with dates that stay consistent.
    """
    ctx.ensure_object(dict)
    ctx.obj['board'] = board


@main.command()
@click.option('--list-name', default=None, help='Name of the first task list')
@click.pass_context
def init(ctx, list_name):
    """Create a new board file with one empty task list."""
    path = DataCore.board_path(ctx.obj['board'])
    if path.exists():
        click.echo(f"❌ Board already exists at {path}")
        return

    config = StoreConfig.from_env()
    name = list_name or config.default_list_name
    try:
        DataCore.save_board(TaskBoard(task_lists=[TaskList(id=DEFAULT_LIST_ID, name=name)]), path)
    except DayflowError as e:
        click.echo(f"❌ Error creating board: {e}")
        return
    click.echo(f"📁 Created board at {path}")
    click.echo(f"📋 Created task list '{name}'")
    click.echo("💡 Use 'dayflow add-task' to add your first task")


@main.command()
@click.pass_context
def status(ctx):
    """Show the board location and a summary of its contents."""
    click.echo("🔧 DayFlow")
    click.echo(f"📦 Version: {VERSION}")
    click.echo("")

    path = DataCore.board_path(ctx.obj['board'])
    if not path.exists():
        click.echo(f"❌ No board at {path}")
        click.echo("💡 Run 'dayflow init' to create one")
        return

    click.echo(f"📍 Board: {path}")
    try:
        board = DataCore.load_board(path)
    except DayflowError as e:
        click.echo(f"⚠️  Warning: Error loading board: {e}")
        return

    items = get_all_items(board.task_lists)
    click.echo(f"   📋 Task lists: {len(board.task_lists)}")
    click.echo(f"   📝 Items: {len(items)}")
    click.echo(f"   ✅ Done: {sum(1 for item in items if item.status.value == 'done')}")
    click.echo("✅ Board loaded successfully!")


@main.command(name='lists')
@click.pass_context
def show_lists(ctx):
    """Show every task list with its tasks."""
    try:
        board = DataCore.load_board(ctx.obj['board'])
    except DayflowError as e:
        click.echo(f"❌ Error loading board: {e}")
        return
    if board is None or not board.task_lists:
        click.echo("📭 No task lists found")
        return

    for task_list in board.task_lists:
        click.echo(f"🗂️  {task_list.name} ({task_list.id})")
        for task in task_list.tasks:
            due = task.expected_completion_date.date().isoformat()
            click.echo(f"   [{task.status.value}] {task.name} - {task.priority.value}, due {due} ({task.id})")


@main.command(name='add-list')
@click.argument('name')
@click.pass_context
def add_list(ctx, name):
    """Add a new task list."""
    try:
        with _context(ctx) as context:
            task_list = context.store.add_task_list(name)
    except DayflowError as e:
        click.echo(f"❌ Error adding list: {e}")
        return
    click.echo(f"✅ Added list '{name}' ({task_list.id})")


@main.command(name='add-task')
@click.argument('list_id')
@click.argument('name')
@click.option('-p', '--priority', type=click.Choice([p.value for p in Priority]), default='medium',
              help='Task priority')
@click.option('--start', type=click.DateTime(), default=None, help='Creation date (defaults to now)')
@click.option('--due', type=click.DateTime(), default=None, help='Expected completion date')
@click.pass_context
def add_task(ctx, list_id, name, priority, start, due):
    """Add a task to a list."""
    try:
        with _context(ctx) as context:
            task = context.store.add_task(list_id, name, priority=priority,
                                          creation_date=start, expected_completion_date=due)
            warnings = list(context.store.last_warnings)
    except DayflowError as e:
        click.echo(f"❌ Error adding task: {e}")
        return

    if task is None:
        click.echo(f"❌ Task list {list_id} not found")
        return
    for warning in warnings:
        click.echo(f"⚠️  {warning}")
    click.echo(f"✅ Added task '{name}' ({task.id}), due {task.expected_completion_date.date().isoformat()}")


@main.command()
@click.pass_context
def today(ctx):
    """Show what needs attention today, most urgent first."""
    try:
        board = DataCore.load_board(ctx.obj['board']) or TaskBoard()
        rows = TaskStore.from_board(board, config=StoreConfig.from_env()).get_today_items()
    except DayflowError as e:
        click.echo(f"❌ Error loading board: {e}")
        return

    if not rows:
        click.echo("🎉 Nothing due in the coming days")
        return

    for row in rows:
        crumbs = " / ".join(part for part in (row.list_name, row.task_name, row.subtask_name) if part)
        when = "overdue" if row.is_overdue else f"in {row.days_until_due} day(s)"
        marker = "🔥" if row.is_overdue else "📌"
        click.echo(f"{marker} [{row.urgency_score}] {row.name} ({row.kind.value}, {row.priority.value}) due {when}")
        click.echo(f"   {crumbs}")


@main.command()
@click.option('-f', '--format', 'fmt', type=click.Choice(sorted(EXPORTERS)), default='json',
              help='Export format')
@click.option('-o', '--output', type=click.Path(dir_okay=False, path_type=Path), default=None,
              help='Write to a file instead of stdout')
@click.pass_context
def export(ctx, fmt, output):
    """Export every task list."""
    try:
        board = DataCore.load_board(ctx.obj['board'])
    except DayflowError as e:
        click.echo(f"❌ Error loading board: {e}")
        return
    task_lists = board.task_lists if board else []

    text = EXPORTERS[fmt](task_lists)
    if output is None:
        click.echo(text)
        return
    output.write_text(text, encoding='utf-8')
    click.echo(f"✅ Exported {len(task_lists)} list(s) to {output}")

if __name__ == "__main__":
    main()
