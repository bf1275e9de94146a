#!/usr/bin/env python3
"""Command-line interface for the thesis defense scoring form."""

import logging
import webbrowser
from datetime import datetime
from pathlib import Path
from threading import Timer
from typing import Optional, Tuple

import click
from rich.console import Console

from defense_grader.libs.config_loader import ConfigType, get_config, load_default_configs
from .app import create_app, run_server
from .form_state import FormState
from .models import RATER_COUNT
from .persistence import (
    ParseError,
    SessionStore,
    export_session,
    import_session,
    load_saved_session,
    save_session,
)
from .report import format_score, render_summary, write_summary_yaml

LOG = logging.getLogger(__name__)

console = Console()

SHEET_CHOICE = click.Choice(["1", "2", "sheet1", "sheet2"], case_sensitive=False)
RATER_NUMBER = click.IntRange(1, RATER_COUNT)


class ScoringContext:
    """Configuration plus the location the session is loaded from and saved to.

    Without ``--session`` the auto-save store from the config is used.
    With it, the given JSON file is read and rewritten in place.
    """

    def __init__(self, config: ConfigType, session_path: Optional[Path] = None):
        self.config = config
        self.session_path = session_path

    @property
    def decimals(self) -> int:
        return int(get_config("display.decimals", self.config, 2))

    @property
    def name_template(self) -> str:
        return get_config("raters.name_template", self.config, "Rater #{number}")

    @property
    def export_indent(self) -> int:
        return int(get_config("export.indent", self.config, 2))

    def store_and_key(self) -> Tuple[SessionStore, str]:
        if self.session_path is not None:
            return SessionStore(self.session_path.parent), self.session_path.stem
        directory = get_config("storage.directory", self.config, "~/.defense_grader")
        key = get_config("storage.session_key", self.config, "thesisDefenseData")
        return SessionStore(directory), key

    def load_form(self) -> FormState:
        form = FormState(name_template=self.name_template)
        if self.session_path is not None:
            if self.session_path.exists():
                try:
                    form.load(import_session(self.session_path))
                except (ParseError, OSError) as e:
                    raise click.ClickException(f"Could not load {self.session_path}: {e}")
            return form

        store, key = self.store_and_key()
        saved = load_saved_session(store, key)
        if saved is not None:
            form.load(saved)
        return form

    def save_form(self, form: FormState) -> None:
        store, key = self.store_and_key()
        save_session(store, key, form.session, form.name_template)

    def clear_saved(self) -> None:
        store, key = self.store_and_key()
        store.remove(key)


def _print_rater_line(form: FormState, rater: int, decimals: int) -> None:
    summary = form.summary().raters[rater - 1]
    console.print(
        f"{summary.name}: {summary.filled}/{summary.sheet1.total + summary.sheet2.total} items, "
        f"weighted {format_score(summary.weighted_score, summary.is_complete, decimals)}"
    )


def _validate_session_path(ctx, param, value: Optional[Path]) -> Optional[Path]:
    if value is not None and value.suffix.lower() != ".json":
        raise click.BadParameter("session file must end in .json")
    return value


@click.group()
@click.option(
    '--config',
    '-c',
    'config_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help='Extra YAML config file merged over the defaults'
)
@click.option(
    '--session',
    '-s',
    'session_path',
    type=click.Path(dir_okay=False, path_type=Path),
    callback=_validate_session_path,
    default=None,
    help='Session JSON file to work on (default: the auto-saved session)'
)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def main(ctx, config_path, session_path, verbose):
    """
    Score a thesis defense: three raters, 14 + 24 rubric items each.

    Example:
        defense-grader score 1 1 3 4
        defense-grader fill 2 sheet2 5
        defense-grader show
    """
    try:
        config = load_default_configs(str(config_path) if config_path else None)
    except (TypeError, ValueError) as e:
        raise click.ClickException(f"Failed to load configuration: {e}")

    logging.basicConfig(
        level=get_config("logging.level", config, "INFO"),
        format=get_config("logging.format", config,
                          '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    ctx.obj = ScoringContext(config, session_path)


@main.command()
@click.pass_obj
def show(obj: ScoringContext):
    """Show per-rater scores and the final grade."""
    form = obj.load_form()
    render_summary(console, form.session, form.summary(), obj.decimals)


@main.command()
@click.option('--name', default=None, help='Full name of the student')
@click.option('--student-id', default=None, help='Student identifier')
@click.option('--department', default=None, help='Department or program')
@click.option('--thesis-title', default=None, help='Thesis title')
@click.pass_obj
def student(obj: ScoringContext, name, student_id, department, thesis_title):
    """Set the student's details."""
    fields = {
        'name': name,
        'student_id': student_id,
        'department': department,
        'thesis_title': thesis_title,
    }
    fields = {k: v for k, v in fields.items() if v is not None}
    if not fields:
        raise click.UsageError("Give at least one of --name, --student-id, --department, --thesis-title")

    form = obj.load_form()
    form.update_student(**fields)
    obj.save_form(form)
    console.print(f"[green]✓ Updated student:[/green] {', '.join(sorted(fields))}")


@main.command()
@click.argument('rater', type=RATER_NUMBER)
@click.argument('sheet', type=SHEET_CHOICE)
@click.argument('item', type=int)
@click.argument('value')
@click.pass_obj
def score(obj: ScoringContext, rater, sheet, item, value):
    """Set ITEM (1-based) on SHEET for RATER to VALUE ("" or 0 clears it)."""
    form = obj.load_form()
    try:
        form.set_score(rater - 1, sheet, item - 1, value)
    except (IndexError, ValueError) as e:
        raise click.ClickException(str(e))
    obj.save_form(form)
    _print_rater_line(form, rater, obj.decimals)


@main.command()
@click.argument('rater', type=RATER_NUMBER)
@click.argument('sheet', type=SHEET_CHOICE)
@click.argument('value', type=click.IntRange(0, 5))
@click.pass_obj
def fill(obj: ScoringContext, rater, sheet, value):
    """Set every item on SHEET for RATER to VALUE."""
    form = obj.load_form()
    form.fill_sheet(rater - 1, sheet, value)
    obj.save_form(form)
    _print_rater_line(form, rater, obj.decimals)


@main.command()
@click.argument('rater', type=RATER_NUMBER)
@click.argument('sheet', type=SHEET_CHOICE)
@click.pass_obj
def clear(obj: ScoringContext, rater, sheet):
    """Clear every item on SHEET for RATER."""
    form = obj.load_form()
    form.clear_sheet(rater - 1, sheet)
    obj.save_form(form)
    _print_rater_line(form, rater, obj.decimals)


@main.command()
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@click.pass_obj
def reset(obj: ScoringContext, yes):
    """Erase the student details and all scores."""
    if not yes and not click.confirm("Reset all data? This cannot be undone.", default=False):
        console.print("[red]Reset cancelled.[/red]")
        return

    if obj.session_path is not None:
        form = FormState(name_template=obj.name_template)
        obj.save_form(form)
    else:
        obj.clear_saved()
    console.print("[green]✓ All data has been reset[/green]")


@main.command(name='export')
@click.option(
    '--output-dir',
    '-o',
    type=click.Path(file_okay=False, path_type=Path),
    default=Path('.'),
    help='Directory for the exported JSON file (default: current directory)'
)
@click.pass_obj
def export_cmd(obj: ScoringContext, output_dir):
    """Export the session to {name}-{department}-{date}.json."""
    form = obj.load_form()
    path = export_session(form.session, output_dir, form.name_template, obj.export_indent)
    console.print(f"[green]✓ Exported to:[/green] {path}")


@main.command(name='import')
@click.argument('json_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def import_cmd(obj: ScoringContext, json_file):
    """Load a previously exported JSON file as the current session."""
    try:
        session = import_session(json_file)
    except ParseError as e:
        raise click.ClickException(f"Invalid JSON file: {e}")
    form = FormState(session=session, name_template=obj.name_template)
    obj.save_form(form)
    console.print(f"[green]✓ Loaded:[/green] {json_file}")


@main.command()
@click.option(
    '--output',
    '-o',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Path for the YAML report (default: defense_summary_TIMESTAMP.yaml)'
)
@click.pass_obj
def report(obj: ScoringContext, output):
    """Write the summary as a YAML report."""
    if output is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output = Path(f"defense_summary_{timestamp}.yaml")
    form = obj.load_form()
    write_summary_yaml(form.session, form.summary(), output, obj.decimals)
    console.print(f"[green]✓ Report saved to:[/green] {output}")


def open_browser(url, delay=1.5):
    """Open browser after a delay."""
    def _open():
        webbrowser.open(url)
    Timer(delay, _open).start()


@main.command()
@click.option('--host', default=None, help='Host to bind to (default: server.host from config)')
@click.option('--port', type=int, default=None, help='Port to bind to (default: server.port from config)')
@click.option('--no-browser', is_flag=True, help='Do not automatically open browser')
@click.option('--debug', is_flag=True, help='Run in debug mode')
@click.pass_obj
def serve(obj: ScoringContext, host, port, no_browser, debug):
    """Serve the JSON API used by the browser form."""
    host = host or get_config("server.host", obj.config, "127.0.0.1")
    port = port or int(get_config("server.port", obj.config, 5000))

    form = obj.load_form()
    store, key = obj.store_and_key()
    app = create_app(form, store=store, session_key=key, export_indent=obj.export_indent)

    url = f"http://{host}:{port}/api/session"
    if not no_browser:
        LOG.info(f"Opening browser at {url}")
        open_browser(url)
    else:
        LOG.info(f"Server will be available at {url}")

    LOG.info(f"Starting server on {host}:{port}")
    run_server(app, host=host, port=port, debug=debug)


if __name__ == '__main__':
    main()
