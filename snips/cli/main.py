# snips/cli/main.py

import functools
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from snips.core.config_manager import load_settings, save_settings, Settings
from snips.core.exceptions import InvalidStateError, PersistenceError, SnipsError, ValidationError
from snips.core.lifecycle import LifecycleManager
from snips.core.models import SECTION_ORDER, Snippet, SnippetType
from snips.core.query import (
    Selection,
    SortField,
    SortOption,
    selection_title,
    snippet_count,
    sorted_folders,
    visible_snippets,
)
from snips.core.store import SnippetStore, default_store_path
from snips.core.undo_manager import HISTORY_FILE_NAME, UndoManager
from snips.utils.logger import setup_logging

console = Console()
logger = logging.getLogger(__name__)

SHORT_ID_LENGTH = 8
TYPE_CHOICES = [t.value for t in SnippetType]
SORT_FIELD_CHOICES = [f.value for f in SortField]


class SnipsApp:
    """Everything a command needs, built once per invocation from the data directory."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.store = SnippetStore(default_store_path(settings.data_dir))
        self.undo_manager = UndoManager(settings.data_dir / HISTORY_FILE_NAME)
        self.manager = LifecycleManager(self.store, self.undo_manager)

    def open(self):
        self.store.load()
        self.undo_manager.load()

    def snippet(self, ref: str) -> Snippet:
        snippet = self.store.resolve_snippet(ref)
        if snippet is None:
            _fail(f"No snippet matches id '{ref}'.")
        return snippet

    def folder(self, name: str):
        folder = self.store.find_folder_by_name(name)
        if folder is None:
            _fail(f"No folder named '{name}'.")
        return folder


pass_app = click.make_pass_decorator(SnipsApp)


def _fail(message: str):
    console.print(f"[bold red]❌ {escape(message)}[/bold red]")
    raise click.exceptions.Exit(1)


def _warn(message: str):
    console.print(f"[yellow]⚠️  {escape(message)}[/yellow]")
    raise click.exceptions.Exit(1)


def handle_errors(command):
    """Turns domain errors into friendly output at the command boundary."""

    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except (click.exceptions.Exit, click.Abort, click.ClickException):
            raise
        except ValidationError as e:
            _warn(str(e))
        except InvalidStateError as e:
            _fail(str(e))
        except Exception as e:
            console.print(f"[bold red]❌ An unexpected error occurred: {escape(str(e))}[/bold red]")
            logger.error(f"CLI command '{command.__name__}' failed.", exc_info=True)
            raise click.exceptions.Exit(1)

    return wrapper


def _short(snippet_id: str) -> str:
    return snippet_id[:SHORT_ID_LENGTH]


def _folder_name(app: SnipsApp, snippet: Snippet) -> str:
    folder = app.store.find_folder(snippet.folder_id)
    return folder.name if folder else ""


def _print_snippet_line(verb: str, snippet: Snippet):
    console.print(f"[bold green]✅ {verb}[/bold green] [cyan]{_short(snippet.id)}[/cyan] {escape(snippet.title)}")


# --- Main Command Group ---
@click.group(context_settings=dict(help_option_names=['-h', '--help']))
@click.version_option(version="1.0.0", prog_name="Snips")
@click.option('--data-dir', type=click.Path(file_okay=False, dir_okay=True, path_type=Path), default=None,
              help="Directory holding snips.json, history.json, settings.json and logs.")
@click.pass_context
def snips(ctx: click.Context, data_dir: Path | None):
    """
    ✂️ Snips - store, tag, organize and trash small pieces of text, code,
    links, paths, commands and secrets.

    Snippets are addressed by id or by a unique id prefix; folders by name.
    """
    try:
        settings = load_settings(data_dir)
    except SnipsError as e:
        _fail(str(e))
    setup_logging(settings.data_dir, settings.console_log_level)

    app = SnipsApp(settings)
    try:
        app.open()
    except PersistenceError as e:
        logger.error("Could not open the snippet store.", exc_info=True)
        _fail(str(e))
    ctx.obj = app


# --- Snippets ---

@snips.command()
@click.argument('title')
@click.option('-t', '--type', 'type_', type=click.Choice(TYPE_CHOICES), default=SnippetType.PLAIN_TEXT.value,
              show_default=True, help="Kind of snippet.")
@click.option('--tag', 'tags', multiple=True, help="Tag to attach. Repeat for several tags.")
@click.option('-c', '--content', default="", help="Body of the snippet.")
@click.option('-n', '--note', default="", help="Free-text note.")
@click.option('-f', '--folder', 'folder_name', default=None, help="Folder to put the snippet in.")
@pass_app
@handle_errors
def add(app: SnipsApp, title, type_, tags, content, note, folder_name):
    """➕ Creates a new snippet."""
    folder = app.folder(folder_name) if folder_name else None
    snippet = app.manager.create_snippet(title, SnippetType(type_), tags, content, note, folder)
    _print_snippet_line("Created", snippet)


@snips.command(name="list")
@click.option('-s', '--section', type=click.Choice(TYPE_CHOICES), default=None, help="Only snippets of this type.")
@click.option('-f', '--folder', 'folder_name', default=None, help="Only snippets in this folder.")
@click.option('--trash', is_flag=True, help="Show the trash instead of active snippets.")
@click.option('--sort', 'sort_field', type=click.Choice(SORT_FIELD_CHOICES), default=None,
              help="Sort field. Defaults to the configured sort.")
@click.option('--asc/--desc', 'ascending', default=None, help="Sort direction.")
@pass_app
@handle_errors
def list_snippets(app: SnipsApp, section, folder_name, trash, sort_field, ascending):
    """📋 Lists snippets for a selection, sorted."""
    if trash:
        selection = Selection.trash()
    elif folder_name:
        selection = Selection.folder(app.folder(folder_name))
    elif section:
        selection = Selection.section(SnippetType(section))
    else:
        selection = Selection.all()

    default = app.settings.default_sort
    option = SortOption.for_field(
        SortField(sort_field) if sort_field else default.field,
        ascending if ascending is not None else default.ascending,
    )
    snippets = visible_snippets(app.store, selection, option)
    title = selection_title(selection, app.store)

    if not snippets:
        console.print(f"[bold]{escape(title)}[/bold]: no snippets.")
        return

    table = Table(title=f"{escape(title)} ({len(snippets)}) - {option.title}", style="cyan",
                  title_style="bold magenta")
    table.add_column("ID", style="bright_black", no_wrap=True)
    table.add_column("Title", style="green")
    table.add_column("Type", style="blue")
    table.add_column("Tags", style="yellow")
    table.add_column("Folder")
    table.add_column("Updated", no_wrap=True)
    for snippet in snippets:
        table.add_row(
            _short(snippet.id),
            escape(snippet.title),
            snippet.type.title,
            escape(", ".join(snippet.tags)),
            escape(_folder_name(app, snippet)),
            snippet.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@snips.command()
@click.argument('ref')
@pass_app
@handle_errors
def show(app: SnipsApp, ref):
    """🔎 Shows every field of one snippet."""
    snippet = app.snippet(ref)
    folder = _folder_name(app, snippet)
    heading = f"{escape(folder)} / {escape(snippet.title)}" if folder else escape(snippet.title)
    console.print(f"[bold]{heading}[/bold]")

    table = Table(show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("ID", snippet.id)
    table.add_row("Type", snippet.type.title)
    table.add_row("Tags", escape(", ".join(snippet.tags)) or "No tags")
    table.add_row("Updated", snippet.updated_at.strftime("%Y-%m-%d %H:%M"))
    if snippet.is_trashed:
        table.add_row("State", "[red]In trash[/red]")
    table.add_row("Content", escape(snippet.content))
    table.add_row("Note", escape(snippet.note))
    console.print(table)


@snips.command()
@click.argument('ref')
@click.argument('title')
@pass_app
@handle_errors
def rename(app: SnipsApp, ref, title):
    """✏️ Renames a snippet."""
    snippet = app.manager.rename_snippet(app.snippet(ref), title)
    _print_snippet_line("Renamed", snippet)


@snips.command()
@click.argument('ref')
@click.option('-c', '--content', default=None, help="New content.")
@click.option('-n', '--note', default=None, help="New note.")
@pass_app
@handle_errors
def edit(app: SnipsApp, ref, content, note):
    """📝 Edits content and/or note. Opens $EDITOR on the content when no option is given."""
    snippet = app.snippet(ref)
    if snippet.is_trashed:
        _warn(f"'{snippet.title}' is in the trash. Restore it before editing.")

    edits = {"content": content, "note": note}
    if content is None and note is None:
        edits["content"] = click.edit(snippet.content)

    before = snippet.updated_at
    for field_name, value in edits.items():
        if value is None:
            continue
        session = app.manager.begin_edit(snippet, field_name)
        session.update(value)
        session.end()

    if snippet.updated_at == before:
        console.print("Nothing changed.")
    else:
        _print_snippet_line("Saved", snippet)


@snips.command(name="set-type")
@click.argument('ref')
@click.argument('type_', metavar='TYPE', type=click.Choice(TYPE_CHOICES))
@pass_app
@handle_errors
def set_type(app: SnipsApp, ref, type_):
    """🏷️ Changes the type of a snippet."""
    snippet = app.manager.change_type(app.snippet(ref), SnippetType(type_))
    _print_snippet_line(f"Type is {snippet.type.title} for", snippet)


@snips.command()
@click.argument('ref')
@click.argument('folder_name', metavar='[FOLDER]', required=False)
@pass_app
@handle_errors
def move(app: SnipsApp, ref, folder_name):
    """📂 Moves a snippet into a folder, or out of any folder when FOLDER is omitted."""
    snippet = app.snippet(ref)
    if snippet.is_trashed:
        _warn(f"'{snippet.title}' is in the trash. Restore it before moving.")
    folder = app.folder(folder_name) if folder_name else None
    before = snippet.updated_at
    app.manager.move_to_folder(snippet, folder)
    if snippet.updated_at == before:
        console.print("Nothing changed.")
        return
    _print_snippet_line(f"Moved to {escape(folder.name)}:" if folder else "Removed from folder:", snippet)


@snips.command()
@click.argument('ref')
@pass_app
@handle_errors
def duplicate(app: SnipsApp, ref):
    """📄 Duplicates a snippet."""
    copy = app.manager.duplicate_snippet(app.snippet(ref))
    if copy is None:
        _warn("Trashed snippets cannot be duplicated.")
    _print_snippet_line("Created", copy)


@snips.command()
@click.argument('ref')
@pass_app
@handle_errors
def trash(app: SnipsApp, ref):
    """🗑️ Moves a snippet to the trash."""
    snippet = app.snippet(ref)
    before = snippet.updated_at
    app.manager.move_to_trash(snippet)
    if snippet.updated_at == before:
        console.print("Nothing changed.")
        return
    _print_snippet_line("Trashed", snippet)


@snips.command()
@click.argument('ref')
@pass_app
@handle_errors
def restore(app: SnipsApp, ref):
    """♻️ Restores a snippet from the trash, back into its folder when it still exists."""
    snippet = app.snippet(ref)
    before = snippet.updated_at
    app.manager.restore(snippet)
    if snippet.updated_at == before:
        console.print("Nothing changed.")
        return
    folder = _folder_name(app, snippet)
    _print_snippet_line(f"Restored to {escape(folder)}:" if folder else "Restored", snippet)


@snips.command()
@click.argument('ref')
@click.option('-y', '--yes', is_flag=True, help="Do not ask for confirmation.")
@pass_app
@handle_errors
def delete(app: SnipsApp, ref, yes):
    """🔥 Permanently deletes a trashed snippet."""
    snippet = app.snippet(ref)
    if not yes:
        click.confirm(f"Permanently delete '{snippet.title}'?", abort=True)
    app.manager.delete_permanently(snippet)
    _print_snippet_line("Deleted", snippet)


@snips.command(name="empty-trash")
@click.option('-y', '--yes', is_flag=True, help="Do not ask for confirmation.")
@pass_app
@handle_errors
def empty_trash(app: SnipsApp, yes):
    """🔥 Permanently deletes everything in the trash."""
    count = snippet_count(app.store, Selection.trash())
    if count == 0:
        console.print("The trash is already empty.")
        return
    if not yes:
        click.confirm(f"Permanently delete {count} snippet(s)?", abort=True)
    app.manager.empty_trash()
    console.print(f"[bold green]✅ Deleted {count} snippet(s).[/bold green]")


# --- Tags ---

@snips.group()
def tag():
    """🔖 Add, rename and remove tags on a snippet."""
    pass


@tag.command(name="add")
@click.argument('ref')
@click.argument('name')
@pass_app
@handle_errors
def tag_add(app: SnipsApp, ref, name):
    """Adds a tag. Empty and duplicate tags are ignored."""
    snippet = app.manager.add_tag(app.snippet(ref), name)
    console.print(f"Tags: {escape(', '.join(snippet.tags)) or 'No tags'}")


@tag.command(name="rename")
@click.argument('ref')
@click.argument('old')
@click.argument('new')
@pass_app
@handle_errors
def tag_rename(app: SnipsApp, ref, old, new):
    """Renames a tag. Renaming onto an existing tag is ignored."""
    snippet = app.manager.rename_tag(app.snippet(ref), old, new)
    console.print(f"Tags: {escape(', '.join(snippet.tags)) or 'No tags'}")


@tag.command(name="remove")
@click.argument('ref')
@click.argument('name')
@pass_app
@handle_errors
def tag_remove(app: SnipsApp, ref, name):
    """Removes a tag."""
    snippet = app.manager.remove_tag(app.snippet(ref), name)
    console.print(f"Tags: {escape(', '.join(snippet.tags)) or 'No tags'}")


# --- Folders ---

@snips.group()
def folder():
    """📁 Manage folders."""
    pass


@folder.command(name="create")
@click.argument('name')
@click.option('--order', 'order_index', type=int, default=None, help="Display position. Defaults to the end.")
@pass_app
@handle_errors
def folder_create(app: SnipsApp, name, order_index):
    """Creates a folder. Names are unique, ignoring case."""
    created = app.manager.create_folder(name, order_index)
    console.print(f"[bold green]✅ Created folder[/bold green] {escape(created.name)}")


@folder.command(name="list")
@pass_app
@handle_errors
def folder_list(app: SnipsApp):
    """Lists folders, plus the type sections, with snippet counts."""
    table = Table(title="Sidebar", style="cyan", title_style="bold magenta")
    table.add_column("Name", style="green")
    table.add_column("Kind", style="blue")
    table.add_column("Snippets", style="bold magenta", justify="right")

    table.add_row("All", "", str(snippet_count(app.store, Selection.all())))
    for snippet_type in SECTION_ORDER:
        table.add_row(snippet_type.title, "Section", str(snippet_count(app.store, Selection.section(snippet_type))))
    for item in sorted_folders(app.store.fetch_folders()):
        table.add_row(escape(item.name), "Folder", str(snippet_count(app.store, Selection.folder(item))))
    table.add_row("Trash", "", str(snippet_count(app.store, Selection.trash())))
    console.print(table)


@folder.command(name="delete")
@click.argument('name')
@click.option('-y', '--yes', is_flag=True, help="Do not ask for confirmation.")
@pass_app
@handle_errors
def folder_delete(app: SnipsApp, name, yes):
    """Deletes a folder. Its snippets are kept, outside of any folder."""
    target = app.folder(name)
    if not yes:
        click.confirm(f"Delete folder '{target.name}'? Its snippets will be kept.", abort=True)
    app.manager.delete_folder(target)
    console.print(f"[bold green]✅ Deleted folder[/bold green] {escape(target.name)}")


# --- Undo / Redo ---

@snips.command()
@pass_app
@handle_errors
def undo(app: SnipsApp):
    """⏪ Undoes the most recent change."""
    action = app.manager.undo()
    if action is None:
        console.print("Nothing to undo.")
        return
    console.print(f"[bold yellow]⏪ Undid {escape(action.name)}.[/bold yellow] Next: {escape(app.undo_manager.undo_title)}")


@snips.command()
@pass_app
@handle_errors
def redo(app: SnipsApp):
    """⏩ Redoes the most recently undone change."""
    action = app.manager.redo()
    if action is None:
        console.print("Nothing to redo.")
        return
    console.print(f"[bold yellow]⏩ Redid {escape(action.name)}.[/bold yellow] Next: {escape(app.undo_manager.redo_title)}")


# --- Settings ---

@snips.group()
def config():
    """⚙️ Show or change settings."""
    pass


@config.command(name="show")
@pass_app
def config_show(app: SnipsApp):
    """Prints the active settings."""
    table = Table(title="Settings", show_header=False)
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="bold magenta")
    table.add_row("data_dir", str(app.settings.data_dir))
    for key, value in app.settings.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)


@config.command(name="set-sort")
@click.argument('sort_field', type=click.Choice(SORT_FIELD_CHOICES))
@click.option('--asc/--desc', 'ascending', default=False, show_default=True, help="Sort direction.")
@pass_app
def config_set_sort(app: SnipsApp, sort_field, ascending):
    """Changes the default sort used by `list`."""
    app.settings.default_sort = SortOption.for_field(SortField(sort_field), ascending)
    if save_settings(app.settings):
        console.print(f"[bold green]✅ Default sort is now {app.settings.default_sort.title}.[/bold green]")
    else:
        _fail("Could not save settings. See snips.log for details.")
