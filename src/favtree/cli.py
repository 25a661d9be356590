"""Command line interface for favtree."""

from __future__ import annotations

import difflib
import logging
import time
from pathlib import Path
from typing import Any, Optional, Sequence

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.syntax import Syntax
from rich.tree import Tree

from favtree.codec import IMPORT_MODE_LABELS, export_document, import_document
from favtree.commands import (
    Validator,
    add_path_flow,
    create_group_flow,
    delete_group_flow,
    import_flow,
    open_all_files_flow,
    rename_group_flow,
    shift_group_flow,
)
from favtree.config import ConfigError, ConfigManager, FavtreeConfig, resolve_with_precedence
from favtree.dragdrop import DropController, item_kind_of, locate_node
from favtree.session import Session, open_session
from favtree.store.errors import CommandCancelled, FavtreeError
from favtree.store.models import Group
from favtree.store.ordering import group_children, sort_groups
from favtree.watch import DeletionWatcher
from favtree.workspace import relative_to_root

console = Console()
error_console = Console(stderr=True)

_ICONS = {"group": "[bold]#[/bold] ", "subgroup": "[bold]#[/bold] ", "folder": "> ", "file": "- "}


class ClickPrompter:
    """Prompter backed by click prompts; Ctrl-C or EOF cancels the command."""

    def prompt_text(
        self,
        message: str,
        *,
        default: Optional[str] = None,
        validate: Optional[Validator] = None,
        required: bool = True,
    ) -> str:
        while True:
            try:
                value = click.prompt(
                    message,
                    default=default if default is not None else ("" if not required else None),
                    show_default=default is not None,
                )
            except click.Abort as exc:
                raise CommandCancelled(message) from exc
            value = str(value).strip()
            problem = validate(value) if validate else None
            if problem is None:
                return value
            console.print(f"[red]{problem}[/red]")

    def pick(self, message: str, options: Sequence[str]) -> int:
        console.print(message)
        for number, option in enumerate(options, start=1):
            console.print(f"  {number}. {option}", markup=False, highlight=False)
        try:
            choice = click.prompt("Choice", type=click.IntRange(1, len(options)))
        except click.Abort as exc:
            raise CommandCancelled(message) from exc
        return choice - 1

    def confirm(self, message: str) -> bool:
        try:
            return click.confirm(message, default=False)
        except click.Abort as exc:
            raise CommandCancelled(message) from exc

    def notify(self, message: str) -> None:
        console.print(f"[green]{message}[/green]")


def _notify(message: str) -> None:
    console.print(f"[yellow]{message}[/yellow]")


def _configure_logging(level: str) -> None:
    """Route library logging through a rich handler on stderr."""
    root_logger = logging.getLogger("favtree")
    root_logger.setLevel(level.upper())
    if not any(isinstance(handler, RichHandler) for handler in root_logger.handlers):
        root_logger.addHandler(RichHandler(console=error_console, show_path=False))


def _session(ctx: click.Context) -> Session:
    """Open a session for the root selected on the command line."""
    manager = ConfigManager()
    try:
        config = manager.load()
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    _configure_logging(ctx.obj.get("log_level") or config.logging.level)
    return open_session(ctx.obj["root"], config_manager=manager, notify=_notify)


def _require_group(session: Session, group_id: str) -> Group:
    group = session.store.find_by_id(group_id)
    if group is None:
        raise click.ClickException(f"Group '{group_id}' not found.")
    return group


def _render_tree(session: Session, config: FavtreeConfig) -> Tree:
    order = config.view.sort_order
    icons = config.view.show_file_icons
    tree = Tree(f"[bold]Favorites[/bold] ({escape(str(session.root or 'no project'))})")

    def _label(kind: str, text: str, node_id: str, detail: str = "") -> str:
        prefix = _ICONS[kind] if icons else ""
        suffix = f" [dim]{escape(detail)}[/dim]" if detail else ""
        return f"{prefix}{text}{suffix} [dim]({node_id})[/dim]"

    def _add(branch: Tree, node_group: Group, kind: str) -> None:
        title = f"[cyan]{escape(node_group.name)}[/cyan]"
        node = branch.add(_label(kind, title, node_group.id, node_group.description or ""))
        for child in group_children(node_group, order):
            payload = child.payload
            if isinstance(payload, Group):
                _add(node, payload, child.kind)
                continue
            name = escape(payload.label or Path(payload.relative_path).name)
            node.add(_label(child.kind, name, payload.id, payload.relative_path))

    for top in sort_groups(session.store.get_all_top_level(), order):
        _add(tree, top, "group")
    return tree


def _run_flow(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Run a command flow, converting cancellations and store errors for click."""
    try:
        return func(*args, **kwargs)
    except CommandCancelled:
        console.print("[yellow]Cancelled; no changes applied.[/yellow]")
        return None
    except FavtreeError as exc:
        raise click.ClickException(str(exc)) from exc


def _fail_unless(ok: bool, message: str) -> None:
    if not ok:
        raise click.ClickException(message)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="favtree")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    envvar="FAVTREE_ROOT",
    show_default=True,
    help="Project root whose favorites are managed.",
)
@click.option("--log-level", type=str, default=None, help="Override the configured log level.")
@click.pass_context
def cli(ctx: click.Context, root: Path, log_level: Optional[str]) -> None:
    """favtree keeps named, nestable groups of your favorite project files.

    Returns:
        None: This function is invoked for its side effects.
    """
    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["log_level"] = log_level


# Groups -------------------------------------------------------------------


@cli.group()
def group() -> None:
    """Create, rename, delete, and list groups."""


@group.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit the stored document as JSON.")
@click.pass_context
def group_list(ctx: click.Context, json_output: bool) -> None:
    """Show every group as a tree in the configured sort order."""
    session = _session(ctx)
    if json_output:
        console.print_json(export_document(session.store.document).decode("utf-8"))
        return
    if not session.store.get_all_top_level():
        console.print("[yellow]No groups yet. Create one with `favtree group create`.[/yellow]")
        return
    console.print(_render_tree(session, session.config()))


@group.command("create")
@click.argument("name", required=False)
@click.option("--description", type=str, help="Optional group description.")
@click.option("--parent", "parent_id", type=str, help="Create as a subgroup of this group id.")
@click.pass_context
def group_create(
    ctx: click.Context, name: Optional[str], description: Optional[str], parent_id: Optional[str]
) -> None:
    """Create a group; prompts for NAME and description when NAME is omitted."""
    session = _session(ctx)
    if name is None:
        _run_flow(create_group_flow, session, ClickPrompter(), parent_id=parent_id)
        return
    created = _run_flow(session.engine.create_group, name, description, parent_id)
    console.print(f"[green]Group '{created.name}' created ({created.id}).[/green]")


@group.command("rename")
@click.argument("group_id")
@click.argument("name", required=False)
@click.pass_context
def group_rename(ctx: click.Context, group_id: str, name: Optional[str]) -> None:
    """Rename a group; prompts when NAME is omitted."""
    session = _session(ctx)
    if name is None:
        _run_flow(rename_group_flow, session, ClickPrompter(), group_id)
        return
    _fail_unless(session.engine.rename_group(group_id, name), "Rename failed.")
    console.print(f"[green]Group renamed to '{name}'.[/green]")


@group.command("describe")
@click.argument("group_id")
@click.option("--description", type=str, help="New description.")
@click.option("--color", type=str, help="New color tag.")
@click.option("--expanded/--collapsed", "is_expanded", default=None, help="Expanded flag.")
@click.pass_context
def group_describe(
    ctx: click.Context,
    group_id: str,
    description: Optional[str],
    color: Optional[str],
    is_expanded: Optional[bool],
) -> None:
    """Update a group's description, color, or expanded flag."""
    session = _session(ctx)
    fields: dict[str, Any] = {
        key: value
        for key, value in (
            ("description", description),
            ("color", color),
            ("is_expanded", is_expanded),
        )
        if value is not None
    }
    if not fields:
        raise click.ClickException("Nothing to update; pass --description, --color, or --expanded.")
    _fail_unless(session.engine.update_group(group_id, **fields), "Update failed.")
    console.print("[green]Group updated.[/green]")


@group.command("delete")
@click.argument("group_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def group_delete(ctx: click.Context, group_id: str, yes: bool) -> None:
    """Delete a group and all of its subgroups."""
    session = _session(ctx)
    if yes:
        group_obj = _require_group(session, group_id)
        _fail_unless(session.engine.delete_group(group_id), "Delete failed.")
        console.print(f"[green]Group '{group_obj.name}' deleted.[/green]")
        return
    _run_flow(delete_group_flow, session, ClickPrompter(), group_id)


@group.command("up")
@click.argument("group_id")
@click.pass_context
def group_up(ctx: click.Context, group_id: str) -> None:
    """Move a top-level group one position up."""
    session = _session(ctx)
    _run_flow(shift_group_flow, session, ClickPrompter(), group_id, -1)


@group.command("down")
@click.argument("group_id")
@click.pass_context
def group_down(ctx: click.Context, group_id: str) -> None:
    """Move a top-level group one position down."""
    session = _session(ctx)
    _run_flow(shift_group_flow, session, ClickPrompter(), group_id, 1)


# Files and folders ----------------------------------------------------------


def _add_reference(
    ctx: click.Context, path: Path, group_id: Optional[str], label: Optional[str], kind: str
) -> None:
    session = _session(ctx)
    if group_id is None:
        _run_flow(add_path_flow, session, ClickPrompter(), path.resolve())
        return
    group_obj = _require_group(session, group_id)
    if session.root is None:
        raise click.ClickException("A project root is required to add files or folders.")
    relative_path = relative_to_root(session.root, path.resolve())
    if kind == "folder":
        ok = session.engine.add_folder_to_group(group_id, relative_path, label)
    else:
        ok = session.engine.add_file_to_group(group_id, relative_path, label)
    _fail_unless(ok, f"Could not add {relative_path}.")
    console.print(f"[green]Added {kind} {relative_path} to group '{group_obj.name}'.[/green]")


@cli.group()
def file() -> None:
    """Add or remove file references."""


@file.command("add")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--group", "group_id", type=str, help="Target group id; prompts when omitted.")
@click.option("--label", type=str, help="Display label override.")
@click.pass_context
def file_add(ctx: click.Context, path: Path, group_id: Optional[str], label: Optional[str]) -> None:
    """Add PATH to a group."""
    _add_reference(ctx, path, group_id, label, "file")


@file.command("remove")
@click.argument("group_id")
@click.argument("file_id")
@click.pass_context
def file_remove(ctx: click.Context, group_id: str, file_id: str) -> None:
    """Remove a file reference from a group."""
    session = _session(ctx)
    _fail_unless(session.engine.remove_file_from_group(group_id, file_id), "Remove failed.")
    console.print("[green]File removed.[/green]")


@cli.group()
def folder() -> None:
    """Add or remove folder references."""


@folder.command("add")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--group", "group_id", type=str, help="Target group id; prompts when omitted.")
@click.option("--label", type=str, help="Display label override.")
@click.pass_context
def folder_add(
    ctx: click.Context, path: Path, group_id: Optional[str], label: Optional[str]
) -> None:
    """Add the folder PATH to a group."""
    _add_reference(ctx, path, group_id, label, "folder")


@folder.command("remove")
@click.argument("group_id")
@click.argument("folder_id")
@click.pass_context
def folder_remove(ctx: click.Context, group_id: str, folder_id: str) -> None:
    """Remove a folder reference from a group."""
    session = _session(ctx)
    _fail_unless(session.engine.remove_folder_from_group(group_id, folder_id), "Remove failed.")
    console.print("[green]Folder removed.[/green]")


# Ordering and moves ---------------------------------------------------------


@cli.command()
@click.argument("item_id")
@click.argument("index", type=int)
@click.pass_context
def reorder(ctx: click.Context, item_id: str, index: int) -> None:
    """Move ITEM_ID to INDEX within its sibling list (0-based)."""
    session = _session(ctx)
    node = locate_node(session.store, item_id)
    if node is None:
        raise click.ClickException(f"Item '{item_id}' not found.")
    if node.kind == "group":
        ok = session.engine.reorder_top_level_groups(item_id, index)
    else:
        owner = node.group_id or _owner_id(session, item_id)
        ok = session.engine.reorder_items(owner, item_id, index, item_kind_of(node.kind))
    _fail_unless(ok, "Nothing reordered.")
    console.print(f"[green]Moved to position {index}.[/green]")


def _owner_id(session: Session, group_id: str) -> str:
    parent = session.store.find_parent(group_id)
    if parent is None:
        raise click.ClickException(f"Group '{group_id}' has no parent group.")
    return parent.id


@cli.command()
@click.argument("item_id")
@click.argument("target_group_id")
@click.pass_context
def move(ctx: click.Context, item_id: str, target_group_id: str) -> None:
    """Move a file, folder, or subgroup into another group."""
    session = _session(ctx)
    node = locate_node(session.store, item_id)
    if node is None or node.kind == "group":
        raise click.ClickException(f"'{item_id}' is not a file, folder, or subgroup.")
    source_id = node.group_id or _owner_id(session, item_id)
    _fail_unless(
        session.engine.move_between_groups(
            source_id, target_group_id, item_id, item_kind_of(node.kind)
        ),
        "Move failed.",
    )
    console.print("[green]Moved.[/green]")


@cli.command()
@click.argument("item_id")
@click.argument("target_id")
@click.pass_context
def drop(ctx: click.Context, item_id: str, target_id: str) -> None:
    """Drop ITEM_ID onto TARGET_ID as a drag-and-drop gesture would."""
    session = _session(ctx)
    source = locate_node(session.store, item_id)
    target = locate_node(session.store, target_id)
    if source is None or target is None:
        raise click.ClickException("Both the dragged item and the drop target must exist.")
    controller = DropController(session, ClickPrompter())
    _fail_unless(controller.drop(target, controller.drag([source])), "Drop had no effect.")
    console.print("[green]Dropped.[/green]")


# Bulk open, import, and export ------------------------------------------------


@cli.command("open")
@click.argument("group_id")
@click.option("--launch", is_flag=True, help="Open each file with the default application.")
@click.pass_context
def open_group(ctx: click.Context, group_id: str, launch: bool) -> None:
    """List (or launch) the files of a group, capped by the configured limit."""
    session = _session(ctx)
    paths = _run_flow(open_all_files_flow, session, ClickPrompter(), group_id) or []
    opened = 0
    for path in paths:
        console.print(str(path), markup=False, highlight=False, soft_wrap=True)
        if launch:
            if click.launch(str(path)) == 0:
                opened += 1
            else:
                logging.getLogger(__name__).error("Failed to open file: %s", path)
    if launch and paths:
        console.print(f"[green]Opened {opened} of {len(paths)} files.[/green]")


@cli.command("export")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path), required=False)
@click.pass_context
def export_cmd(ctx: click.Context, output: Optional[Path]) -> None:
    """Write the forest document to OUTPUT, or to stdout when omitted."""
    session = _session(ctx)
    payload = export_document(session.store.document)
    if output is None:
        click.echo(payload.decode("utf-8"))
        return
    try:
        output.write_bytes(payload)
    except OSError as exc:
        raise click.ClickException(f"Export failed: {exc}") from exc
    console.print(f"[green]Groups exported to {output}.[/green]")


@cli.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--mode",
    type=click.Choice(list(IMPORT_MODE_LABELS)),
    help="Replace or merge; prompts when omitted.",
)
@click.pass_context
def import_cmd(ctx: click.Context, source: Path, mode: Optional[str]) -> None:
    """Import groups from an exported document."""
    session = _session(ctx)
    data = source.read_bytes()
    if mode is None:
        result = _run_flow(import_flow, session, ClickPrompter(), data)
    else:
        result = _run_flow(import_document, session.engine, data, mode)
    if result is None:
        return
    console.print(
        f"[green]Import ({result.mode}): {len(result.added)} added, "
        f"{len(result.skipped)} skipped.[/green]"
    )
    for name in result.skipped:
        console.print(f"[yellow]  - skipped existing group '{name}'[/yellow]")


# Deletion events --------------------------------------------------------------


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.pass_context
def forget(ctx: click.Context, path: Path) -> None:
    """Handle an externally deleted PATH by removing it from every top-level group."""
    session = _session(ctx)
    removed = session.engine.remove_path_everywhere(path.absolute())
    console.print(f"[green]Removed {removed} reference(s).[/green]")


@cli.command()
@click.pass_context
def watch(ctx: click.Context) -> None:
    """Watch the project root and forget files as they are deleted."""
    session = _session(ctx)

    def _report(path: Path, removed: int) -> None:
        if removed:
            console.print(f"[cyan]Removed {path} from {removed} group(s).[/cyan]")

    watcher = DeletionWatcher(session, on_removed=_report)
    watcher.start()
    console.print(f"[green]Watching {session.root}; press Ctrl-C to stop.[/green]")
    try:
        while True:
            time.sleep(0.5)
    except KeyboardInterrupt:
        console.print("[yellow]Stopping watch.[/yellow]")
    finally:
        watcher.stop()


# Configuration ----------------------------------------------------------------


@cli.group()
def config() -> None:
    """Manage favtree configuration files and overrides.

    Returns:
        None: This function is invoked for its side effects.
    """


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        loaded = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(loaded.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY."""
    manager = ConfigManager()
    manager.ensure_exists()
    before_text = manager.read_text().splitlines()
    before = manager.load_file_overrides()

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    try:
        manager.set_value(key, parsed_value)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    if manager.load_file_overrides() == before:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    diff = difflib.unified_diff(
        before_text,
        manager.read_text().splitlines(),
        fromfile="config.yaml (before)",
        tofile="config.yaml (after)",
        lineterm="",
    )
    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {key}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Edit the favtree settings file in $EDITOR; invalid edits are discarded."""
    manager = ConfigManager()
    manager.ensure_exists()
    before = manager.read_text()

    after = click.edit(before, extension=".yaml")
    if after is None or after == before:
        console.print(f"[yellow]Settings left unchanged ({manager.config_path}).[/yellow]")
        return

    try:
        overrides = _parse_settings(after)
    except ConfigError as exc:
        raise click.ClickException(f"Edit discarded: {exc}") from exc

    manager.save(overrides)
    console.print(f"[green]Saved favtree settings to {manager.config_path}.[/green]")


def _parse_settings(text: str) -> dict[str, Any]:
    """Parse edited YAML and check it against the settings models.

    Raises:
        ConfigError: If the text is not a YAML mapping of valid settings.
    """
    try:
        overrides = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"not valid YAML ({exc})") from exc
    if not isinstance(overrides, dict):
        raise ConfigError("settings must be a mapping of sections")
    resolve_with_precedence(defaults=FavtreeConfig(), file_overrides=overrides)
    return overrides


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
