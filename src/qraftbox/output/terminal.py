"""Rich terminal reporter — change tables, coloured hunks, file trees."""

from __future__ import annotations

from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from qraftbox.git.models import (
    ChangeType,
    DiffFile,
    FileChangeStatus,
    FileNode,
    FileStatusEntry,
    StagedFile,
)

_STATUS_STYLE = {
    FileChangeStatus.ADDED: "bold green",
    FileChangeStatus.MODIFIED: "bold yellow",
    FileChangeStatus.DELETED: "bold red",
    FileChangeStatus.RENAMED: "bold blue",
    FileChangeStatus.COPIED: "bold cyan",
    FileChangeStatus.UNTRACKED: "bold magenta",
}

_STATUS_LETTER = {
    FileChangeStatus.ADDED: "A",
    FileChangeStatus.MODIFIED: "M",
    FileChangeStatus.DELETED: "D",
    FileChangeStatus.RENAMED: "R",
    FileChangeStatus.COPIED: "C",
    FileChangeStatus.UNTRACKED: "?",
}

_CHANGE_STYLE = {
    ChangeType.ADD: "green",
    ChangeType.DELETE: "red",
    ChangeType.NORMAL: "",
}

_CHANGE_MARKER = {ChangeType.ADD: "+", ChangeType.DELETE: "-", ChangeType.NORMAL: " "}


def _status_pill(status: FileChangeStatus) -> Text:
    return Text(_STATUS_LETTER[status], style=_STATUS_STYLE[status])


def _display_path(path: str, old_path: Optional[str]) -> str:
    return f"{old_path} → {path}" if old_path else path


def _format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KiB"
    return f"{size / (1024 * 1024):.1f} MiB"


def render_diff(
    files: Sequence[DiffFile], console: Optional[Console] = None, *, show_hunks: bool = True
) -> None:
    """Print a summary table and, optionally, every hunk."""
    console = console or Console()

    if not files:
        console.print("[bold green]No changes.[/bold green]")
        return

    table = Table(title="Changes", title_style="bold", border_style="dim")
    table.add_column("", justify="center", width=3)
    table.add_column("File", style="magenta")
    table.add_column("+", justify="right", style="green")
    table.add_column("-", justify="right", style="red")
    table.add_column("Note", style="dim")

    for f in files:
        note = ""
        if f.is_binary:
            note = "binary" + (f" ({_format_size(f.file_size)})" if f.file_size is not None else "")
        table.add_row(
            _status_pill(f.status),
            Text(_display_path(f.path, f.old_path)),
            str(f.additions),
            str(f.deletions),
            note,
        )
    console.print(table)

    if show_hunks:
        for f in files:
            _print_hunks(console, f)

    console.print()
    console.print(
        f"[dim]{len(files)} files changed,[/dim] "
        f"[green]{sum(f.additions for f in files)} insertions(+)[/green], "
        f"[red]{sum(f.deletions for f in files)} deletions(-)[/red]"
    )


def _print_hunks(console: Console, diff_file: DiffFile) -> None:
    if not diff_file.chunks:
        return
    console.print()
    console.print(Text(_display_path(diff_file.path, diff_file.old_path), style="bold"))
    for chunk in diff_file.chunks:
        console.print(Text(chunk.header, style="cyan"))
        for change in chunk.changes:
            console.print(
                Text(_CHANGE_MARKER[change.type] + change.content, style=_CHANGE_STYLE[change.type]),
                highlight=False,
            )


def _tree_label(node: FileNode) -> Text:
    label = Text(node.name + ("/" if node.is_directory and node.name else ""))
    if node.is_directory:
        label.stylize("bold blue")
    if node.status is not None:
        label.append(" ")
        label.append_text(_status_pill(node.status))
    if node.is_binary:
        label.append(" [binary]", style="dim")
    return label


def _add_children(branch: Tree, node: FileNode) -> None:
    for child in node.children or ():
        sub = branch.add(_tree_label(child))
        if child.is_directory:
            _add_children(sub, child)


def render_tree(root: FileNode, console: Optional[Console] = None, *, title: str = ".") -> None:
    console = console or Console()
    tree = Tree(Text(title, style="bold"))
    _add_children(tree, root)
    console.print(tree)


def render_status(entries: Sequence[FileStatusEntry], console: Optional[Console] = None) -> None:
    console = console or Console()
    if not entries:
        console.print("[bold green]Working tree clean.[/bold green]")
        return
    table = Table(title="Status", title_style="bold", border_style="dim")
    table.add_column("", justify="center", width=3)
    table.add_column("File", style="magenta")
    table.add_column("Staged", justify="center")
    for e in entries:
        table.add_row(
            _status_pill(e.status),
            Text(_display_path(e.path, e.old_path)),
            "✓" if e.staged else "",
        )
    console.print(table)


def render_staged(files: Sequence[StagedFile], console: Optional[Console] = None) -> None:
    console = console or Console()
    if not files:
        console.print("[dim]Nothing staged.[/dim]")
        return
    table = Table(title="Staged", title_style="bold", border_style="dim")
    table.add_column("", justify="center", width=3)
    table.add_column("File", style="magenta")
    table.add_column("+", justify="right", style="green")
    table.add_column("-", justify="right", style="red")
    for f in files:
        table.add_row(
            _status_pill(f.status),
            Text(_display_path(f.path, f.old_path)),
            str(f.additions),
            str(f.deletions),
        )
    console.print(table)
