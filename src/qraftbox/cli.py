"""qraftbox CLI — Typer application with diff, show, tree, status, staged, and init commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, List, Optional

import typer
from rich.console import Console

from qraftbox import __version__

app = typer.Typer(
    name="qraftbox",
    help="Inspect git changes as structured diffs and file trees.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console(stderr=True)

_FORMATS = ("terminal", "json", "yaml")


def _resolve_repo_root() -> Path:
    """Find the git repo root, exit 2 on failure."""
    from qraftbox.git.executor import GitExecError, get_repo_root

    try:
        return get_repo_root()
    except GitExecError as exc:
        console.print(f"[bold red]Error:[/bold red] not inside a git repository ({exc})")
        raise typer.Exit(code=2) from exc


def _load(ctx: typer.Context, repo_root: Path, config: Optional[str], fmt: Optional[str]):
    """Load config, apply --format, and configure logging. Exits 2 on bad input."""
    from qraftbox.config.loader import ConfigError, load_config
    from qraftbox.logging_config import setup_logging

    try:
        cfg = load_config(repo_root, config)
    except ConfigError as exc:
        console.print(f"[bold red]Config error:[/bold red] {exc}")
        raise typer.Exit(code=2) from exc

    if fmt:
        if fmt not in _FORMATS:
            console.print(f"[bold red]Invalid format:[/bold red] {fmt}")
            raise typer.Exit(code=2)
        cfg.output.format = fmt  # type: ignore[assignment]

    log_level = (ctx.obj or {}).get("log_level")
    setup_logging(log_level or cfg.logging.level, console)
    return cfg


def _emit(
    cfg: Any,
    data: Callable[[], Any],
    render_terminal: Callable[[], None],
    output: Optional[str],
) -> None:
    """Print with the configured reporter; ``--output`` always receives machine-readable text."""
    from qraftbox.output import json_report, yaml_report

    report_text: Optional[str] = None
    if cfg.output.format == "terminal":
        render_terminal()
    elif cfg.output.format == "json":
        report_text = json_report.render(data())
        print(report_text)
    elif cfg.output.format == "yaml":
        report_text = yaml_report.render(data())
        print(report_text, end="")

    if output:
        if report_text is None:
            report_text = json_report.render(data())
        Path(output).write_text(report_text, encoding="utf-8")
        console.print(f"[dim]Report written to {output}[/dim]")


def _revision(value: Optional[str], default: Any) -> Any:
    from qraftbox.git.diff import WORKING_TREE

    if value is None:
        return default
    return WORKING_TREE if value == WORKING_TREE.value else value


def _fail(exc: Exception) -> typer.Exit:
    console.print(f"[bold red]Git error:[/bold red] {exc}")
    return typer.Exit(code=2)


# ── diff ──────────────────────────────────────────────────────────────────────


@app.command()
def diff(
    ctx: typer.Context,
    paths: Optional[List[str]] = typer.Argument(None, help="Limit the diff to these paths"),
    base: Optional[str] = typer.Option(None, "--base", "-b", help="Base revision (default HEAD)"),
    target: Optional[str] = typer.Option(
        None, "--target", "-t", help="Target revision (default: working tree)"
    ),
    context: Optional[int] = typer.Option(None, "--context", "-U", min=0, help="Context lines"),
    no_untracked: bool = typer.Option(False, "--no-untracked", help="Leave out untracked files"),
    full_content: bool = typer.Option(
        False, "--full-content", help="Read untracked files even when they are large"
    ),
    stat: bool = typer.Option(False, "--stat", help="Summary table only, no hunks"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .qraftbox.toml"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json | yaml"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write report to file"),
) -> None:
    """Show changes between two revisions, or a revision and the working tree."""
    from qraftbox.git.diff import (
        DEFAULT_BASE,
        WORKING_TREE,
        DiffError,
        DiffOptions,
        detect_default_base,
        get_diff,
    )
    from qraftbox.output import json_report, terminal

    repo_root = _resolve_repo_root()
    cfg = _load(ctx, repo_root, config, format)

    base_rev = _revision(base, None)
    if base_rev is None:
        auto = None
        if cfg.diff.auto_base:
            auto = detect_default_base(repo_root, timeout_ms=cfg.git.timeout_ms)
        base_rev = auto or DEFAULT_BASE

    options = DiffOptions(
        base=base_rev,
        target=_revision(target, WORKING_TREE),
        paths=tuple(paths or ()),
        context_lines=cfg.diff.context_lines if context is None else context,
        include_untracked=cfg.diff.include_untracked and not no_untracked,
        full_content=full_content,
    )

    try:
        files = get_diff(repo_root, options, timeout_ms=cfg.git.timeout_ms)
    except DiffError as exc:
        raise _fail(exc) from exc

    _emit(
        cfg,
        lambda: json_report.diff_to_dict(files),
        lambda: terminal.render_diff(files, show_hunks=not stat),
        output,
    )


# ── show ──────────────────────────────────────────────────────────────────────


@app.command()
def show(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="File path relative to the repository root"),
    rev: Optional[str] = typer.Option(None, "--rev", "-r", help="Revision (default: working tree)"),
    limit: Optional[int] = typer.Option(None, "--limit", min=0, help="Read at most this many bytes"),
    partial: bool = typer.Option(
        False, "--partial", help="Truncate large working-tree files to the partial-content limit"
    ),
    info: bool = typer.Option(False, "--info", help="Print binary/large-file details instead of content"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .qraftbox.toml"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format for --info"),
) -> None:
    """Print a file's content at a revision (or from the working tree)."""
    from qraftbox.git.binary import (
        BINARY_SAMPLE_SIZE,
        PARTIAL_CONTENT_LIMIT,
        check_large,
        classify,
    )
    from qraftbox.git.diff import WORKING_TREE, DiffError, get_file_content
    from qraftbox.output import json_report

    repo_root = _resolve_repo_root()
    cfg = _load(ctx, repo_root, config, format)
    revision = _revision(rev, WORKING_TREE)

    if info:
        try:
            sample = get_file_content(
                repo_root, path, revision, limit=BINARY_SAMPLE_SIZE, timeout_ms=cfg.git.timeout_ms
            )
        except DiffError as exc:
            raise _fail(exc) from exc
        detection = classify(path, sample)
        data = {
            "path": path,
            "isBinary": detection.is_binary,
            "isImage": detection.is_image,
            "extension": detection.extension,
            "mimeType": detection.mime_type,
        }
        if revision == WORKING_TREE:
            data["largeFile"] = json_report.large_file_to_dict(check_large(path, repo_root))

        def _terminal() -> None:
            out = Console()
            for key, value in data.items():
                out.print(f"[dim]{key}:[/dim] {value}")

        _emit(cfg, lambda: data, _terminal, None)
        return

    if partial and limit is None:
        if revision == WORKING_TREE and check_large(path, repo_root).is_large:
            limit = PARTIAL_CONTENT_LIMIT

    try:
        content = get_file_content(
            repo_root, path, revision, limit=limit, timeout_ms=cfg.git.timeout_ms
        )
    except DiffError as exc:
        raise _fail(exc) from exc
    typer.echo(content, nl=False)


# ── tree ──────────────────────────────────────────────────────────────────────


@app.command()
def tree(
    ctx: typer.Context,
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="all | changed"),
    base: Optional[str] = typer.Option(None, "--base", "-b", help="Base revision for change status"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .qraftbox.toml"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json | yaml"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write report to file"),
) -> None:
    """Show the repository file tree annotated with change status."""
    from qraftbox.git.diff import DEFAULT_BASE, DiffError, DiffOptions
    from qraftbox.git.files import TreeMode, get_file_tree
    from qraftbox.output import json_report, terminal

    repo_root = _resolve_repo_root()
    cfg = _load(ctx, repo_root, config, format)

    mode_name = mode or cfg.tree.mode
    try:
        tree_mode = TreeMode(mode_name)
    except ValueError:
        console.print(f"[bold red]Invalid mode:[/bold red] {mode_name}")
        raise typer.Exit(code=2)

    options = DiffOptions(
        base=_revision(base, DEFAULT_BASE), include_untracked=cfg.diff.include_untracked
    )
    try:
        root = get_file_tree(repo_root, tree_mode, options, timeout_ms=cfg.git.timeout_ms)
    except DiffError as exc:
        raise _fail(exc) from exc

    _emit(
        cfg,
        lambda: json_report.tree_to_dict(root),
        lambda: terminal.render_tree(root, title=repo_root.name),
        output,
    )


# ── status ────────────────────────────────────────────────────────────────────


@app.command()
def status(
    ctx: typer.Context,
    no_untracked: bool = typer.Option(False, "--no-untracked", help="Leave out untracked files"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .qraftbox.toml"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json | yaml"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write report to file"),
) -> None:
    """List changed files without computing full diffs."""
    from qraftbox.git.diff import DiffError, DiffOptions, get_changed_files
    from qraftbox.output import json_report, terminal

    repo_root = _resolve_repo_root()
    cfg = _load(ctx, repo_root, config, format)

    options = DiffOptions(include_untracked=cfg.diff.include_untracked and not no_untracked)
    try:
        entries = get_changed_files(repo_root, options, timeout_ms=cfg.git.timeout_ms)
    except DiffError as exc:
        raise _fail(exc) from exc

    _emit(
        cfg,
        lambda: json_report.status_to_dict(entries),
        lambda: terminal.render_status(entries),
        output,
    )


# ── staged ────────────────────────────────────────────────────────────────────


@app.command()
def staged(
    ctx: typer.Context,
    show_diff: bool = typer.Option(False, "--diff", "-d", help="Show the staged hunks"),
    check: bool = typer.Option(
        False, "--check", help="Exit 1 when nothing is staged, print nothing"
    ),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Path to .qraftbox.toml"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Output format: terminal | json | yaml"),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write report to file"),
) -> None:
    """List staged files with line counts."""
    from qraftbox.git.diff import DiffError
    from qraftbox.git.staged import get_staged_diff, get_staged_files, has_staged_changes
    from qraftbox.output import json_report, terminal

    repo_root = _resolve_repo_root()
    cfg = _load(ctx, repo_root, config, format)
    timeout_ms = cfg.git.timeout_ms

    try:
        if check:
            raise typer.Exit(code=0 if has_staged_changes(repo_root, timeout_ms=timeout_ms) else 1)

        if show_diff:
            files = get_staged_diff(repo_root, cfg.diff.context_lines, timeout_ms=timeout_ms)
            _emit(
                cfg,
                lambda: json_report.diff_to_dict(files),
                lambda: terminal.render_diff(files),
                output,
            )
            return

        staged_files = get_staged_files(repo_root, timeout_ms=timeout_ms)
    except DiffError as exc:
        raise _fail(exc) from exc

    _emit(
        cfg,
        lambda: json_report.staged_to_dict(staged_files),
        lambda: terminal.render_staged(staged_files),
        output,
    )


# ── init ──────────────────────────────────────────────────────────────────────


@app.command()
def init() -> None:
    """Generate a starter .qraftbox.toml in the repo root."""
    from qraftbox.config.defaults import CONFIG_FILENAME, DEFAULT_TOML

    repo_root = _resolve_repo_root()
    config_path = repo_root / CONFIG_FILENAME

    if config_path.exists():
        console.print(f"[yellow]⚠[/yellow]  {CONFIG_FILENAME} already exists at {config_path}")
        raise typer.Exit(code=1)

    config_path.write_text(DEFAULT_TOML, encoding="utf-8")
    console.print(f"[green]✓[/green] Created {config_path}")


# ── version ───────────────────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        print(f"qraftbox {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Optional[str] = typer.Option(
        None, "--log-level", "-l", help="debug | info | warning | error (overrides config and env)"
    ),
    version: bool = typer.Option(
        False, "--version", "-V", callback=_version_callback,
        is_eager=True, help="Show version and exit",
    ),
) -> None:
    """qraftbox — structured git diffs, file trees, and change status."""
    ctx.obj = {"log_level": log_level}
