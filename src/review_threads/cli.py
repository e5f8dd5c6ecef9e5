"""CLI entry point for review-threads."""

import json
import sys
import time
from pathlib import Path

import click

from review_threads.anchors import DataFault, resolve_anchor
from review_threads.config import load_settings
from review_threads.git_ops import GitError, GitReviewService
from review_threads.logging import get_logger, init_logger
from review_threads.models import FileView, ReviewComment
from review_threads.services import ContentNotFoundError, EditorBuffer
from review_threads.session import ReviewSession
from review_threads.storage import read_snapshot, write_snapshot
from review_threads.watcher import ContentChangeWatcher


def format_view(view: FileView, as_json: bool = False) -> str:
    """Render a FileView for terminal output.

    Line numbers are shown 1-based, as editors display them.
    """
    if as_json:
        return json.dumps(view.model_dump(mode="json"), indent=2)

    lines = [f"{view.path} @ {view.commit_sha or '(modified)'}"]
    if not view.threads:
        lines.append("  No review threads")
    for thread in view.threads:
        where = f"line {thread.line_number + 1}" if thread.line_number is not None else "unanchored"
        count = len(thread.comments)
        lines.append(f"  [{where}] {count} comment{'s' if count != 1 else ''}")
        for comment in thread.comments:
            first_line = comment.body.splitlines()[0] if comment.body else ""
            author = comment.author or "unknown"
            lines.append(f"    {author}: {first_line}")
    for fault in view.faults:
        lines.append(f"  ! {fault.comment_id}: {fault.message}")
    return "\n".join(lines)


def _open_session(ctx: click.Context, snapshot_path: Path) -> ReviewSession:
    """Build a session over the repository given on the command line."""
    repo: Path = ctx.obj["repo"]
    settings = ctx.obj["settings"]
    try:
        snapshot = read_snapshot(snapshot_path)
        service = GitReviewService(repo)
    except (FileNotFoundError, ValueError, GitError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)
    return ReviewSession(service, snapshot, repository=repo, settings=settings, logger=get_logger())


def _wait_until_interrupted() -> None:
    """Block the calling thread until Ctrl+C."""
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass


@click.group()
@click.version_option(version="0.1.0", prog_name="review-threads")
@click.option(
    "--repo",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    help="Root of the git checkout (default: current directory)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (default: .review-threads.yml)",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug output")
@click.pass_context
def cli(ctx: click.Context, repo: Path, config_path: Path | None, verbose: bool):
    """Show where pull-request review comments belong in the current files."""
    try:
        settings = load_settings(config_path, {"verbose": verbose or None})
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2)
    init_logger(verbose=settings.verbose)
    ctx.obj = {"repo": repo, "settings": settings}


@cli.command()
@click.argument("snapshot_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("paths", nargs=-1, required=True)
@click.option(
    "--content",
    "content_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Use this file as the current content (single path only)",
)
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def show(ctx: click.Context, snapshot_path: Path, paths: tuple[str, ...], content_file: Path | None, as_json: bool):
    """Show the review threads of PATHS."""
    if content_file is not None and len(paths) != 1:
        click.echo("Error: --content requires exactly one path", err=True)
        sys.exit(1)

    session = _open_session(ctx, snapshot_path)
    exit_code = 0
    for path in paths:
        source = EditorBuffer(content_file.read_bytes()) if content_file is not None else None
        try:
            view = session.get_file(path, source)
        except (ContentNotFoundError, ValueError) as e:
            click.echo(f"Error: {e}", err=True)
            exit_code = 1
            continue
        click.echo(format_view(view, as_json))
    sys.exit(exit_code)


@cli.command(name="add-comment")
@click.argument("snapshot_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--path", "file_path", required=True, help="Repository-relative file path")
@click.option("--position", type=int, required=True, help="1-based position in the diff hunk")
@click.option(
    "--hunk",
    "hunk_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="File holding the diff hunk the comment is made on",
)
@click.option("--commit", "commit_id", default=None, help="Commit the hunk belongs to (default: head)")
@click.option("--author", default="", help="Comment author")
@click.argument("body", required=True)
@click.pass_context
def add_comment(
    ctx: click.Context,
    snapshot_path: Path,
    file_path: str,
    position: int,
    hunk_file: Path,
    commit_id: str | None,
    author: str,
    body: str,
):
    """Add a review comment to a snapshot file and show where it lands."""
    diff_hunk = hunk_file.read_text(encoding="utf-8")
    try:
        resolve_anchor(diff_hunk, position)
    except DataFault as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    session = _open_session(ctx, snapshot_path)
    comment = ReviewComment(
        author=author,
        body=body,
        path=file_path,
        diff_hunk=diff_hunk,
        original_commit_id=commit_id or session.snapshot.head.sha,
        original_position=position,
    )

    try:
        session.get_file(file_path)
    except (ContentNotFoundError, ValueError) as e:
        get_logger().warning(f"Comment saved but cannot be placed: {e}")

    thread = session.add_comment(comment)
    try:
        write_snapshot(snapshot_path, session.snapshot)
    except OSError as e:
        click.echo(f"Error writing snapshot: {e}", err=True)
        sys.exit(2)

    click.echo(f"Added comment {comment.id}")
    if thread is not None:
        where = f"line {thread.line_number + 1}" if thread.line_number is not None else "unanchored"
        click.echo(f"  {file_path}: {where} ({len(thread.comments)} in thread)")


@cli.command()
@click.argument("snapshot_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("paths", nargs=-1, required=True)
@click.option("--debounce", type=float, default=None, help="Seconds to wait after the last change")
@click.pass_context
def watch(ctx: click.Context, snapshot_path: Path, paths: tuple[str, ...], debounce: float | None):
    """Follow PATHS on disk and reprint their threads whenever they change."""
    session = _open_session(ctx, snapshot_path)
    logger = get_logger()
    for path in paths:
        try:
            click.echo(format_view(session.get_file(path)))
        except (ContentNotFoundError, ValueError) as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    settings = ctx.obj["settings"]
    watcher = ContentChangeWatcher(
        session,
        ctx.obj["repo"],
        debounce_seconds=debounce if debounce is not None else settings.watch_debounce,
        on_refresh=lambda _path, view: click.echo(format_view(view)),
    )
    watcher.start()
    logger.info(f"Watching {len(paths)} file(s), press Ctrl+C to stop")
    try:
        _wait_until_interrupted()
    finally:
        watcher.stop()
        logger.info("Watcher stopped")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
