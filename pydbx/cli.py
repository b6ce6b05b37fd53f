"""CLI interface for the Dropbox files client."""

import logging
from pathlib import Path
from typing import Any, Optional

import click
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from .api import DropboxClient
from .config import config
from .exceptions import DropboxError
from .models import (
    Metadata,
    SearchOptions,
    ThumbnailFormat,
    ThumbnailSize,
    WriteMode,
)
from .output import OutputFormatter
from .utils import file_content_hash

logger = logging.getLogger(__name__)


def _require_client(ctx: Any) -> DropboxClient:
    """Create an API client or exit when no token is configured."""
    token = ctx.obj.get("token")
    out: OutputFormatter = ctx.obj["out"]

    if not config.is_configured() and not token:
        out.error("Access token not configured.")
        out.info("Run 'pydbx init' to configure your access token")
        ctx.exit(1)

    try:
        return DropboxClient(access_token=token)
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        raise  # For type checker


def _entry_row(entry: Metadata, out: OutputFormatter) -> list[Any]:
    kind = "dir" if entry.is_folder() else entry.tag or "file"
    size = out.format_size(entry.size) if entry.is_file() else ""
    modified = entry.server_modified.strftime("%Y-%m-%d %H:%M") if entry.server_modified else ""
    return [kind, size, modified, entry.path_display or entry.name]


@click.group()
@click.option(
    "--token", "-t", envvar="DROPBOX_ACCESS_TOKEN", help="Dropbox access token"
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pydbx")
@click.pass_context
def main(
    ctx: Any,
    token: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """pydbx - Manage files and folders in Dropbox."""
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pydbx").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--token",
    "-t",
    prompt="Enter your Dropbox access token",
    hide_input=True,
    help="Dropbox access token",
)
@click.pass_context
def init(ctx: Any, token: str) -> None:
    """Store an access token in ~/.config/pydbx/config."""
    out: OutputFormatter = ctx.obj["out"]

    out.info("Validating access token...")
    try:
        with DropboxClient(access_token=token) as client:
            client.files.list_folder("")
        out.success("✓ Access token is valid")
    except DropboxError as e:
        out.error(f"Access token validation failed: {e}")
        if not click.confirm("Save access token anyway?", default=False):
            out.warning("Configuration cancelled.")
            ctx.exit(1)

    try:
        config.save_access_token(token)
    except OSError as e:
        out.error(f"Failed to save configuration: {e}")
        ctx.exit(1)

    out.print_summary(
        "Initialization Complete",
        [
            ("Status", "✓ Configuration saved successfully"),
            ("Config file", str(config.get_config_path())),
        ],
    )


@main.command(name="hash")
@click.argument("files", nargs=-1, required=True, type=click.Path())
@click.pass_context
def hash_cmd(ctx: Any, files: tuple[str, ...]) -> None:
    """Compute the content hash of local files.

    The hash matches the content_hash the server reports for the same
    data, so it can be used to check whether a local file differs from
    the remote copy.
    """
    out: OutputFormatter = ctx.obj["out"]
    results = []
    failed = False

    for path in files:
        try:
            digest = file_content_hash(path)
        except DropboxError as e:
            out.error(str(e))
            failed = True
            continue
        results.append({"path": path, "content_hash": digest})
        if not out.json_output:
            out.print(f"{digest}  {path}")

    if out.json_output:
        out.output_json(results)
    if failed:
        ctx.exit(1)


@main.command()
@click.argument("path", default="")
@click.option("--recursive", "-r", is_flag=True, help="List subfolders recursively")
@click.option("--deleted", is_flag=True, help="Include deleted entries")
@click.pass_context
def ls(ctx: Any, path: str, recursive: bool, deleted: bool) -> None:
    """List the contents of a folder.

    PATH: Folder path (default: root)
    """
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)

    try:
        entries = list(
            client.files.list_folder_all(
                path, recursive=recursive, include_deleted=deleted
            )
        )
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json([entry.to_dict() for entry in entries])
        return

    if not entries:
        out.info("Folder is empty")
        return

    entries.sort(key=lambda e: (not e.is_folder(), e.path_lower or e.name.lower()))
    out.print_table(
        ["Type", "Size", "Modified", "Path"],
        [_entry_row(entry, out) for entry in entries],
    )


@main.command()
@click.argument("path")
@click.pass_context
def stat(ctx: Any, path: str) -> None:
    """Show metadata for a file or folder."""
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)

    try:
        entry = client.files.get_metadata(path, include_media_info=True)
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(entry.to_dict())
        return

    items: list[tuple[str, Any]] = [
        ("Type", entry.tag),
        ("Path", entry.path_display),
        ("ID", entry.id),
    ]
    if entry.is_file():
        items += [
            ("Size", f"{out.format_size(entry.size)} ({entry.size} bytes)"),
            ("Revision", entry.rev),
            ("Content hash", entry.content_hash),
            ("Client modified", entry.client_modified),
            ("Server modified", entry.server_modified),
        ]
    out.print_summary(entry.name, items)


@main.command()
@click.argument("path")
@click.option("--autorename", is_flag=True, help="Rename if the folder exists")
@click.pass_context
def mkdir(ctx: Any, path: str, autorename: bool) -> None:
    """Create a folder."""
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)

    try:
        entry = client.files.create_folder(path, autorename=autorename)
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(entry.to_dict())
    else:
        out.success(f"Folder created: {entry.path_display or path}")


@main.command()
@click.argument("path")
@click.option("--permanent", is_flag=True, help="Delete permanently")
@click.pass_context
def rm(ctx: Any, path: str, permanent: bool) -> None:
    """Delete a file or folder."""
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)

    try:
        if permanent:
            client.files.permanently_delete(path)
        else:
            client.files.delete(path)
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json({"path": path, "permanent": permanent})
    else:
        out.success(f"Deleted: {path}")


def _relocate(ctx: Any, src: str, dst: str, autorename: bool, move: bool) -> None:
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)

    try:
        operation = client.files.move if move else client.files.copy
        entry = operation(src, dst, autorename=autorename)
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(entry.to_dict())
    else:
        verb = "Moved" if move else "Copied"
        out.success(f"{verb}: {src} -> {entry.path_display or dst}")


@main.command()
@click.argument("src")
@click.argument("dst")
@click.option("--autorename", is_flag=True, help="Rename on conflict")
@click.pass_context
def cp(ctx: Any, src: str, dst: str, autorename: bool) -> None:
    """Copy a file or folder."""
    _relocate(ctx, src, dst, autorename, move=False)


@main.command()
@click.argument("src")
@click.argument("dst")
@click.option("--autorename", is_flag=True, help="Rename on conflict")
@click.pass_context
def mv(ctx: Any, src: str, dst: str, autorename: bool) -> None:
    """Move a file or folder."""
    _relocate(ctx, src, dst, autorename, move=True)


@main.command()
@click.argument("local_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("remote_path", required=False)
@click.option(
    "--mode",
    type=click.Choice([WriteMode.ADD.value, WriteMode.OVERWRITE.value]),
    default=WriteMode.ADD.value,
    help="What to do if the remote file exists (default: add)",
)
@click.option("--autorename", is_flag=True, help="Rename on conflict")
@click.option("--no-verify", is_flag=True, help="Skip content hash verification")
@click.pass_context
def upload(
    ctx: Any,
    local_file: str,
    remote_path: Optional[str],
    mode: str,
    autorename: bool,
    no_verify: bool,
) -> None:
    """Upload a local file (up to 150 MB).

    REMOTE_PATH defaults to /<file name>.
    """
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)
    target = remote_path or f"/{Path(local_file).name}"

    try:
        entry = client.files.upload_file(
            local_file,
            target,
            mode=mode,
            autorename=autorename,
            verify=not no_verify,
        )
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(entry.to_dict())
    else:
        out.success(f"Uploaded: {local_file} -> {entry.path_display or target}")


@main.command()
@click.argument("remote_path")
@click.argument("local_path", required=False, type=click.Path())
@click.option("--no-verify", is_flag=True, help="Skip content hash verification")
@click.pass_context
def download(
    ctx: Any, remote_path: str, local_path: Optional[str], no_verify: bool
) -> None:
    """Download a file."""
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)
    show_progress = not (out.quiet or out.json_output)

    try:
        if show_progress:
            with Progress(
                "[progress.description]{task.description}",
                BarColumn(),
                DownloadColumn(),
                TransferSpeedColumn(),
                TimeRemainingColumn(),
                console=out.console,
            ) as progress:
                task = progress.add_task(f"Downloading {remote_path}", total=None)

                def _update(done: int, total: int) -> None:
                    progress.update(task, completed=done, total=total or None)

                entry = client.files.download_to_path(
                    remote_path,
                    local_path,
                    progress_callback=_update,
                    verify=not no_verify,
                )
        else:
            entry = client.files.download_to_path(
                remote_path, local_path, verify=not no_verify
            )
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(entry.to_dict())
    else:
        out.success(f"Downloaded: {remote_path} -> {local_path or entry.name}")


@main.command()
@click.argument("query")
@click.option("--path", "-p", default="", help="Folder to search in")
@click.option("--max-results", "-n", type=click.IntRange(1, 1000), default=100)
@click.option("--filename-only", is_flag=True, help="Match file names only")
@click.pass_context
def search(
    ctx: Any, query: str, path: str, max_results: int, filename_only: bool
) -> None:
    """Search for files and folders."""
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)

    options = SearchOptions(
        path=path, max_results=max_results, filename_only=filename_only
    )
    try:
        result = client.files.search(query, options=options)
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    entries = [match.metadata for match in result.matches]
    if out.json_output:
        out.output_json([entry.to_dict() for entry in entries])
        return

    if not entries:
        out.info(f"No matches for '{query}'")
        return

    out.print_table(
        ["Type", "Size", "Modified", "Path"],
        [_entry_row(entry, out) for entry in entries],
    )
    if result.has_more:
        out.info("More results available; narrow the query or raise --max-results")


@main.command()
@click.argument("path")
@click.option("--limit", "-l", type=click.IntRange(1, 100), default=10)
@click.pass_context
def revisions(ctx: Any, path: str, limit: int) -> None:
    """List revisions of a file."""
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)

    try:
        result = client.files.list_revisions(path, limit=limit)
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(
            {
                "is_deleted": result.is_deleted,
                "entries": [entry.to_dict() for entry in result.entries],
            }
        )
        return

    out.print_table(
        ["Revision", "Size", "Modified", "Content hash"],
        [
            [
                entry.rev,
                out.format_size(entry.size),
                entry.server_modified.strftime("%Y-%m-%d %H:%M")
                if entry.server_modified
                else "",
                entry.content_hash,
            ]
            for entry in result.entries
        ],
    )
    if result.is_deleted:
        out.warning("File is currently deleted")


@main.command()
@click.argument("path")
@click.argument("rev")
@click.pass_context
def restore(ctx: Any, path: str, rev: str) -> None:
    """Restore a file to a revision."""
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)

    try:
        entry = client.files.restore(path, rev)
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return

    if out.json_output:
        out.output_json(entry.to_dict())
    else:
        out.success(f"Restored {entry.path_display or path} to revision {entry.rev or rev}")


@main.command()
@click.argument("path")
@click.argument("output", type=click.Path(dir_okay=False))
@click.option(
    "--size",
    "-s",
    type=click.Choice([s.value for s in ThumbnailSize]),
    default=ThumbnailSize.W64H64.value,
)
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice([f.value for f in ThumbnailFormat]),
    default=ThumbnailFormat.JPEG.value,
)
@click.pass_context
def thumbnail(ctx: Any, path: str, output: str, size: str, fmt: str) -> None:
    """Save a thumbnail of an image file to OUTPUT."""
    out: OutputFormatter = ctx.obj["out"]
    client = _require_client(ctx)

    try:
        result = client.files.get_thumbnail(path, format=fmt, size=size)
        with result.body as body, open(output, "wb") as f:
            for chunk in body.iter_bytes():
                f.write(chunk)
    except DropboxError as e:
        out.error(str(e))
        ctx.exit(1)
        return
    except OSError as e:
        out.error(f"Failed to write {output}: {e}")
        ctx.exit(1)
        return

    out.success(f"Thumbnail saved: {output}")


if __name__ == "__main__":
    main()
