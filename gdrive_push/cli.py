"""CLI interface for gdrive-push."""

import logging
import os
import time
from datetime import datetime
from typing import Any, Optional

import click

from . import __version__
from .api import DriveClient
from .auth import require_access_token
from .config import config
from .exceptions import (
    GDriveConfigError,
    GDrivePushError,
    LocalScanError,
    OperationLimitExceeded,
)
from .governor import OperationGovernor
from .output import OutputFormatter
from .reconciler import Reconciler
from .remote import DriveHierarchy
from .tree import build_tree
from .utils import format_duration, format_size

logger = logging.getLogger(__name__)

# Exit status when the operation ceiling aborts the run
EXIT_OPERATION_LIMIT = 3


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(version=__version__)
@click.pass_context
def main(ctx: Any, quiet: bool, verbose: bool) -> None:
    """gdrive-push - Push a local directory tree into a Google Drive folder."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("gdrive_push").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--access-token",
    "-t",
    prompt="Enter your Google Drive access token",
    hide_input=True,
    help="OAuth access token with the drive scope",
)
@click.pass_context
def init(ctx: Any, access_token: str) -> None:
    """Store an access token in ~/.config/gdrive-push/config."""
    out: OutputFormatter = ctx.obj["out"]

    if not access_token.strip():
        out.error("Access token must not be empty")
        ctx.exit(1)

    try:
        config.save_access_token(access_token.strip())
    except OSError as e:
        out.error(f"Could not save configuration: {e}")
        ctx.exit(1)

    out.success(f"✓ Configuration saved to {config.get_config_path()}")


@main.command()
@click.argument("path", type=click.Path(file_okay=False))
@click.pass_context
def scan(ctx: Any, path: str) -> None:
    """Scan a local directory and print its tree as JSON.

    PATH: Local directory to scan
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        tree = build_tree(path)
    except LocalScanError as e:
        out.error(f"Problem creating directory tree: {e}")
        ctx.exit(1)

    out.output_json(tree.to_dict())


@main.command()
@click.option(
    "--gdrive-root-id",
    default="",
    help="The ID of the Drive folder to push to",
)
@click.option(
    "--local-dir-to-push",
    default="",
    help="Path to the local directory to push",
)
@click.option(
    "--old-files-dir",
    default="",
    help="ID of the Drive folder that receives files which would be overwritten",
)
@click.option(
    "--max-gdrive-ops",
    type=int,
    default=None,
    help="Paranoia failsafe: the max number of Drive write operations per run "
    "(default: 20)",
)
@click.option(
    "--access-token",
    "-t",
    envvar="GDRIVE_ACCESS_TOKEN",
    help="OAuth access token (default: from config)",
)
@click.pass_context
def push(
    ctx: Any,
    gdrive_root_id: str,
    local_dir_to_push: str,
    old_files_dir: str,
    max_gdrive_ops: Optional[int],
    access_token: Optional[str],
) -> None:
    """Push a local directory into a Drive folder.

    Missing folders are created and files are uploaded. A file that
    already exists remotely is moved into --old-files-dir and uploaded
    again; nothing is ever deleted.
    """
    out: OutputFormatter = ctx.obj["out"]

    required = {
        "--gdrive-root-id": gdrive_root_id,
        "--local-dir-to-push": local_dir_to_push,
        "--old-files-dir": old_files_dir,
    }
    for flag, value in required.items():
        if not value.strip():
            out.error(f"{flag} must be provided")
            ctx.exit(1)

    max_ops = max_gdrive_ops if max_gdrive_ops is not None else config.max_ops
    if max_ops < 1:
        out.error("--max-gdrive-ops must be at least 1")
        ctx.exit(1)

    try:
        token = require_access_token(access_token)
    except GDriveConfigError as e:
        out.error(str(e))
        ctx.exit(1)

    local_dir = os.path.abspath(local_dir_to_push)
    start = time.monotonic()
    out.print(f'Pushing contents of "{local_dir}" to GDrive folder "{gdrive_root_id}"')
    out.print()
    out.print(datetime.now().astimezone().isoformat(sep=" "))

    try:
        tree = build_tree(local_dir)
    except LocalScanError as e:
        out.error(f"Problem creating directory tree: {e}")
        ctx.exit(1)

    governor = OperationGovernor(max_ops)

    try:
        with DriveClient(access_token=token) as client:
            reconciler = Reconciler(
                DriveHierarchy(client, governor),
                quarantine_id=old_files_dir,
                output=out,
            )
            stats = reconciler.reconcile(tree, gdrive_root_id)
    except OperationLimitExceeded as e:
        out.error(str(e))
        ctx.exit(EXIT_OPERATION_LIMIT)
    except GDrivePushError as e:
        out.error(f"Problem syncing dir: {e}")
        ctx.exit(1)
    except KeyboardInterrupt:
        out.warning("\nInterrupted, remote operations already issued are kept")
        ctx.exit(130)

    logger.debug(f"Stats: {stats.to_dict()}")
    out.info(
        f"{stats.created_folders} folder(s) created, "
        f"{stats.uploaded} file(s) uploaded, {stats.replaced} replaced "
        f"({format_size(stats.bytes_uploaded)}); "
        f"{governor.count}/{governor.ceiling} write operations used"
    )
    out.print(f"Took {format_duration(time.monotonic() - start)}")


if __name__ == "__main__":
    main()
