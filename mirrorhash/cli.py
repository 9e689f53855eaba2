"""CLI interface for mirrorhash."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import TypeVar

import click

from mirrorhash.config import Config
from mirrorhash.database import Folder, Settings
from mirrorhash.project import (
    BackupProject,
    ProjectError,
    ProjectNotReadyError,
    open_or_create_project,
    open_project,
)
from mirrorhash.scanner import (
    CompleteScan,
    DuplicateFileAnalysis,
    FileScan,
    FileScanStatus,
    FolderScan,
    FullScanStatus,
    OrphanedFileScan,
    ProgressReporter,
    ScanCancelledError,
    ScanStatus,
)
from mirrorhash.scanner.filesystem import folder_names_to_path

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=ScanStatus)


def setup_logging(log_file: Path | None = None, verbose: bool = False) -> None:
    """Log warnings to stderr, and everything to the log file when one is given."""
    level = logging.DEBUG if verbose else logging.INFO
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level if verbose else logging.WARNING)
    handlers: list[logging.Handler] = [console]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=handlers,
        force=True,
    )


@click.group()
@click.option("--database", type=click.Path(path_type=Path), help="Path to project database file")
@click.option("--log-file", type=click.Path(path_type=Path), help="Append the log to this file")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to the console")
@click.pass_context
def cli(ctx: click.Context, database: Path | None, log_file: Path | None, verbose: bool) -> None:
    ctx.ensure_object(dict)
    config = Config()
    if database is not None:
        config.database_path = database
    config.database_path = config.database_path.absolute()
    ctx.obj["config"] = config
    setup_logging(log_file, verbose)


@cli.command()
@click.argument("root_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("mirror_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--ignore", "-i", "ignored", multiple=True, help="Folder to skip (exact path)")
@click.pass_context
def init(ctx: click.Context, root_path: Path, mirror_path: Path, ignored: tuple[str, ...]) -> None:
    """Create or open the project and save its settings."""
    config: Config = ctx.obj["config"]
    try:
        with open_or_create_project(config.database_path) as project:
            settings = _save_settings(project, root_path, mirror_path, ignored)
    except ProjectError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Project: {config.database_path}")
    click.echo(f"  Root path: {settings.root_path}")
    click.echo(f"  Mirror path: {settings.mirror_path}")
    for folder in settings.ignored_folders:
        click.echo(f"  Ignored: {folder}")


def _save_settings(
    project: BackupProject, root_path: Path, mirror_path: Path, ignored: tuple[str, ...]
) -> Settings:
    return project.save_settings(
        str(root_path.absolute()),
        str(mirror_path.absolute()),
        [str(Path(p).absolute()) for p in ignored],
    )


@contextmanager
def _scan_project(config: Config, require_scan: bool = False) -> Iterator[BackupProject]:
    """Open the project for a single phase.

    A new scan is created when there is none or when the settings were
    changed after the current one was started.
    """
    try:
        with open_project(config.database_path) as project:
            if not project.has_current_settings:
                if require_scan:
                    raise ProjectNotReadyError("There is no scan to resume.")
                project.create_scan()
            yield project
    except ProjectError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except (KeyboardInterrupt, ScanCancelledError):
        click.echo("\nScan interrupted.", err=True)
        sys.exit(130)


def _reporter(config: Config, status: S) -> S:
    ProgressReporter(interval=config.scanner.progress_interval).attach(status)
    return status


@cli.command("scan-folders")
@click.pass_context
def scan_folders(ctx: click.Context) -> None:
    """Register the folder tree of the working drive."""
    config: Config = ctx.obj["config"]
    with _scan_project(config) as project:
        status = _reporter(config, ScanStatus("Folder Scan"))
        stats = FolderScan(project, status).enumerate_folders()

    click.echo()
    click.echo("Folder Scan Complete:")
    click.echo(f"  Folders touched: {stats.folders_touched:,}")
    click.echo(f"  Folders created: {stats.folders_created:,}")
    click.echo(f"  Folders ignored: {stats.folders_ignored:,}")


@cli.command("scan-files")
@click.option("--resume", is_flag=True, help="Continue an interrupted file scan")
@click.pass_context
def scan_files(ctx: click.Context, resume: bool) -> None:
    """Hash every file of the registered folders and detect bitrot."""
    config: Config = ctx.obj["config"]
    with _scan_project(config, require_scan=resume) as project:
        status = _reporter(config, FileScanStatus("File Scan"))
        stats = FileScan(project, status, config=config.scanner).enumerate_files(resume)

    click.echo()
    click.echo("File Scan Complete:")
    click.echo(f"  Files hashed: {stats.files_hashed:,}")
    click.echo(f"  New files: {stats.files_added:,}")
    click.echo(f"  Modified files: {stats.files_updated:,}")
    click.echo(f"  Skipped (already hashed): {stats.files_skipped:,}")
    click.echo(f"  Errors: {stats.files_failed:,}")
    click.echo(f"  Bitrot detected: {stats.bitrot_detected:,}")


@cli.command("analyze-duplicates")
@click.pass_context
def analyze_duplicates(ctx: click.Context) -> None:
    """Mark duplicate files and classify working drive folders."""
    config: Config = ctx.obj["config"]
    with _scan_project(config) as project:
        status = _reporter(config, ScanStatus("Duplicate File Analysis"))
        stats = DuplicateFileAnalysis(project, status).run()

    click.echo()
    click.echo("Duplicate Analysis Complete:")
    click.echo(f"  Duplicate hashes: {stats.duplicate_hashes:,}")
    click.echo(f"  Duplicate files: {stats.duplicate_files:,}")
    click.echo(f"  Folders analysed: {stats.folders_processed:,}")
    click.echo(f"  Hash identical folders: {stats.identical_folders:,}")


@cli.command("find-orphans")
@click.pass_context
def find_orphans(ctx: click.Context) -> None:
    """Find mirror drive files that no longer exist on the working drive."""
    config: Config = ctx.obj["config"]
    with _scan_project(config) as project:
        status = _reporter(config, ScanStatus("Orphaned File Scan"))
        stats = OrphanedFileScan(project, status, config=config.scanner).enumerate_orphaned_files()

    click.echo()
    click.echo("Orphaned File Scan Complete:")
    click.echo(f"  Orphaned files: {stats.orphaned_files:,}")
    click.echo(f"  Mirror folders analysed: {stats.folders_processed:,}")
    click.echo(f"  Folders still on working drive: {stats.folders_still_on_working_drive:,}")


@cli.command("run-all")
@click.argument("root_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument("mirror_path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--ignore", "-i", "ignored", multiple=True, help="Folder to skip (exact path)")
@click.pass_context
def run_all(ctx: click.Context, root_path: Path, mirror_path: Path, ignored: tuple[str, ...]) -> None:
    """Run the full pipeline: folders → files → duplicates → orphans."""
    config: Config = ctx.obj["config"]

    click.echo("=" * 60)
    click.echo("MIRRORHASH COMPLETE SCAN")
    click.echo("=" * 60)
    click.echo()

    try:
        with open_or_create_project(config.database_path) as project:
            _save_settings(project, root_path, mirror_path, ignored)
            scan = project.create_scan()
            logger.info("Starting complete scan %d of %s", scan.id, root_path)
            status = FullScanStatus()
            ProgressReporter(interval=config.scanner.progress_interval).attach(status)
            result = CompleteScan(project, status, config=config.scanner).run_all()
    except ProjectError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except (KeyboardInterrupt, ScanCancelledError):
        click.echo("\nPipeline interrupted.", err=True)
        sys.exit(130)

    click.echo()
    click.echo("=" * 60)
    click.echo("SCAN COMPLETE")
    click.echo("=" * 60)
    click.echo()
    click.echo("Summary:")
    click.echo(f"  Scan: {scan.id}")
    click.echo(f"  Folders: {result.folder_scan.folders_touched:,}")
    click.echo(f"  Files hashed: {result.file_scan.files_hashed:,}")
    click.echo(f"  File errors: {result.file_scan.files_failed:,}")
    click.echo(f"  Bitrot detected: {result.file_scan.bitrot_detected:,}")
    click.echo(f"  Duplicate files: {result.duplicate_analysis.duplicate_files:,}")
    click.echo(f"  Orphaned files: {result.orphaned_file_scan.orphaned_files:,}")
    click.echo()
    click.echo(f"Database: {config.database_path}")


@contextmanager
def _report_project(config: Config) -> Iterator[BackupProject | None]:
    if not config.database_path.exists():
        click.echo("No project found. Run 'mirrorhash init' first.")
        yield None
        return
    with open_project(config.database_path) as project:
        yield project


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show settings and the stage flags of the current scan."""
    config: Config = ctx.obj["config"]
    with _report_project(config) as project:
        if project is None:
            return

        settings = project.settings
        click.echo(f"Root path: {settings.root_path or '(not set)'}")
        click.echo(f"Mirror path: {settings.mirror_path or '(not set)'}")
        click.echo(f"Ready: {'yes' if project.is_ready else 'no'}")

        scan_run = project.current_scan
        if scan_run is None:
            click.echo("\nNo scans found.")
            return

        scan = scan_run.scan
        click.echo(f"\nScan {scan.id} (created {_format_timestamp(scan.created_at)}):")
        click.echo("-" * 60)
        stages = [
            ("Folder scan", scan.folder_scan_finished, scan.folder_scan_started_at,
             scan.folder_scan_finished_at),
            ("File scan", scan.file_scan_finished, scan.file_scan_started_at,
             scan.file_scan_finished_at),
            ("Duplicate analysis", scan.duplicate_analysis_finished,
             scan.duplicate_analysis_started_at, scan.duplicate_analysis_finished_at),
            ("Orphaned file scan", scan.orphaned_file_scan_finished,
             scan.orphaned_file_scan_started_at, scan.orphaned_file_scan_finished_at),
        ]
        for name, finished, started_at, finished_at in stages:
            if finished:
                state = "finished"
            elif started_at is not None:
                state = "incomplete"
            else:
                state = "not started"
            click.echo(
                f"{name:<20} {state:<12} "
                f"{_format_timestamp(started_at):<20} {_format_timestamp(finished_at):<20}"
            )
        if scan.file_scan_initialized and not scan.file_scan_finished:
            click.echo("\nThe file scan can be resumed with 'mirrorhash scan-files --resume'.")

        click.echo()
        click.echo(f"Files: {project.file_repository.count():,}")
        click.echo(f"Orphaned files: {project.orphaned_file_repository.count():,}")
        click.echo(f"Bitrot findings: {len(project.bitrot_repository.list_for_scan(scan.id)):,}")


@cli.command()
@click.option("--show-copies", is_flag=True, help="List the working drive copies of every file")
@click.pass_context
def orphans(ctx: click.Context, show_copies: bool) -> None:
    """List orphaned files of the mirror drive."""
    config: Config = ctx.obj["config"]
    with _report_project(config) as project:
        if project is None:
            return

        orphaned_files = project.orphaned_file_repository.list_all()
        if not orphaned_files:
            click.echo("No orphaned files found.")
            return

        for orphaned_file in orphaned_files:
            path = _file_path(project, orphaned_file.parent_id, orphaned_file.name)
            click.echo(
                f"{path}  {_format_bytes(orphaned_file.size)}  "
                f"copies on working drive: {orphaned_file.num_copies_on_live_drive}"
            )
            if show_copies:
                for copy in project.file_repository.find_by_hash(orphaned_file.hash):
                    click.echo(f"    {_file_path(project, copy.parent_id, copy.name)}")

        safe = sum(1 for f in orphaned_files if f.num_copies_on_live_drive > 0)
        click.echo(f"\n{len(orphaned_files):,} orphaned files, {safe:,} still on the working drive.")


@cli.command()
@click.pass_context
def bitrot(ctx: click.Context) -> None:
    """List bitrot findings of the current scan."""
    config: Config = ctx.obj["config"]
    with _report_project(config) as project:
        if project is None:
            return
        if project.current_scan is None:
            click.echo("No scans found.")
            return

        findings = project.bitrot_repository.list_for_scan(project.current_scan.id)
        if not findings:
            click.echo("No bitrot detected.")
            return

        for finding in findings:
            path = _file_path(project, finding.folder_id, finding.file_name)
            click.echo(f"{_format_timestamp(finding.detected_at)}  {path}")
        click.echo(f"\n{len(findings):,} files with bitrot.")


@cli.command()
@click.pass_context
def duplicates(ctx: click.Context) -> None:
    """List groups of working drive files with identical content."""
    config: Config = ctx.obj["config"]
    with _report_project(config) as project:
        if project is None:
            return

        groups = project.file_repository.find_duplicate_groups()
        if not groups:
            click.echo("No duplicate files found.")
            return

        wasted = 0
        for group in groups:
            size = group.files[0].size
            wasted += size * (len(group.files) - 1)
            click.echo(f"{group.hash[:16]}  {len(group.files)} files  {_format_bytes(size)} each")
            for file in group.files:
                click.echo(f"    {_file_path(project, file.parent_id, file.name)}")
        click.echo(f"\n{len(groups):,} duplicate groups, {_format_bytes(wasted)} redundant.")


@cli.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def prune(ctx: click.Context, yes: bool) -> None:
    """Delete folders and files that were not seen by the latest scans."""
    config: Config = ctx.obj["config"]
    with _report_project(config) as project:
        if project is None:
            return
        if not yes and not click.confirm("Delete all untouched folders and files?"):
            return

        with project.db.transaction():
            files_deleted = project.file_repository.delete_untouched()
            folders_deleted = project.folder_repository.delete_untouched()

    click.echo(f"Deleted {folders_deleted:,} folders and {files_deleted:,} files.")


def _file_path(project: BackupProject, folder_id: int, name: str) -> str:
    folder = project.folder_repository.get(folder_id)
    if folder is None:
        return name
    return str(Path(_folder_path(project, folder)) / name)


def _folder_path(project: BackupProject, folder: Folder) -> str:
    return folder_names_to_path(f.name for f in project.folder_repository.get_full_path(folder))


def _format_timestamp(unix_timestamp: float | None) -> str:
    if not unix_timestamp:
        return "-"
    return datetime.fromtimestamp(unix_timestamp).strftime("%Y-%m-%d %H:%M:%S")


def _format_bytes(size: int | None) -> str:
    if size is None:
        return "0 B"
    size_f = float(size)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_f < 1024:
            return f"{size_f:.1f} {unit}"
        size_f /= 1024
    return f"{size_f:.1f} PB"


def main() -> None:
    """Entry point for the CLI."""
    cli(standalone_mode=True)  # pylint: disable=no-value-for-parameter


if __name__ == "__main__":
    main()
