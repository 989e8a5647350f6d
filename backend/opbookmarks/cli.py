"""CLI tool for opbookmarks"""

import os
import shutil
import subprocess
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn

from .config import Settings, get_settings

app = typer.Typer(
    name="opbookmarks",
    help="opbookmarks - 1Password 7 style metadata files for 1Password 8",
)
# Maintenance commands live apart so `opbookmarks [ACCOUNTS]...` stays the export itself
admin = typer.Typer(
    name="opbookmarks-admin",
    help="Inspect the opbookmarks export cache and environment",
)
console = Console()


def _resolve_settings(
    accounts: Optional[list[str]] = None,
    export_path: Optional[Path] = None,
    watch_path: Optional[Path] = None,
) -> Settings:
    """Environment defaults with command line arguments applied"""
    updates = {}
    if accounts:
        updates["accounts"] = list(accounts)
    if export_path is not None:
        updates["export_path"] = export_path.expanduser()
    if watch_path is not None:
        updates["watch_path"] = watch_path.expanduser()
    return get_settings().model_copy(update=updates)


def _print_summary(stats: dict) -> None:
    console.print("\n[bold green]Metadata files created.[/bold green]")
    console.print(f"  Accounts: {stats['accounts']}")
    console.print(f"  Vaults changed: {stats['dirty_vaults']} (unchanged: {stats['skipped_vaults']})")
    console.print(f"  Items written: {stats['items_written']}")

    if stats.get("errors"):
        console.print(f"\n[yellow]Errors ({len(stats['errors'])}):[/yellow]")
        for error in stats["errors"][:5]:
            console.print(f"  - {escape(error)}")


@app.command()
def export(
    accounts: Optional[list[str]] = typer.Argument(
        None,
        help="Account user or account UUIDs to export (see `op account list`); empty for all accounts",
    ),
    export_path: Optional[Path] = typer.Option(
        None, "--export-path", "-e",
        help="Folder for the metadata files; defaults to the 1Password 7 metadata folder",
    ),
    watch_path: Optional[Path] = typer.Option(
        None, "--watch-path", "-w",
        help="1Password 8 data folder to watch; re-exports whenever it commits changes",
    ),
):
    """Export item metadata, then optionally keep it in sync"""
    from .export import ExportManager
    from .monitor import ChangeMonitor, WatchSetupError
    from .observability import setup_logging
    from .store import StoreError, get_store_client

    settings = _resolve_settings(accounts, export_path, watch_path)
    setup_logging(settings.log_level)

    if settings.accounts:
        console.print(f"[bold]Generating metadata for {settings.accounts}[/bold]")
    else:
        console.print("[bold]Generating metadata for all accounts...[/bold]")

    manager = ExportManager(get_store_client(settings), settings)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Exporting...", total=None)

        def callback(current: int, total: int, message: str):
            progress.update(task, description=f"[{current}/{total}] {message}")

        try:
            stats = manager.run_cycle(progress_callback=callback)
        except StoreError as e:
            console.print(f"[red]✗ Failed to load accounts: {escape(str(e))}[/red]")
            raise typer.Exit(code=1)

    _print_summary(stats)

    if settings.watch_path is None:
        return

    def refresh():
        try:
            _print_summary(manager.run_cycle())
        except StoreError as e:
            console.print(f"[red]✗ Failed to load accounts: {escape(str(e))}[/red]")

    monitor = ChangeMonitor(
        settings.watch_path,
        on_change=refresh,
        journal_name=settings.journal_filename,
        debounce_seconds=settings.debounce_seconds,
    )
    console.print(f"\n[bold]Watching 1Password 8 data folder for changes ({settings.watch_path})[/bold]")
    try:
        monitor.run()
    except WatchSetupError as e:
        console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        console.print("\nStopped watching.")


@admin.command()
def stats(
    export_path: Optional[Path] = typer.Option(None, "--export-path", "-e"),
):
    """Show what the last export recorded in the cache"""
    from .export import cache

    settings = _resolve_settings(export_path=export_path)
    record = cache.load(settings.cache_path)

    console.print("\n[bold]Export Cache[/bold]\n")

    table = Table(show_header=True)
    table.add_column("Account", style="cyan")
    table.add_column("Vault")
    table.add_column("Name")
    table.add_column("Content Version", justify="right")
    table.add_column("Items", justify="right")

    for account_id in record.account_ids():
        for vault in record.vaults(account_id):
            table.add_row(
                account_id,
                vault.id,
                vault.name,
                str(vault.content_version),
                str(vault.items),
            )

    console.print(table)
    console.print(f"  Total vaults: {record.vault_count()}")


@admin.command()
def doctor(
    export_path: Optional[Path] = typer.Option(None, "--export-path", "-e"),
    watch_path: Optional[Path] = typer.Option(None, "--watch-path", "-w"),
):
    """Run environment self-checks"""
    settings = _resolve_settings(export_path=export_path, watch_path=watch_path)

    console.print("\n[bold]opbookmarks Doctor[/bold]\n")

    table = Table(show_header=True)
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    all_passed = True

    # 1. 1Password CLI
    op_path = shutil.which(settings.op_binary)
    op_ok = False
    op_message = "Not found"
    if op_path:
        try:
            result = subprocess.run(
                [op_path, "--version"],
                capture_output=True,
                text=True,
                timeout=10,
            )
            op_ok = result.returncode == 0
            op_message = result.stdout.strip() if op_ok else result.stderr.strip()[:40]
        except (OSError, subprocess.TimeoutExpired) as e:
            op_message = f"Error: {str(e)[:30]}"
    table.add_row(
        "1Password CLI",
        "[green]✓[/green]" if op_ok else "[red]✗[/red]",
        op_message,
    )
    if not op_ok:
        all_passed = False

    # 2. Export path
    export_dir = settings.export_path
    existing = export_dir
    while not existing.exists() and existing != existing.parent:
        existing = existing.parent
    export_ok = existing.is_dir() and os.access(existing, os.W_OK)
    table.add_row(
        "Export Path",
        "[green]✓[/green]" if export_ok else "[red]✗[/red]",
        str(export_dir),
    )
    if not export_ok:
        all_passed = False

    # 3. Watch path (optional)
    if settings.watch_path is not None:
        watch_ok = settings.watch_path.is_dir()
        table.add_row(
            "Watch Path",
            "[green]✓[/green]" if watch_ok else "[red]✗[/red]",
            str(settings.watch_path),
        )
        if not watch_ok:
            all_passed = False
    else:
        table.add_row("Watch Path", "[yellow]-[/yellow]", "Not configured")

    console.print(table)

    if all_passed:
        console.print("\n[green]✓ All checks passed![/green]\n")
    else:
        console.print("\n[red]✗ Some checks failed.[/red]\n")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
