from __future__ import annotations

import asyncio

import httpx
import tyro
from rich.console import Console
from rich.progress import Progress
from rich.table import Table

from comics import buckets
from comics.client.api import PanelClientError, PanelsClient
from comics.client.audit import AUDIT_CONCURRENCY, PanelAudit


def print_panels(audit: PanelAudit, console: Console) -> None:
    table = Table(title=f"{audit.video} / {audit.style}")
    table.add_column("Time", style="cyan", justify="right")
    table.add_column("Key", style="dim")
    table.add_column("URL")
    for key in audit.keys:
        table.add_row(buckets.to_display(key), key, audit.panels[key])
    console.print(table)
    console.print(f"[bold]{len(audit.panels)}[/bold] panel(s)")


async def run_audit(
    base_url: str,
    video: str,
    style: str,
    max_seconds: float,
    concurrency: int,
    delete: tuple[str, ...],
    console: Console,
) -> int:
    failures = 0
    async with PanelsClient(base_url) as client:
        audit = PanelAudit(client, video, style, max_seconds=max_seconds)
        total = len(buckets.keys_in_range(max_seconds))

        with Progress(console=console, transient=True) as progress:
            task = progress.add_task("Scanning", total=total)
            result = await audit.load(
                concurrency=concurrency,
                on_progress=lambda r, key: progress.update(task, completed=r.scanned, description=f"Scanning {key}"),
            )
        if result.failed:
            console.print(f"[yellow]{result.failed} probe(s) failed[/yellow]")

        for raw in delete:
            key = buckets.parse(raw)
            if key is None:
                console.print(f"[red]Not a bucket key: {raw}[/red]")
                failures += 1
                continue
            try:
                await audit.delete(key)
                console.print(f"[green]Deleted {key}[/green]")
            except (PanelClientError, httpx.HTTPError) as e:
                console.print(f"[red]Delete {key} failed: {e}[/red]")
                failures += 1

        print_panels(audit, console)
    return failures


def main(
    video: str,
    style: str,
    base_url: str = "http://127.0.0.1:8080",
    max_seconds: float = 3600,
    concurrency: int = AUDIT_CONCURRENCY,
    delete: tuple[str, ...] = (),
) -> None:
    """List every generated panel for one video and style, optionally deleting some.

    Examples::

        python scripts/panel_audit.py --video trailer --style tintin
        python scripts/panel_audit.py --video trailer --style noir --delete 01:15 02-30

    Args:
        video: Video identifier
        style: Style name from the catalog
        base_url: Gateway base URL
        max_seconds: Scan buckets up to this time
        concurrency: Status probes in flight at once
        delete: Bucket keys (mm:ss or mm-ss) to delete after the scan
    """
    console = Console()
    console.print(f"\n[bold]Panel audit[/bold] {base_url} {video}/{style} (0-{max_seconds:.0f}s)\n")
    failures = asyncio.run(run_audit(base_url, video, style, max_seconds, concurrency, delete, console))
    if failures:
        raise SystemExit(1)


if __name__ == "__main__":
    tyro.cli(main)
