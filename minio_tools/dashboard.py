"""
Rich terminal rendering of the bucket summary.
"""

from typing import List

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .formatting import format_bytes, truncate
from .models import BucketSummary, ReportConfig
from .report import (
    NAME_WIDTH, ALL_ZEROS, NO_DATA,
    format_size_distribution, format_version_distribution,
    get_size_status, get_versioning_status, totals,
)

STATUS_STYLES = {
    "Unversioned": "dim",
    "Single Version": "green",
    "Multi-Version": "yellow",
    "Mixed": "magenta",
    "Mostly Small": "cyan",
    "Mostly Medium": "blue",
    "Mostly Large": "yellow",
    "Mixed Sizes": "magenta",
}


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status)
    return f"[{style}]{status}[/{style}]" if style else status


class SummaryDashboard:
    """Colored tables for the ``summary --rich`` output."""

    def __init__(self, config: ReportConfig, console: Console = None):
        self.config = config
        self.console = console or Console()

    def summary_table(self, rows: List[BucketSummary]) -> Table:
        table = Table(title="Bucket Summary", show_footer=True)
        total_objects, total_bytes = totals(rows)

        table.add_column("Bucket", style="cyan", max_width=NAME_WIDTH,
                         footer=f"TOTAL ({len(rows)} buckets)")
        table.add_column("Objects", justify="right", style="green",
                         footer=f"{total_objects:,}")
        table.add_column("Size (bytes)", justify="right",
                         footer=f"{total_bytes:,}")
        table.add_column("Size", justify="right", style="yellow",
                         footer=format_bytes(total_bytes))
        if self.config.show_versions:
            table.add_column("Versioning")
        if self.config.show_sizes:
            table.add_column("Size Dist")

        for b in rows:
            cells = [
                escape(truncate(b.name, NAME_WIDTH)),
                f"{b.object_count:,}",
                f"{b.size_bytes:,}",
                b.size_human,
            ]
            if self.config.show_versions:
                cells.append(_styled(get_versioning_status(b.version_distribution)))
            if self.config.show_sizes:
                cells.append(_styled(get_size_status(b.size_distribution)))
            table.add_row(*cells)

        return table

    def top_panels(self, rows: List[BucketSummary]) -> List[Panel]:
        panels = []
        for i, b in enumerate(rows[:self.config.top_n], start=1):
            body = [
                f"[cyan]Objects:[/cyan] {b.object_count:,}",
                f"[cyan]Size:[/cyan] {b.size_human} ({b.size_bytes:,} bytes)",
            ]
            if self.config.show_versions:
                body.append(f"[cyan]Versioning:[/cyan] "
                            f"{_styled(get_versioning_status(b.version_distribution))}")
                detail = format_version_distribution(b.version_distribution)
                if detail not in (NO_DATA, ALL_ZEROS):
                    body.append(f"[dim]{detail}[/dim]")
            if self.config.show_sizes:
                body.append(f"[cyan]Size Distribution:[/cyan] "
                            f"{_styled(get_size_status(b.size_distribution))}")
                detail = format_size_distribution(b.size_distribution)
                if detail not in (NO_DATA, ALL_ZEROS):
                    body.append(f"[dim]{detail}[/dim]")
            panels.append(Panel("\n".join(body), title=f"{i}. {escape(b.name)}",
                                title_align="left", border_style="blue"))
        return panels

    def show(self, rows: List[BucketSummary], cluster_fallback: bool = False):
        if not rows:
            self.console.print("[yellow]No bucket data found[/yellow]")
            return

        if cluster_fallback:
            self.console.print("[yellow]No per-bucket data found; "
                               "showing cluster-level aggregates instead[/yellow]")

        self.console.print()
        self.console.print(self.summary_table(rows))

        n = min(self.config.top_n, len(rows))
        self.console.print()
        self.console.print(f"[bold]Top {n} Buckets by Size[/bold]")
        for panel in self.top_panels(rows):
            self.console.print(panel)
