"""
Plain-text bucket summary reports.
"""

from typing import Callable, Dict, List, Tuple

from .formatting import format_bytes, truncate
from .metrics_parser import MetricParser
from .models import BucketSummary, ReportConfig

NAME_WIDTH = 40

# Size status thresholds, in percent of all counted objects.
SMALL_THRESHOLD_PCT = 80.0
MEDIUM_THRESHOLD_PCT = 60.0
LARGE_THRESHOLD_PCT = 60.0

UNVERSIONED = "UNVERSIONED"
SINGLE_VERSION = "SINGLE_VERSION"

VERSION_RANGES = [
    (UNVERSIONED, "Unversioned"),
    (SINGLE_VERSION, "Single"),
    ("BETWEEN_2_AND_10", "2-10v"),
    ("BETWEEN_10_AND_100", "10-100v"),
    ("BETWEEN_100_AND_1000", "100-1Kv"),
    ("BETWEEN_1000_AND_10000", "1K-10Kv"),
    ("GREATER_THAN_10000", ">10Kv"),
]

# Keys are in normalized form (see metrics_parser.normalize_range).
SIZE_RANGES = [
    ("LESS_THAN_1024_B", "<1KB"),
    ("BETWEEN_1024_B_AND_64_KB", "1KB-64KB"),
    ("BETWEEN_64_KB_AND_256_KB", "64KB-256KB"),
    ("BETWEEN_256_KB_AND_512_KB", "256KB-512KB"),
    ("BETWEEN_512_KB_AND_1_MB", "512KB-1MB"),
    ("BETWEEN_1024_B_AND_1_MB", "1KB-1MB"),
    ("BETWEEN_1_MB_AND_10_MB", "1-10MB"),
    ("BETWEEN_10_MB_AND_64_MB", "10-64MB"),
    ("BETWEEN_64_MB_AND_128_MB", "64-128MB"),
    ("BETWEEN_128_MB_AND_512_MB", "128-512MB"),
    ("GREATER_THAN_512_MB", ">512MB"),
]

SMALL_SIZE_RANGES = (
    "LESS_THAN_1024_B",
    "BETWEEN_1024_B_AND_64_KB",
    "BETWEEN_64_KB_AND_256_KB",
    "BETWEEN_256_KB_AND_512_KB",
    "BETWEEN_512_KB_AND_1_MB",
    "BETWEEN_1024_B_AND_1_MB",
)
MEDIUM_SIZE_RANGES = (
    "BETWEEN_1_MB_AND_10_MB",
    "BETWEEN_10_MB_AND_64_MB",
)
LARGE_SIZE_RANGES = (
    "BETWEEN_64_MB_AND_128_MB",
    "BETWEEN_128_MB_AND_512_MB",
    "GREATER_THAN_512_MB",
)

NO_DATA = "N/A"
ALL_ZEROS = "All zeros"


def _format_distribution(dist: Dict[str, int], ranges: List[Tuple[str, str]]) -> str:
    if not dist:
        return NO_DATA
    parts = [f"{label}: {dist[key]}" for key, label in ranges if dist.get(key, 0) > 0]
    return ", ".join(parts) if parts else ALL_ZEROS


def format_version_distribution(dist: Dict[str, int]) -> str:
    """One-line breakdown of version counts, e.g. ``Single: 5, 2-10v: 1``."""
    return _format_distribution(dist, VERSION_RANGES)


def format_size_distribution(dist: Dict[str, int]) -> str:
    """One-line breakdown of object sizes, smallest range first."""
    return _format_distribution(dist, SIZE_RANGES)


def get_versioning_status(dist: Dict[str, int]) -> str:
    """Classify a version distribution."""
    if not dist:
        return "Unknown"

    unversioned = dist.get(UNVERSIONED, 0)
    single = dist.get(SINGLE_VERSION, 0)
    multi = sum(count for key, count in sorted(dist.items())
                if key not in (UNVERSIONED, SINGLE_VERSION))

    if unversioned > 0 and single == 0 and multi == 0:
        return "Unversioned"
    elif single > 0 and multi == 0:
        return "Single Version"
    elif multi > 0:
        return "Multi-Version"
    return "Mixed"


def get_size_status(dist: Dict[str, int]) -> str:
    """Classify a size distribution as mostly small, medium or large objects."""
    if not dist:
        return "Unknown"

    small = sum(dist.get(k, 0) for k in SMALL_SIZE_RANGES)
    medium = sum(dist.get(k, 0) for k in MEDIUM_SIZE_RANGES)
    large = sum(dist.get(k, 0) for k in LARGE_SIZE_RANGES)
    total = small + medium + large
    if total == 0:
        return "Empty"

    if small * 100 / total >= SMALL_THRESHOLD_PCT:
        return "Mostly Small"
    elif medium * 100 / total >= MEDIUM_THRESHOLD_PCT:
        return "Mostly Medium"
    elif large * 100 / total >= LARGE_THRESHOLD_PCT:
        return "Mostly Large"
    return "Mixed Sizes"


def build_rows(parser: MetricParser, include_cluster: bool = False) -> Tuple[List[BucketSummary], bool]:
    """
    Rows to report, largest first.

    Returns ``(rows, fallback)`` where ``fallback`` is True when there was no
    per-bucket data and the cluster aggregate stands in as the only row.
    ``include_cluster`` adds the cluster row next to real buckets.
    """
    rows = parser.get_summary()
    cluster = parser.cluster

    if not rows:
        if cluster.has_data():
            return [cluster.as_summary()], True
        return [], False

    if include_cluster and cluster.has_data():
        rows.append(cluster.as_summary())
        rows.sort(key=lambda b: b.size_bytes, reverse=True)

    return rows, False


def table_columns(config: ReportConfig) -> List[str]:
    columns = ["BUCKET NAME", "OBJECT COUNT", "SIZE (BYTES)", "SIZE (HUMAN)"]
    if config.show_versions:
        columns.append("VERSIONING")
    if config.show_sizes:
        columns.append("SIZE DIST")
    return columns


def table_row(bucket: BucketSummary, config: ReportConfig) -> List[str]:
    """Cells of one table row; the name is shortened for display only."""
    cells = [
        truncate(bucket.name, NAME_WIDTH),
        str(bucket.object_count),
        str(bucket.size_bytes),
        bucket.size_human,
    ]
    if config.show_versions:
        cells.append(get_versioning_status(bucket.version_distribution))
    if config.show_sizes:
        cells.append(get_size_status(bucket.size_distribution))
    return cells


def totals(rows: List[BucketSummary]) -> Tuple[int, int]:
    """Sum of objects and bytes over the given rows."""
    return sum(b.object_count for b in rows), sum(b.size_bytes for b in rows)


def align_columns(table: List[List[str]], min_width: int = 8, padding: int = 2) -> List[str]:
    """Left-align cells into columns; the last column is never padded."""
    ncols = max(len(r) for r in table)
    widths = [min_width] * ncols
    for r in table:
        for i, cell in enumerate(r[:-1]):
            widths[i] = max(widths[i], len(cell) + padding)

    lines = []
    for r in table:
        padded = [cell.ljust(widths[i]) for i, cell in enumerate(r[:-1])]
        lines.append(("".join(padded) + r[-1]).rstrip())
    return lines


def render_summary_table(rows: List[BucketSummary], config: ReportConfig) -> List[str]:
    """Full bucket table with a separator and a totals row."""
    columns = table_columns(config)
    separator = ["--------"] * len(columns)

    table = [columns, separator]
    for bucket in rows:
        table.append(table_row(bucket, config))

    total_objects, total_bytes = totals(rows)
    total_row = [f"TOTAL ({len(rows)} buckets)", str(total_objects),
                 str(total_bytes), format_bytes(total_bytes)]
    total_row += [""] * (len(columns) - len(total_row))
    table += [separator, total_row]

    return align_columns(table)


def render_top_buckets(rows: List[BucketSummary], n: int, config: ReportConfig) -> List[str]:
    """Top-N section with per-bucket versioning and size breakdowns."""
    n = min(n, len(rows))
    lines = ["", f"Top {n} Buckets by Size:", "=" * 50]

    for i, bucket in enumerate(rows[:n], start=1):
        lines.append(f"{i}. {bucket.name}")
        lines.append(f"   Objects: {bucket.object_count}")
        lines.append(f"   Size: {bucket.size_human} ({bucket.size_bytes} bytes)")

        if config.show_versions:
            lines.append(f"   Versioning: {get_versioning_status(bucket.version_distribution)}")
            detail = format_version_distribution(bucket.version_distribution)
            if detail not in (NO_DATA, ALL_ZEROS):
                lines.append(f"   Version Details: {detail}")

        if config.show_sizes:
            lines.append(f"   Size Distribution: {get_size_status(bucket.size_distribution)}")
            detail = format_size_distribution(bucket.size_distribution)
            if detail not in (NO_DATA, ALL_ZEROS):
                lines.append(f"   Size Details: {detail}")

        lines.append("")

    return lines


class Reporter:
    """Prints the bucket table and the Top-N section for a parsed export."""

    def __init__(self, config: ReportConfig, output: Callable[[str], None] = None):
        self.config = config
        self.output = output or print

    def report(self, parser: MetricParser) -> List[BucketSummary]:
        """Print both views; returns the rows that were reported."""
        rows, fallback = build_rows(parser, self.config.include_cluster)

        self.output("\nBucket Summary Table:")
        self.output("=" * 60)

        if not rows:
            self.output("No bucket data found")
            return rows

        if fallback:
            self.output("No per-bucket data found; showing cluster-level aggregates instead")

        for line in render_summary_table(rows, self.config):
            self.output(line)
        for line in render_top_buckets(rows, self.config.top_n, self.config):
            self.output(line)

        return rows
