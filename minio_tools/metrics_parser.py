"""
Parser for MinIO Prometheus metrics exports.

Only the bucket and cluster usage families listed in ``models.METRIC_FAMILIES``
are recognized. Every other line is skipped, and so is a line whose value
token does not parse as a number, so one malformed line never aborts a parse
or adds a bucket.
"""

import math
import re
import string
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from .errors import MetricsSourceError
from .models import (
    METRIC_FAMILIES, BucketSummary, ClusterAggregate, FamilyKind, MetricFamily, Scope
)

_LABEL_RES = {
    key: re.compile(r'(?:^|[{,\s])' + key + r'="([^"]+)"')
    for key in ('bucket', 'server', 'range')
}
_METRIC_NAME_RE = re.compile(r'^([^{\s]+)')
_UNDERSCORE_RUN_RE = re.compile(r'_{2,}')
_INT_RE = re.compile(r'^[+-]?[0-9]+$', re.ASCII)
_FLOAT_RE = re.compile(r'^[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?$', re.ASCII)

_FAMILIES_BY_SCOPE = {
    scope: tuple(f for f in METRIC_FAMILIES if f.scope is scope) for scope in Scope
}
_DISTRIBUTION_KINDS = (FamilyKind.VERSION_DISTRIBUTION, FamilyKind.SIZE_DISTRIBUTION)


@dataclass(frozen=True)
class ClassifiedLine:
    """Family and labels extracted from one metrics line."""
    family: Optional[MetricFamily]
    bucket: str = ""
    server: str = ""
    range_key: str = ""


def extract_label(line: str, key: str) -> str:
    """Return the value of ``key="value"`` in ``line`` or an empty string."""
    pattern = _LABEL_RES.get(key)
    if pattern is None:
        pattern = re.compile(r'(?:^|[{,\s])' + re.escape(key) + r'="([^"]+)"')
    match = pattern.search(line)
    return match.group(1) if match else ""


def normalize_range(value: str) -> str:
    """
    Canonicalize a range label.

    Inserts an underscore wherever a digit is directly followed by a letter
    and collapses repeated underscores, so ``BETWEEN_1024B_AND_1_MB`` and
    ``BETWEEN_1024_B_AND_1_MB`` aggregate under the same key.
    """
    if not value:
        return value
    out = []
    for i, ch in enumerate(value):
        out.append(ch)
        if (ch in string.digits and i + 1 < len(value)
                and value[i + 1] in string.ascii_letters):
            out.append('_')
    return _UNDERSCORE_RUN_RE.sub('_', ''.join(out))


def parse_value(token: str) -> Optional[int]:
    """
    Parse a sample value as an integer, truncating floats toward zero.

    Only plain ASCII decimal and exponent notation is accepted, so ``1_000``,
    non-ASCII digits, ``NaN`` and ``Inf`` all return None.
    """
    if _INT_RE.match(token):
        return int(token)
    if not _FLOAT_RE.match(token):
        return None
    number = float(token)
    if not math.isfinite(number):
        return None
    return int(number)


def extract_value(line: str) -> int:
    """Value of the trailing token on ``line``; zero when it is not numeric."""
    parts = line.split()
    if not parts:
        return 0
    value = parse_value(parts[-1])
    return value if value is not None else 0


def resolve_family(metric_name: str, scope: Scope) -> Optional[MetricFamily]:
    """Look up the recognized family whose name occurs in ``metric_name``."""
    for family in _FAMILIES_BY_SCOPE[scope]:
        if family.name in metric_name:
            return family
    return None


def classify_line(line: str) -> Optional[ClassifiedLine]:
    """
    Classify one stripped metrics line.

    Returns None for comments and blank lines. Bucket-labeled lines are
    matched against bucket families only, unlabeled ones against cluster
    families only; ``family`` is None when nothing matched.
    """
    if not line or line.startswith('#'):
        return None

    name_match = _METRIC_NAME_RE.match(line)
    metric_name = name_match.group(1) if name_match else ""
    bucket = extract_label(line, 'bucket')
    scope = Scope.BUCKET if bucket else Scope.CLUSTER

    return ClassifiedLine(
        family=resolve_family(metric_name, scope),
        bucket=bucket,
        server=extract_label(line, 'server'),
        range_key=normalize_range(extract_label(line, 'range')),
    )


class MetricParser:
    """
    Streams a metrics export and accumulates per-bucket and cluster usage.

    Counters are always added to, never replaced, so a bucket reported by
    several servers ends up with the sum of all their values.
    """

    def __init__(self, warning_callback: Callable[[str], None] = None):
        self.buckets: Dict[str, BucketSummary] = {}
        self.cluster = ClusterAggregate()
        self.warn = warning_callback
        self.stats = {
            'lines_read': 0,
            'lines_skipped': 0,
            'lines_ignored': 0,
            'value_errors': 0,
        }

    def parse_file(self, path: str):
        """Parse a metrics file; raises MetricsSourceError if it cannot be read."""
        try:
            with open(path, 'r', encoding='utf-8', errors='replace') as f:
                self.parse_lines(f)
        except OSError as e:
            raise MetricsSourceError(path, e) from e

    def parse_lines(self, lines: Iterable[str]):
        for line_no, raw in enumerate(lines, start=1):
            self.parse_line(raw, line_no)

    def parse_line(self, raw: str, line_no: int = 0):
        """Classify a single line and fold it into the aggregate."""
        self.stats['lines_read'] += 1
        line = raw.strip()

        classified = classify_line(line)
        if classified is None:
            self.stats['lines_skipped'] += 1
            return

        family = classified.family
        if family is None:
            self.stats['lines_ignored'] += 1
            return

        if family.kind in _DISTRIBUTION_KINDS and not classified.range_key:
            self.stats['lines_ignored'] += 1
            return

        # A line only creates its bucket once it contributes a value
        value = self._line_value(line, line_no)
        if value is None:
            return

        if classified.bucket:
            target = self._get_bucket(classified.bucket)
            if classified.server:
                target.add_server(classified.server)
        else:
            target = self.cluster

        target.add(family.kind, value, classified.range_key)

    def _get_bucket(self, name: str) -> BucketSummary:
        bucket = self.buckets.get(name)
        if bucket is None:
            bucket = BucketSummary(name=name)
            self.buckets[name] = bucket
        return bucket

    def _line_value(self, line: str, line_no: int) -> Optional[int]:
        token = line.split()[-1]
        value = parse_value(token)
        if value is None:
            self.stats['value_errors'] += 1
            if self.warn:
                self.warn(f"line {line_no}: unparseable value {token!r}, line skipped")
        return value

    def has_bucket_data(self) -> bool:
        return bool(self.buckets)

    def get_summary(self) -> List[BucketSummary]:
        """Bucket summaries sorted by size, largest first (ties keep input order)."""
        return sorted(self.buckets.values(), key=lambda b: b.size_bytes, reverse=True)
