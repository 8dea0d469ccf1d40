"""
Data models for MinIO bucket summaries.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from .formatting import format_bytes

CLUSTER_AGGREGATE_NAME = "<cluster-aggregate>"


class FamilyKind(Enum):
    """What a recognized metric family measures."""
    OBJECT_TOTAL = "object_total"
    BYTES_TOTAL = "bytes_total"
    VERSION_DISTRIBUTION = "version_distribution"
    SIZE_DISTRIBUTION = "size_distribution"


class Scope(Enum):
    """Whether a metric family is reported per bucket or for the whole cluster."""
    BUCKET = "bucket"
    CLUSTER = "cluster"


@dataclass(frozen=True)
class MetricFamily:
    """One entry of the recognized metric family table."""
    name: str
    kind: FamilyKind
    scope: Scope


# Bucket families come first so a bucket-labeled line resolves to its bucket family.
METRIC_FAMILIES = (
    MetricFamily("minio_bucket_usage_object_total", FamilyKind.OBJECT_TOTAL, Scope.BUCKET),
    MetricFamily("minio_bucket_usage_total_bytes", FamilyKind.BYTES_TOTAL, Scope.BUCKET),
    MetricFamily("minio_bucket_objects_version_distribution", FamilyKind.VERSION_DISTRIBUTION, Scope.BUCKET),
    MetricFamily("minio_bucket_objects_size_distribution", FamilyKind.SIZE_DISTRIBUTION, Scope.BUCKET),
    MetricFamily("minio_cluster_usage_object_total", FamilyKind.OBJECT_TOTAL, Scope.CLUSTER),
    MetricFamily("minio_cluster_usage_total_bytes", FamilyKind.BYTES_TOTAL, Scope.CLUSTER),
    MetricFamily("minio_cluster_objects_version_distribution", FamilyKind.VERSION_DISTRIBUTION, Scope.CLUSTER),
    MetricFamily("minio_cluster_objects_size_distribution", FamilyKind.SIZE_DISTRIBUTION, Scope.CLUSTER),
)


def _accumulate(target, kind: FamilyKind, value: int, range_key: str):
    if kind is FamilyKind.OBJECT_TOTAL:
        target.object_count += value
    elif kind is FamilyKind.BYTES_TOTAL:
        target.size_bytes += value
    elif kind is FamilyKind.VERSION_DISTRIBUTION:
        dist = target.version_distribution
        dist[range_key] = dist.get(range_key, 0) + value
    elif kind is FamilyKind.SIZE_DISTRIBUTION:
        dist = target.size_distribution
        dist[range_key] = dist.get(range_key, 0) + value


@dataclass
class BucketSummary:
    """Accumulated usage for one bucket across every reporting server."""
    name: str
    object_count: int = 0
    size_bytes: int = 0
    servers: List[str] = field(default_factory=list)
    version_distribution: Dict[str, int] = field(default_factory=dict)
    size_distribution: Dict[str, int] = field(default_factory=dict)

    @property
    def size_human(self) -> str:
        return format_bytes(self.size_bytes)

    def add_server(self, server: str):
        """Record a reporting server; repeated names are ignored."""
        if server not in self.servers:
            self.servers.append(server)

    def add(self, kind: FamilyKind, value: int, range_key: str = ""):
        """Accumulate one metric value into the matching counter."""
        _accumulate(self, kind, value, range_key)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (JSON export and snapshot storage)."""
        return {
            'name': self.name,
            'object_count': self.object_count,
            'size_bytes': self.size_bytes,
            'size_human': self.size_human,
            'servers': list(self.servers),
            'version_distribution': dict(self.version_distribution),
            'size_distribution': dict(self.size_distribution),
        }


@dataclass
class ClusterAggregate:
    """Cluster-scope counters, used when the input has no per-bucket metrics."""
    object_count: int = 0
    size_bytes: int = 0
    version_distribution: Dict[str, int] = field(default_factory=dict)
    size_distribution: Dict[str, int] = field(default_factory=dict)

    def add(self, kind: FamilyKind, value: int, range_key: str = ""):
        _accumulate(self, kind, value, range_key)

    def has_data(self) -> bool:
        return bool(self.object_count or self.size_bytes
                    or self.version_distribution or self.size_distribution)

    def as_summary(self) -> BucketSummary:
        """Synthetic summary row labeled with the cluster sentinel name."""
        return BucketSummary(
            name=CLUSTER_AGGREGATE_NAME,
            object_count=self.object_count,
            size_bytes=self.size_bytes,
            version_distribution=dict(self.version_distribution),
            size_distribution=dict(self.size_distribution),
        )


@dataclass(frozen=True)
class ReportConfig:
    """Settings for one ``summary`` run, built once from the command line."""
    source: str
    top_n: int = 5
    show_versions: bool = False
    show_sizes: bool = False
    include_cluster: bool = False
    warn: bool = False
    use_rich: bool = False
    db_path: Optional[str] = None
    json_output: Optional[str] = None

    def __post_init__(self):
        if self.top_n < 0:
            raise ValueError(f"top_n must not be negative: {self.top_n}")
