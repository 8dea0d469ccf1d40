"""
MinIO Ops Tools

Bucket summaries from Prometheus metrics, cluster diagnostics formatting and
an S3 workload generator for MinIO operators.
"""

from .models import BucketSummary, ClusterAggregate, ReportConfig
from .metrics_parser import MetricParser, normalize_range
from .report import Reporter

__version__ = "1.0.0"
__all__ = ['BucketSummary', 'ClusterAggregate', 'ReportConfig', 'MetricParser',
           'normalize_range', 'Reporter']
