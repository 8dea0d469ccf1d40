"""
Shared fixtures for the test suite.
"""

import os
import tempfile

SAMPLE_METRICS = """\
# HELP minio_bucket_usage_object_total Total number of objects
# TYPE minio_bucket_usage_object_total gauge
minio_bucket_usage_object_total{bucket="photos",server="node1:9000"} 100
minio_bucket_usage_object_total{bucket="photos",server="node2:9000"} 50
# HELP minio_bucket_usage_total_bytes Total bucket size in bytes
# TYPE minio_bucket_usage_total_bytes gauge
minio_bucket_usage_total_bytes{bucket="photos",server="node1:9000"} 1073741824
minio_bucket_usage_total_bytes{bucket="photos",server="node2:9000"} 1073741824
minio_bucket_usage_object_total{bucket="logs",server="node1:9000"} 2000
minio_bucket_usage_total_bytes{bucket="logs",server="node1:9000"} 5.0e+06
minio_bucket_objects_version_distribution{bucket="photos",range="SINGLE_VERSION",server="node1:9000"} 140
minio_bucket_objects_version_distribution{bucket="photos",range="BETWEEN_2_AND_10",server="node1:9000"} 10
minio_bucket_objects_size_distribution{bucket="logs",range="LESS_THAN_1024B",server="node1:9000"} 1900
minio_bucket_objects_size_distribution{bucket="logs",range="BETWEEN_1024B_AND_1_MB",server="node1:9000"} 100

minio_node_process_uptime_seconds{server="node1:9000"} 12345
"""

CLUSTER_METRICS = """\
# HELP minio_cluster_usage_object_total Total number of objects in a cluster
# TYPE minio_cluster_usage_object_total gauge
minio_cluster_usage_object_total{server="s1"} 12345
# HELP minio_cluster_usage_total_bytes Total cluster usage in bytes
# TYPE minio_cluster_usage_total_bytes gauge
minio_cluster_usage_total_bytes{server="s1"} 5.67e+08
# HELP minio_cluster_objects_size_distribution Distribution of object sizes across a cluster
# TYPE minio_cluster_objects_size_distribution gauge
minio_cluster_objects_size_distribution{range="BETWEEN_1024B_AND_1_MB",server="s1"} 100
minio_cluster_objects_size_distribution{range="BETWEEN_1024_B_AND_64_KB",server="s1"} 200
minio_cluster_objects_version_distribution{range="SINGLE_VERSION",server="s1"} 300
"""


def write_temp(content: str, suffix: str = '.txt') -> str:
    """Write content to a temp file and return its path (caller removes it)."""
    fd, path = tempfile.mkstemp(suffix=suffix)
    with os.fdopen(fd, 'w') as f:
        f.write(content)
    return path
