#!/usr/bin/env python3
"""
MinIO Ops Tools - Main entry point.

Usage:
    python main.py summary metrics.txt
    python main.py summary metrics.txt 10 --both --cluster
    python main.py history --db summaries.duckdb
    python main.py diag admin-info.json
"""

from minio_tools.cli import main

if __name__ == '__main__':
    main()
