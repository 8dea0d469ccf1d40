"""
Command line interface for the MinIO ops tools.
"""

import argparse
import sys

from .errors import ToolError
from .formatting import format_bytes
from .models import ReportConfig
from .metrics_parser import MetricParser
from .report import Reporter, build_rows, render_summary_table
from .diagnostics import DiagnosticsFormatter, load_diagnostics


def _stderr(msg: str):
    print(f"WARNING: {msg}", file=sys.stderr)


def build_report_config(args) -> ReportConfig:
    """Map parsed ``summary`` arguments onto a ReportConfig."""
    top_n = 5
    if args.top is not None:
        top_n = args.top
    elif args.top_n is not None:
        top_n = args.top_n

    return ReportConfig(
        source=args.file,
        top_n=top_n,
        show_versions=args.versions or args.both,
        show_sizes=args.sizes or args.both,
        include_cluster=args.cluster,
        warn=args.warn,
        use_rich=args.rich,
        db_path=args.db,
        json_output=args.json,
    )


def run_summary(config: ReportConfig):
    """Parse the metrics file and print, store and export the summary."""
    parser = MetricParser(warning_callback=_stderr if config.warn else None)

    print(f"Parsing MinIO metrics from: {config.source}")
    print("=" * 60)

    parser.parse_file(config.source)

    if config.use_rich:
        from .dashboard import SummaryDashboard
        rows, fallback = build_rows(parser, config.include_cluster)
        SummaryDashboard(config).show(rows, cluster_fallback=fallback)
    else:
        rows = Reporter(config).report(parser)
        fallback = not parser.has_bucket_data() and bool(rows)

    if config.warn and parser.stats['value_errors']:
        _stderr(f"{parser.stats['value_errors']} line(s) had unparseable values")

    if config.db_path and rows:
        from .storage import Storage
        storage = Storage(config.db_path)
        try:
            snapshot_id = storage.save_snapshot(rows, config.source, cluster_fallback=fallback)
            print(f"Saved snapshot {snapshot_id} to {config.db_path}", file=sys.stderr)
        finally:
            storage.close()

    if config.json_output:
        from .export import build_export_data, write_export
        write_export(config.json_output,
                     build_export_data(rows, config.source, cluster_fallback=fallback))
        print(f"Exported to {config.json_output}", file=sys.stderr)


def cmd_summary(args):
    """Bucket summary from a Prometheus metrics export."""
    try:
        config = build_report_config(args)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(2)
    run_summary(config)


def cmd_history(args):
    """Show saved snapshots or one bucket's history."""
    from .storage import Storage
    storage = Storage(args.db, read_only=True)

    try:
        if args.snapshot is not None:
            snapshot = storage.get_snapshot(args.snapshot)
            if snapshot is None:
                print(f"Snapshot {args.snapshot} not found in database")
                return

            ts = snapshot['created_at'].strftime('%Y-%m-%d %H:%M') if snapshot['created_at'] else 'N/A'
            print(f"\nSnapshot #{snapshot['id']} ({ts}) of {snapshot['source']}")
            if snapshot['cluster_fallback']:
                print("No per-bucket data found; showing cluster-level aggregates instead")
            config = ReportConfig(source=snapshot['source'] or '',
                                  show_versions=True, show_sizes=True)
            for line in render_summary_table(storage.get_snapshot_buckets(args.snapshot), config):
                print(line)
        elif args.bucket:
            history = storage.bucket_history(args.bucket, limit=args.limit)
            if not history:
                print(f"Bucket '{args.bucket}' not found in database")
                return

            print(f"\nBucket: {args.bucket}")
            print("-" * 70)
            for h in history:
                ts = h['created_at'].strftime('%Y-%m-%d %H:%M') if h['created_at'] else 'N/A'
                print(f"  #{h['snapshot_id']:<5} {ts}  {format_bytes(h['size_bytes'] or 0):>12}  "
                      f"{h['object_count'] or 0:>12,} objs")
            print("-" * 70)
        else:
            snapshots = storage.list_snapshots(limit=args.limit)
            if not snapshots:
                print("No snapshots saved")
                return

            print(f"\nSnapshots in {args.db}:")
            print("-" * 100)
            for s in snapshots:
                ts = s['created_at'].strftime('%Y-%m-%d %H:%M') if s['created_at'] else 'N/A'
                source = s['source'] or ''
                print(f"  #{s['id']:<5} {ts}  {source[-40:]:<40} {s['bucket_count']:>6} buckets  "
                      f"{s['total_objects']:>12,} objs  {format_bytes(s['total_size_bytes']):>10}")
            print("-" * 100)
    finally:
        storage.close()


def cmd_generate(args):
    """Random S3 workload against a MinIO server."""
    from .generator import GeneratorConfig, S3DataGenerator

    config = GeneratorConfig(
        endpoint=args.endpoint,
        access_key=args.access_key,
        secret_key=args.secret_key,
        buckets=args.buckets,
        use_ssl=args.ssl,
        mc_alias=args.alias,
        duration=args.duration,
        delay=args.delay,
        object_prefix=args.prefix,
    )
    S3DataGenerator(config).run(max_operations=args.operations)


def cmd_diag(args):
    """Format a cluster diagnostics JSON file."""
    info = load_diagnostics(args.file)
    DiagnosticsFormatter(info, domain=args.domain or "").print_report()


def _duration(value: str) -> float:
    from .generator import parse_duration
    try:
        return parse_duration(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='minio-ops',
        description='MinIO operator tools',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Bucket summary from a Prometheus scrape
  %(prog)s summary metrics.txt
  %(prog)s summary metrics.txt --versions
  %(prog)s summary metrics.txt 10 --sizes
  %(prog)s summary metrics.txt --both --top 5

  # Force the cluster-level aggregate row
  %(prog)s summary metrics.txt --cluster

  # Keep a snapshot and review it later
  %(prog)s summary metrics.txt --db summaries.duckdb
  %(prog)s history --db summaries.duckdb --bucket my-bucket

  # Cluster diagnostics
  %(prog)s diag admin-info.json example.com

  # Random S3 workload for two minutes
  %(prog)s generate --alias myminio --buckets b1,b2 --duration 2m --delay 500ms
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command')

    # Summary
    summary_p = subparsers.add_parser('summary', help='Bucket summary from Prometheus metrics')
    summary_p.add_argument('file', help='Prometheus metrics file')
    summary_p.add_argument('top_n', nargs='?', type=int,
                           help='Number of top buckets to detail (default: 5)')
    summary_p.add_argument('--top', type=int,
                           help='Same as the top_n positional')
    summary_p.add_argument('--versions', action='store_true',
                           help='Show version distribution information')
    summary_p.add_argument('--sizes', action='store_true',
                           help='Show size distribution information')
    summary_p.add_argument('--both', action='store_true',
                           help='Show both version and size distribution')
    summary_p.add_argument('--cluster', action='store_true',
                           help='Force include cluster-level aggregates')
    summary_p.add_argument('--warn', action='store_true',
                           help='Report lines whose value could not be parsed')
    summary_p.add_argument('--rich', action='store_true',
                           help='Colored table output')
    summary_p.add_argument('--db',
                           help='Save the summary as a snapshot in this DuckDB file')
    summary_p.add_argument('--json',
                           help='Export the summary as JSON to this file')
    summary_p.set_defaults(func=cmd_summary)

    # History
    history_p = subparsers.add_parser('history', help='Saved summary snapshots')
    history_p.add_argument('--db', required=True, help='Snapshot database path')
    history_p.add_argument('--bucket', '-b', help='Show history of one bucket')
    history_p.add_argument('--snapshot', type=int,
                           help='Show the bucket table of one saved snapshot')
    history_p.add_argument('--limit', type=int, default=20,
                           help='Limit results (default: 20)')
    history_p.set_defaults(func=cmd_history)

    # Diagnostics
    diag_p = subparsers.add_parser('diag', help='Format cluster diagnostics JSON')
    diag_p.add_argument('file', help='Diagnostics JSON file')
    diag_p.add_argument('domain', nargs='?', default='',
                        help='Domain suffix to strip from server endpoints')
    diag_p.set_defaults(func=cmd_diag)

    # Generate
    gen_p = subparsers.add_parser('generate', help='Random S3 workload against MinIO')
    gen_p.add_argument('--endpoint', '-e', default='localhost:9000',
                       help='MinIO server endpoint (default: localhost:9000)')
    gen_p.add_argument('--access-key', '-a', default='', help='MinIO access key')
    gen_p.add_argument('--secret-key', '-s', default='', help='MinIO secret key')
    gen_p.add_argument('--buckets', '-b', default='test-bucket',
                       help='Comma-separated bucket names (default: test-bucket)')
    gen_p.add_argument('--ssl', action='store_true', help='Use SSL connection')
    gen_p.add_argument('--alias', default='',
                       help='Use an mc alias instead of access/secret keys')
    gen_p.add_argument('--duration', '-d', type=_duration, default=0.0,
                       help='How long to run, e.g. 90s or 5m (default: 0 = until Ctrl+C)')
    gen_p.add_argument('--delay', type=_duration, default=1.0,
                       help='Delay between operations (default: 1s)')
    gen_p.add_argument('--prefix', '-p', default='test-object',
                       help='Object name prefix (default: test-object)')
    gen_p.add_argument('--operations', type=int, default=0,
                       help='Stop after this many operations (default: 0 = no limit)')
    gen_p.set_defaults(func=cmd_generate)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    try:
        args.func(args)
    except ToolError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
