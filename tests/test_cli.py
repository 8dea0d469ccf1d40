"""
Tests for the command line interface and rich dashboard.

Run with: python -m pytest tests/ -v
"""

import io
import os
import shutil
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from rich.console import Console

from minio_tools.cli import build_parser, build_report_config, main
from minio_tools.dashboard import SummaryDashboard
from minio_tools.metrics_parser import MetricParser
from minio_tools.models import CLUSTER_AGGREGATE_NAME, ReportConfig
from minio_tools.report import build_rows
from tests.helpers import CLUSTER_METRICS, SAMPLE_METRICS
from tests.test_diagnostics import admin_json


def run_cli(argv):
    """Run main() and return (exit_code, stdout, stderr)."""
    out, err = io.StringIO(), io.StringIO()
    code = 0
    with redirect_stdout(out), redirect_stderr(err):
        try:
            main(argv)
        except SystemExit as e:
            code = e.code
    return code, out.getvalue(), err.getvalue()


class CLITestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def write(self, name, content):
        path = os.path.join(self.tmpdir, name)
        with open(path, 'w') as f:
            f.write(content)
        return path


class TestArguments(CLITestCase):
    """Argument mapping."""

    def parse(self, *argv):
        return build_report_config(build_parser().parse_args(['summary', 'm.txt', *argv]))

    def test_defaults(self):
        config = self.parse()
        self.assertEqual(config, ReportConfig(source='m.txt'))

    def test_positional_top_n(self):
        self.assertEqual(self.parse('10').top_n, 10)

    def test_top_flag_wins(self):
        self.assertEqual(self.parse('10', '--top', '3').top_n, 3)

    def test_both(self):
        config = self.parse('--both')
        self.assertTrue(config.show_versions)
        self.assertTrue(config.show_sizes)

    def test_negative_top(self):
        path = self.write('m.txt', SAMPLE_METRICS)
        code, out, err = run_cli(['summary', path, '--top', '-1'])
        self.assertEqual(code, 2)
        self.assertIn("ERROR:", err)
        self.assertNotIn("Bucket Summary Table", out)

    def test_no_command_prints_help(self):
        code, out, _ = run_cli([])
        self.assertEqual(code, 0)
        self.assertIn("usage:", out)


class TestSummaryCommand(CLITestCase):
    """End-to-end ``summary`` runs."""

    def test_plain_report(self):
        path = self.write('m.txt', SAMPLE_METRICS)
        code, out, err = run_cli(['summary', path, '--both'])

        self.assertEqual(code, 0)
        self.assertIn(f"Parsing MinIO metrics from: {path}", out)
        self.assertIn("Bucket Summary Table:", out)
        self.assertIn("TOTAL (2 buckets)", out)
        self.assertIn("Top 2 Buckets by Size:", out)
        self.assertIn("Version Details: Single: 140, 2-10v: 10", out)
        self.assertEqual(err, "")

    def test_missing_file(self):
        code, out, err = run_cli(['summary', os.path.join(self.tmpdir, 'nope.txt')])
        self.assertEqual(code, 1)
        self.assertIn("ERROR: error reading metrics file", err)
        self.assertNotIn("Bucket Summary Table", out)

    def test_cluster_fallback(self):
        path = self.write('cluster.txt', CLUSTER_METRICS)
        code, out, _ = run_cli(['summary', path])
        self.assertEqual(code, 0)
        self.assertIn("showing cluster-level aggregates instead", out)
        self.assertIn(CLUSTER_AGGREGATE_NAME, out)

    def test_warn_reports_bad_values(self):
        bad = 'minio_bucket_usage_object_total{bucket="photos",server="node1:9000"} garbage\n'
        path = self.write('m.txt', bad + SAMPLE_METRICS)

        _, quiet_out, quiet_err = run_cli(['summary', path])
        self.assertEqual(quiet_err, "")

        code, out, err = run_cli(['summary', path, '--warn'])
        self.assertEqual(code, 0)
        self.assertIn("WARNING: line 1:", err)
        self.assertIn("1 line(s) had unparseable values", err)
        self.assertEqual(out, quiet_out)

    def test_json_export(self):
        path = self.write('m.txt', SAMPLE_METRICS)
        export = os.path.join(self.tmpdir, 'summary.json')
        code, _, err = run_cli(['summary', path, '--json', export])

        self.assertEqual(code, 0)
        self.assertIn(f"Exported to {export}", err)
        self.assertTrue(os.path.exists(export))

    def test_json_export_unwritable(self):
        path = self.write('m.txt', SAMPLE_METRICS)
        export = os.path.join(self.tmpdir, 'missing-dir', 'summary.json')
        code, out, err = run_cli(['summary', path, '--json', export])

        self.assertEqual(code, 1)
        self.assertIn(f"ERROR: cannot write {export}", err)
        self.assertNotIn("Traceback", err)
        self.assertIn("TOTAL (2 buckets)", out)
        self.assertEqual(os.listdir(self.tmpdir), ['m.txt'])

    def test_rich_output(self):
        path = self.write('m.txt', SAMPLE_METRICS)
        code, out, _ = run_cli(['summary', path, '--rich', '--versions'])
        self.assertEqual(code, 0)
        self.assertIn("photos", out)
        self.assertIn("Top 2 Buckets by Size", out)


class TestHistoryCommand(CLITestCase):
    """Snapshots saved by ``summary --db``."""

    def test_save_and_list(self):
        path = self.write('m.txt', SAMPLE_METRICS)
        db = os.path.join(self.tmpdir, 'snapshots.duckdb')

        code, _, err = run_cli(['summary', path, '--db', db])
        self.assertEqual(code, 0)
        self.assertIn(f"Saved snapshot 1 to {db}", err)

        code, out, _ = run_cli(['history', '--db', db])
        self.assertEqual(code, 0)
        self.assertIn("#1", out)
        self.assertIn("2 buckets", out)

        code, out, _ = run_cli(['history', '--db', db, '--bucket', 'photos'])
        self.assertEqual(code, 0)
        self.assertIn("Bucket: photos", out)
        self.assertIn("150 objs", out)

        code, out, _ = run_cli(['history', '--db', db, '-b', 'missing'])
        self.assertIn("Bucket 'missing' not found in database", out)

    def test_show_snapshot(self):
        path = self.write('m.txt', SAMPLE_METRICS)
        db = os.path.join(self.tmpdir, 'snapshots.duckdb')
        run_cli(['summary', path, '--db', db])

        code, out, _ = run_cli(['history', '--db', db, '--snapshot', '1'])
        self.assertEqual(code, 0)
        self.assertIn("Snapshot #1", out)
        self.assertIn(f"of {path}", out)
        self.assertIn("TOTAL (2 buckets)", out)
        lines = out.splitlines()
        self.assertTrue(any(line.startswith("photos") for line in lines))
        self.assertLess(out.index("photos"), out.index("logs"))

        code, out, _ = run_cli(['history', '--db', db, '--snapshot', '7'])
        self.assertEqual(code, 0)
        self.assertIn("Snapshot 7 not found in database", out)

    def test_show_cluster_snapshot(self):
        path = self.write('cluster.txt', CLUSTER_METRICS)
        db = os.path.join(self.tmpdir, 'snapshots.duckdb')
        run_cli(['summary', path, '--db', db])

        _, out, _ = run_cli(['history', '--db', db, '--snapshot', '1'])
        self.assertIn("showing cluster-level aggregates instead", out)
        self.assertIn(CLUSTER_AGGREGATE_NAME, out)

    def test_missing_database(self):
        code, _, err = run_cli(['history', '--db', os.path.join(self.tmpdir, 'none.duckdb')])
        self.assertEqual(code, 1)
        self.assertIn("ERROR: cannot open database", err)


class TestDiagCommand(CLITestCase):
    """``diag`` subcommand."""

    def test_report(self):
        path = self.write('info.json', admin_json())
        code, out, _ = run_cli(['diag', path, 'example.com'])
        self.assertEqual(code, 0)
        self.assertIn("Pool=1, ES=1", out)
        self.assertIn("drive_status: Pool=1 [offline=1, ok=2]", out)

    def test_invalid_json(self):
        path = self.write('info.json', "not json")
        code, _, err = run_cli(['diag', path])
        self.assertEqual(code, 1)
        self.assertIn("ERROR: error decoding", err)


class TestGenerateCommand(CLITestCase):
    """``generate`` argument handling; the workload itself is covered in test_generator."""

    def test_defaults(self):
        args = build_parser().parse_args(['generate'])
        self.assertEqual(args.endpoint, 'localhost:9000')
        self.assertEqual(args.buckets, 'test-bucket')
        self.assertEqual(args.duration, 0.0)
        self.assertEqual(args.delay, 1.0)
        self.assertEqual(args.prefix, 'test-object')
        self.assertEqual(args.operations, 0)
        self.assertFalse(args.ssl)

    def test_durations(self):
        args = build_parser().parse_args(['generate', '-d', '1m30s', '--delay', '500ms'])
        self.assertEqual(args.duration, 90.0)
        self.assertAlmostEqual(args.delay, 0.5)

    def test_invalid_duration(self):
        code, _, err = run_cli(['generate', '--duration', 'soon'])
        self.assertEqual(code, 2)
        self.assertIn("invalid duration", err)

    def test_missing_credentials(self):
        code, out, err = run_cli(['generate', '--buckets', 'b1'])
        self.assertEqual(code, 1)
        self.assertIn("ERROR: either provide access-key and secret-key, or use alias", err)
        self.assertNotIn("Starting S3 data generator", out)

    def test_unknown_alias(self):
        mc_dir = os.path.join(self.tmpdir, '.mc')
        os.mkdir(mc_dir)
        with open(os.path.join(mc_dir, 'config.json'), 'w') as f:
            f.write('{"aliases": {"local": {"url": "http://localhost:9000", '
                    '"accessKey": "a", "secretKey": "s"}}}')

        with mock.patch.dict(os.environ, {'HOME': self.tmpdir}):
            code, _, err = run_cli(['generate', '--alias', 'prod'])
        self.assertEqual(code, 1)
        self.assertIn("alias 'prod' not found in MC config", err)
        self.assertIn("'local'", err)


class TestDashboard(unittest.TestCase):
    """Rich rendering."""

    def render(self, text, **kwargs):
        parser = MetricParser()
        parser.parse_lines(text.splitlines())
        rows, fallback = build_rows(parser)
        console = Console(file=io.StringIO(), width=120, color_system=None)
        SummaryDashboard(ReportConfig(source='x', **kwargs), console=console).show(
            rows, cluster_fallback=fallback)
        return console.file.getvalue()

    def test_summary_table(self):
        out = self.render(SAMPLE_METRICS, show_versions=True, show_sizes=True)
        self.assertIn("Bucket Summary", out)
        self.assertIn("TOTAL (2 buckets)", out)
        self.assertIn("Multi-Version", out)
        self.assertIn("Mostly Small", out)
        self.assertIn("1. photos", out)

    def test_markup_in_names_is_escaped(self):
        out = self.render('minio_bucket_usage_object_total{bucket="[red]b",server="s"} 1\n')
        self.assertIn("[red]b", out)

    def test_cluster_fallback(self):
        out = self.render(CLUSTER_METRICS)
        self.assertIn("showing cluster-level aggregates instead", out)
        self.assertIn(CLUSTER_AGGREGATE_NAME, out)

    def test_no_data(self):
        self.assertIn("No bucket data found", self.render("# empty\n"))


def run_tests():
    """Run all tests."""
    loader = unittest.TestLoader()
    suite = loader.loadTestsFromModule(sys.modules[__name__])
    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)
    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
