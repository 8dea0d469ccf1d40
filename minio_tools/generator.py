"""
Randomized S3 workload generator.

Sends a stream of random operations (write, read, overwrite, delete, prefix
delete, multipart write) to a MinIO server so there is live data to audit and
report on. Runs until the configured duration elapses or Ctrl+C.
"""

import io
import json
import os
import random
import re
import signal
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Tuple

from minio import Minio

from .errors import GeneratorError

CONTENT_SIZES = (100, 500, 1024, 2048, 5120)
MULTIPART_CONTENT_SIZE = 70 * 1024 * 1024
MULTIPART_PART_SIZE = 5 * 1024 * 1024
LARGE_CONTENT_PATTERN = b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

# Random key paths look like data/2024/q1/prod/
PREFIX_PARTS = (
    ("data", "logs", "backup", "temp", "cache", "media"),
    ("2025", "2024", "2023", "batch-001", "batch-002", "user-001", "user-002",
     "session-a", "session-b"),
    ("09", "10", "11", "q1", "q2", "q3", "daily", "weekly", "monthly"),
    ("30", "01", "15", "prod", "test", "dev", "staging"),
)
MIN_PREFIX_DEPTH = 2

# Objects are grouped on this many leading path segments for prefix deletes
PREFIX_GROUP_DEPTH = 2

_DURATION_RE = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h)')
_DURATION_UNITS = {'ms': 0.001, 's': 1, 'm': 60, 'h': 3600}


def parse_duration(value: str) -> float:
    """Parse ``90``, ``30s``, ``1m30s`` or ``500ms`` into seconds."""
    value = value.strip()
    if re.fullmatch(r'\d+(?:\.\d+)?', value):
        return float(value)
    pos = 0
    seconds = 0.0
    for match in _DURATION_RE.finditer(value):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(value):
        raise ValueError(f"invalid duration: {value!r}")
    return seconds


def format_duration(seconds: float) -> str:
    if seconds == int(seconds):
        return f"{int(seconds)}s"
    return f"{seconds}s"


def parse_buckets(value: str) -> List[str]:
    """Comma-separated bucket names, trimmed, empties dropped."""
    return [b.strip() for b in (value or "").split(",") if b.strip()]


@dataclass
class GeneratorConfig:
    """Settings for one ``generate`` run."""
    endpoint: str = "localhost:9000"
    access_key: str = ""
    secret_key: str = ""
    buckets: str = "test-bucket"
    use_ssl: bool = False
    mc_alias: str = ""
    duration: float = 0.0  # seconds, 0 = until interrupted
    delay: float = 1.0
    object_prefix: str = "test-object"
    stats_interval: float = 10.0
    multipart_size: int = MULTIPART_CONTENT_SIZE

    @property
    def bucket_list(self) -> List[str]:
        return parse_buckets(self.buckets)


def read_mc_alias(alias: str, config_path: str = None) -> Dict[str, str]:
    """Look up an alias in the ``mc`` client config (``~/.mc/config.json``)."""
    config_path = config_path or os.path.join(os.path.expanduser("~"), ".mc", "config.json")
    if not os.path.exists(config_path):
        raise GeneratorError(
            f"MC config file not found at {config_path}. "
            f"Run 'mc alias set {alias} <url> <access-key> <secret-key>' first")

    try:
        with open(config_path, 'r') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise GeneratorError(f"failed to read MC config {config_path}: {e}") from e

    aliases = data.get('aliases') or {}
    entry = aliases.get(alias)
    if entry is None:
        raise GeneratorError(f"alias '{alias}' not found in MC config. "
                             f"Available aliases: {sorted(aliases)}")
    if not (entry.get('url') and entry.get('accessKey') and entry.get('secretKey')):
        raise GeneratorError(f"alias '{alias}' has incomplete configuration "
                             f"(missing URL, access key, or secret key)")
    return entry


def resolve_connection(config: GeneratorConfig,
                       mc_config_path: str = None) -> Tuple[str, str, str, bool]:
    """Endpoint, access key, secret key and TLS flag, from an alias or the flags."""
    endpoint, access_key, secret_key = config.endpoint, config.access_key, config.secret_key
    secure = config.use_ssl

    if config.mc_alias:
        entry = read_mc_alias(config.mc_alias, mc_config_path)
        url = entry['url']
        secure = url.startswith("https://")
        endpoint = re.sub(r'^https?://', '', url)
        access_key = entry['accessKey']
        secret_key = entry['secretKey']

    if not (access_key and secret_key):
        raise GeneratorError("either provide access-key and secret-key, or use alias")
    return endpoint, access_key, secret_key, secure


def create_client(config: GeneratorConfig) -> Minio:
    endpoint, access_key, secret_key, secure = resolve_connection(config)
    try:
        return Minio(endpoint, access_key=access_key, secret_key=secret_key, secure=secure)
    except ValueError as e:
        raise GeneratorError(f"failed to create MinIO client: {e}") from e


class GeneratorState:
    """Operation counters shared with the stats ticker thread."""

    COUNTERS = ('read', 'write', 'overwrite', 'delete', 'prefix_delete', 'multipart', 'errors')

    def __init__(self):
        self.stop_event = threading.Event()
        self.stats = {name: 0 for name in self.COUNTERS}
        self._lock = threading.Lock()

    def stop(self):
        self.stop_event.set()

    def is_running(self) -> bool:
        return not self.stop_event.is_set()

    def increment(self, name: str, count: int = 1):
        with self._lock:
            self.stats[name] += count

    def get_stats(self) -> dict:
        with self._lock:
            return self.stats.copy()


class S3DataGenerator:
    """
    Random operation loop against one or more buckets.

    Only objects whose key contains ``object_prefix`` are read, overwritten
    or deleted, so other data in the buckets is left alone.
    """

    def __init__(self, config: GeneratorConfig, client: Minio = None,
                 output_callback: Callable[[str], None] = None,
                 rng: random.Random = None):
        self.config = config
        self.client = client or create_client(config)
        self.output = output_callback or print
        self.rng = rng or random.SystemRandom()
        self.state = GeneratorState()
        self.operations = [
            self.write_object,
            self.read_object,
            self.overwrite_object,
            self.delete_object,
            self.delete_prefix,
            self.multipart_write,
        ]

    def _signal_handler(self, signum, frame):
        self.output("\nShutdown signal received, stopping...")
        self.state.stop()

    def random_bucket(self) -> str:
        buckets = self.config.bucket_list
        if not buckets:
            raise GeneratorError("no buckets configured")
        return self.rng.choice(buckets)

    def ensure_buckets(self):
        """Create any configured bucket that does not exist yet."""
        buckets = self.config.bucket_list
        if not buckets:
            raise GeneratorError("no buckets configured")

        for bucket in buckets:
            try:
                if not self.client.bucket_exists(bucket):
                    self.client.make_bucket(bucket)
                    self.output(f"Created bucket: {bucket}")
            except Exception as e:
                raise GeneratorError(f"failed to prepare bucket '{bucket}': {e}") from e

    def random_prefix(self) -> str:
        parts = [self.rng.choice(group) for group in PREFIX_PARTS]
        depth = self.rng.randint(MIN_PREFIX_DEPTH, len(parts))
        return "/".join(parts[:depth]) + "/"

    def object_name(self, suffix: str = "") -> str:
        now = datetime.now()
        timestamp = f"{now:%Y-%m-%dT%H-%M-%S}-{now.microsecond // 1000:03d}"
        return (f"{self.random_prefix()}{self.config.object_prefix}-{timestamp}-"
                f"{self.rng.randrange(10000)}{suffix}")

    def random_content(self) -> bytes:
        size = self.rng.choice(CONTENT_SIZES)
        return "".join(self.rng.choice("abcdefghijklmnopqrstuvwxyz")
                       for _ in range(size)).encode()

    def large_content(self) -> bytes:
        size = self.config.multipart_size
        repeats = size // len(LARGE_CONTENT_PATTERN) + 1
        return (LARGE_CONTENT_PATTERN * repeats)[:size]

    def list_objects(self) -> List[Tuple[str, str]]:
        """(bucket, key) of every generated object in every configured bucket."""
        objects = []
        for bucket in self.config.bucket_list:
            for obj in self.client.list_objects(bucket, recursive=True):
                if self.config.object_prefix in obj.object_name:
                    objects.append((bucket, obj.object_name))
        return objects

    def _put(self, bucket: str, key: str, content: bytes, part_size: int = 0):
        self.client.put_object(bucket, key, io.BytesIO(content), length=len(content),
                               part_size=part_size)

    def write_object(self):
        bucket = self.random_bucket()
        key = self.object_name()
        content = self.random_content()
        self._put(bucket, key, content)
        self.state.increment('write')
        self.output(f"[SUCCESS] WRITE: {bucket}/{key} ({len(content)} bytes)")

    def read_object(self):
        objects = self.list_objects()
        if not objects:
            return self.write_object()

        bucket, key = self.rng.choice(objects)
        response = self.client.get_object(bucket, key)
        try:
            content = response.read()
        finally:
            response.close()
            response.release_conn()

        self.state.increment('read')
        self.output(f"[SUCCESS] READ: {bucket}/{key} ({len(content)} bytes)")

    def overwrite_object(self):
        objects = self.list_objects()
        if not objects:
            return self.write_object()

        bucket, key = self.rng.choice(objects)
        content = self.random_content()
        self._put(bucket, key, content)
        self.state.increment('overwrite')
        self.output(f"[SUCCESS] OVERWRITE: {bucket}/{key} ({len(content)} bytes)")

    def delete_object(self):
        objects = self.list_objects()
        if not objects:
            self.write_object()
            objects = self.list_objects()
            if not objects:
                return

        bucket, key = self.rng.choice(objects)
        self.client.remove_object(bucket, key)
        self.state.increment('delete')
        self.output(f"[SUCCESS] DELETE: {bucket}/{key}")

    def delete_prefix(self):
        """Delete every object under the most populated ``bucket:a/b/`` prefix."""
        objects = self.list_objects()
        if not objects:
            return self.write_object()

        groups = group_by_prefix(objects)
        if not groups:
            raise GeneratorError("no valid prefixes found for deletion")

        selected = largest_group(groups)
        deleted = 0
        for bucket, key in groups[selected]:
            try:
                self.client.remove_object(bucket, key)
            except Exception as e:
                self.output(f"[ERROR] Failed to delete {bucket}/{key}: {e}")
                continue
            deleted += 1

        self.state.increment('prefix_delete')
        self.output(f"[SUCCESS] PREFIX DELETE: {selected} ({deleted} objects deleted)")

    def multipart_write(self):
        bucket = self.random_bucket()
        key = self.object_name(suffix="-m")
        content = self.large_content()
        self._put(bucket, key, content, part_size=MULTIPART_PART_SIZE)
        self.state.increment('multipart')
        self.output(f"[SUCCESS] MULTIPART WRITE: {bucket}/{key} "
                    f"({len(content) // (1024 * 1024)} MB, multipart forced)")

    def run_operation(self):
        """Run one randomly chosen operation; failures are counted, not raised."""
        operation = self.rng.choice(self.operations)
        try:
            operation()
        except Exception as e:
            self.state.increment('errors')
            self.output(f"[ERROR] Operation failed: {e}")

    def stats_line(self) -> str:
        s = self.state.get_stats()
        return (f"\n[STATS] Read={s['read']}, Write={s['write']}, Overwrite={s['overwrite']}, "
                f"Delete={s['delete']}, PrefixDel={s['prefix_delete']}, "
                f"Multipart={s['multipart']}, Errors={s['errors']}")

    def _stats_loop(self):
        while not self.state.stop_event.wait(self.config.stats_interval):
            self.output(self.stats_line())

    def final_stats(self) -> List[str]:
        s = self.state.get_stats()
        total = sum(v for k, v in s.items() if k != 'errors')
        return [
            f"Read Operations:         {s['read']}",
            f"Write Operations:        {s['write']}",
            f"Overwrite Operations:    {s['overwrite']}",
            f"Delete Operations:       {s['delete']}",
            f"Prefix Delete Operations:{s['prefix_delete']}",
            f"Multipart Operations:    {s['multipart']}",
            f"Error Operations:        {s['errors']}",
            f"Total Operations:        {total}",
        ]

    def run(self, max_operations: int = 0) -> dict:
        """
        Run the operation loop and print final statistics.

        Stops when the configured duration elapses, after ``max_operations``
        operations (0 = no limit), or on SIGINT/SIGTERM. Returns the counters.
        """
        self.ensure_buckets()

        self.output("Starting S3 data generator...")
        self.output(f"Endpoint: {self.config.endpoint}")
        self.output(f"Buckets: {self.config.buckets}")
        self.output(f"Duration: {format_duration(self.config.duration)} (0 = infinite)")
        self.output(f"Operation Delay: {format_duration(self.config.delay)}")
        self.output("Press Ctrl+C to stop")
        self.output("=" * 51)

        previous_handlers = {}
        if threading.current_thread() is threading.main_thread():
            for signum in (signal.SIGINT, signal.SIGTERM):
                previous_handlers[signum] = signal.signal(signum, self._signal_handler)

        deadline = time.monotonic() + self.config.duration if self.config.duration > 0 else None
        ticker = None
        if self.config.stats_interval > 0:
            ticker = threading.Thread(target=self._stats_loop, daemon=True)
            ticker.start()

        done = 0
        try:
            while self.state.is_running():
                wait = self.config.delay
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining < wait:
                        self.state.stop_event.wait(max(remaining, 0))
                        break
                if self.state.stop_event.wait(wait):
                    break

                self.run_operation()
                done += 1
                if max_operations and done >= max_operations:
                    break
        finally:
            self.state.stop()
            if ticker is not None:
                ticker.join()
            for signum, handler in previous_handlers.items():
                signal.signal(signum, handler)

        self.output("\nFinal Statistics:")
        for line in self.final_stats():
            self.output(line)
        return self.state.get_stats()


def group_by_prefix(objects: List[Tuple[str, str]]) -> Dict[str, List[Tuple[str, str]]]:
    """Objects keyed by ``bucket:seg1/seg2/``; keys with fewer segments are left out."""
    groups: Dict[str, List[Tuple[str, str]]] = {}
    for bucket, key in objects:
        parts = key.split("/")
        if len(parts) >= PREFIX_GROUP_DEPTH:
            prefix = f"{bucket}:{'/'.join(parts[:PREFIX_GROUP_DEPTH])}/"
            groups.setdefault(prefix, []).append((bucket, key))
    return groups


def largest_group(groups: Dict[str, list]) -> str:
    """Prefix with the most objects; ties go to the first prefix in sorted order."""
    selected = None
    for prefix in sorted(groups):
        if selected is None or len(groups[prefix]) > len(groups[selected]):
            selected = prefix
    return selected
