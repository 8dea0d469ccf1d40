"""
Formatter for MinIO cluster diagnostics (``mc admin info --json`` or a SUBNET
diagnostics export).

Prints servers and drives grouped by pool and erasure set, followed by
cluster-wide totals.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from .errors import DiagnosticsError
from .formatting import format_ibytes, humanize_duration, natural_sort_key

VERSION_PREFIX = '{"version":"3"}'


@dataclass
class DriveStatus:
    """One drive as reported by a server."""
    pool_index: int
    set_index: int
    drive_index: int
    path: str
    state: str
    used_space: int = 0
    total_space: int = 0
    used_inodes: int = 0
    free_inodes: int = 0
    metrics: Optional[Dict[str, Any]] = None

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> 'DriveStatus':
        return cls(
            pool_index=raw.get('pool_index', 0) or 0,
            set_index=raw.get('set_index', 0) or 0,
            drive_index=raw.get('disk_index', 0) or 0,
            path=raw.get('path', '') or '',
            state=raw.get('state', '') or '',
            used_space=raw.get('usedspace', 0) or 0,
            total_space=raw.get('totalspace', 0) or 0,
            used_inodes=raw.get('used_inodes', 0) or 0,
            free_inodes=raw.get('free_inodes', 0) or 0,
            metrics=raw.get('metrics'),
        )

    def usage_summary(self) -> str:
        """``disk=U%[TOTAL], inode=I% `` or empty when the drive reports no capacity."""
        if not self.total_space or not self.free_inodes:
            return ""
        total_inodes = self.used_inodes + self.free_inodes
        disk_pct = self.used_space / self.total_space * 100.0
        inode_pct = self.used_inodes / total_inodes * 100.0
        return (f"disk={disk_pct:.0f}%[{format_ibytes(self.total_space)}], "
                f"inode={inode_pct:.0f}% ")

    def metrics_summary(self) -> str:
        """Nonzero drive counters as ``[tokens=.., write=..]``."""
        if not self.metrics:
            return ""
        m = self.metrics
        timeouts = m.get('totalErrorsTimeout', 0) or 0
        availability = m.get('totalErrorsAvailability', 0) or 0
        counters = [
            ('tokens', m.get('totalTokens', 0)),
            ('write', m.get('totalWrites', 0)),
            ('del', m.get('totalDeletes', 0)),
            ('waiting', m.get('totalWaiting', 0)),
            ('tout', timeouts),
        ]
        if timeouts != availability:
            counters.append(('err', availability))
        parts = [f"{key}={value}" for key, value in counters if value]
        return f"[{', '.join(parts)}]" if parts else ""


@dataclass
class ClusterInfo:
    """Decoded ``info`` section of a diagnostics payload."""
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def servers(self) -> List[Dict[str, Any]]:
        return self.raw.get('servers') or []

    def count(self, key: str) -> int:
        return (self.raw.get(key) or {}).get('count', 0) or 0


def load_diagnostics(path: str) -> ClusterInfo:
    """Read and decode a diagnostics file; raises DiagnosticsError on failure."""
    try:
        with open(path, 'r') as f:
            data = f.read()
    except OSError as e:
        raise DiagnosticsError(f"error reading file {path}: {e}") from e
    return parse_diagnostics(data, source=path)


def parse_diagnostics(data: str, source: str = "<input>") -> ClusterInfo:
    """Decode a diagnostics document, accepting both supported layouts."""
    data = data.replace(VERSION_PREFIX, "", 1)
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise DiagnosticsError(f"error decoding {source}: {e}") from e
    if not isinstance(payload, dict):
        raise DiagnosticsError(f"error decoding {source}: expected a JSON object")

    info = payload.get('info') or {}
    if not info.get('servers'):
        # SUBNET diagnostics nest the admin info under "minio"
        info = (payload.get('minio') or {}).get('info') or {}
    return ClusterInfo(raw=info)


def trim_domain(endpoint: str, domain: str = "") -> str:
    """Short server name: the first DNS label, or the endpoint minus ``domain``."""
    if not domain:
        return endpoint.split('.', 1)[0]
    if endpoint.endswith(domain):
        endpoint = endpoint[:-len(domain)]
    return endpoint[:-1] if endpoint.endswith('.') else endpoint


def group_drives(info: ClusterInfo, domain: str = "") -> Dict[int, Dict[int, Dict[str, DriveStatus]]]:
    """Drives keyed by pool index, erasure set index and ``server:path``."""
    pools: Dict[int, Dict[int, Dict[str, DriveStatus]]] = {}
    for server in info.servers:
        server_name = trim_domain(server.get('endpoint', ''), domain)
        for raw in server.get('drives') or []:
            drive = DriveStatus.from_json(raw)
            drive_path = drive.path
            if not drive_path:
                drive_path = urlparse(raw.get('endpoint', '')).path
            key = f"{server_name}:{drive_path}"
            pools.setdefault(drive.pool_index, {}).setdefault(drive.set_index, {})[key] = drive
    return pools


class DiagnosticsFormatter:
    """Renders a ClusterInfo as the plain-text pool/erasure-set report."""

    def __init__(self, info: ClusterInfo, domain: str = "",
                 output: Callable[[str], None] = None):
        self.info = info
        self.domain = domain.strip()
        self.output = output or print

    def _server_lines(self, pool_number: int) -> List[str]:
        servers = {}
        for server in self.info.servers:
            servers[trim_domain(server.get('endpoint', ''), self.domain)] = server

        lines = []
        for name in sorted(servers):
            server = servers[name]
            if server.get('poolNumber') != pool_number:
                continue
            state = server.get('state', '')
            lines.append(f"{name}: ({state})")
            if state == 'offline':
                lines.append("")
                continue
            mem = server.get('mem_stats') or {}
            lines.append(f"edition={server.get('edition', '')}, version={server.get('version', '')}, "
                         f"commit_id={server.get('commitID', '')}")
            lines.append(f"mem_stats_[alloc={format_ibytes(mem.get('alloc', 0))}, "
                         f"total={format_ibytes(mem.get('totalAlloc', 0))}], "
                         f"ilm_expiry_in_progress={str(bool(server.get('ilmExpiryInProgress'))).lower()}, "
                         f"uptime={humanize_duration(server.get('uptime', 0))}")
            lines.append("")
        return lines

    def render(self) -> List[str]:
        lines = []
        pools = group_drives(self.info, self.domain)
        drive_states: Dict[int, Dict[str, int]] = {}

        for pool_index in sorted(pools):
            erasure_sets = pools[pool_index]
            lines.append("")
            lines.append(f"Pool={pool_index + 1}, Servers")
            lines.extend(self._server_lines(pool_index + 1))

            for set_index in sorted(erasure_sets):
                drives = erasure_sets[set_index]
                lines.append("")
                lines.append(f"Pool={pool_index + 1}, ES={set_index + 1}")
                for endpoint in sorted(drives, key=natural_sort_key):
                    drive = drives[endpoint]
                    lines.append(f"{endpoint} = {drive.state} "
                                 f"{drive.usage_summary()}{drive.metrics_summary()}".rstrip())
                    counts = drive_states.setdefault(pool_index, {})
                    counts[drive.state] = counts.get(drive.state, 0) + 1

        lines.append("")
        for pool_index in sorted(drive_states):
            states = ", ".join(f"{state}={count}"
                               for state, count in sorted(drive_states[pool_index].items()))
            lines.append(f"drive_status: Pool={pool_index + 1} [{states}]")

        lines.extend(self._overall_lines())
        return lines

    def _overall_lines(self) -> List[str]:
        raw_total = 0
        raw_used = 0
        drives = 0
        for server in self.info.servers:
            for d in server.get('drives') or []:
                raw_total += d.get('totalspace', 0) or 0
                raw_used += d.get('usedspace', 0) or 0
                drives += 1

        backend = self.info.raw.get('backend') or {}
        usage = (self.info.raw.get('usage') or {}).get('size', 0) or 0

        def as_list(values) -> str:
            return "[" + " ".join(str(v) for v in (values or [])) + "]"

        return [
            "",
            f"deploymentID={self.info.raw.get('deploymentID', '')}",
            f"totalSets={as_list(backend.get('totalSets'))}, "
            f"standardSCParity={backend.get('standardSCParity', 0)}, "
            f"rrSCParity={backend.get('rrSCParity', 0)}, "
            f"totalDriversPerSet={as_list(backend.get('totalDrivesPerSet'))}",
            f"buckets={self.info.count('buckets')}, objects={self.info.count('objects')}, "
            f"versions={self.info.count('versions')}, "
            f"deletemarkers={self.info.count('deletemarkers')}, usage={format_ibytes(usage)}",
            f"drive_raw_stats: drives={drives}, total={format_ibytes(raw_total)}, "
            f"used={format_ibytes(raw_used)}, free={format_ibytes(max(raw_total - raw_used, 0))}",
        ]

    def print_report(self):
        for line in self.render():
            self.output(line)
