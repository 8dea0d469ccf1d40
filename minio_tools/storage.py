"""
DuckDB storage for bucket summary snapshots.
"""

import json
from datetime import datetime
from typing import List, Optional, Dict, Any

try:
    import duckdb
except ImportError:
    raise ImportError("DuckDB required: pip install duckdb")

from .errors import StorageError
from .models import BucketSummary


class Storage:
    """Saves each ``summary`` run as a snapshot so bucket growth can be reviewed later."""

    def __init__(self, db_path: str, read_only: bool = False):
        self.db_path = db_path
        try:
            self.conn = duckdb.connect(db_path, read_only=read_only)
        except duckdb.Error as e:
            raise StorageError(f"cannot open database {db_path}: {e}") from e
        if not read_only:
            self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        self.conn.execute("""
            CREATE SEQUENCE IF NOT EXISTS snapshot_seq START 1
        """)

        # One row per parsed metrics file
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS summary_snapshots (
                id INTEGER PRIMARY KEY,
                source VARCHAR,
                created_at TIMESTAMP,
                bucket_count INTEGER,
                total_objects BIGINT,
                total_size_bytes BIGINT,
                cluster_fallback BOOLEAN
            )
        """)

        # Reported rows of each snapshot
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS bucket_snapshots (
                snapshot_id INTEGER,
                bucket_name VARCHAR,
                object_count BIGINT,
                size_bytes BIGINT,
                servers JSON,
                version_distribution JSON,
                size_distribution JSON,
                PRIMARY KEY (snapshot_id, bucket_name)
            )
        """)

        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_bucket_name ON bucket_snapshots(bucket_name)")
        self.conn.commit()

    def save_snapshot(self, rows: List[BucketSummary], source: str,
                      cluster_fallback: bool = False,
                      created_at: Optional[datetime] = None) -> int:
        """Store the reported rows; returns the new snapshot id."""
        created_at = created_at or datetime.utcnow()
        total_objects = sum(b.object_count for b in rows)
        total_size = sum(b.size_bytes for b in rows)

        try:
            snapshot_id = self.conn.execute("""
                INSERT INTO summary_snapshots VALUES (
                    nextval('snapshot_seq'), ?, ?, ?, ?, ?, ?
                ) RETURNING id
            """, [source, created_at, len(rows), total_objects, total_size,
                  cluster_fallback]).fetchone()[0]

            for b in rows:
                self.conn.execute("""
                    INSERT OR REPLACE INTO bucket_snapshots VALUES (?, ?, ?, ?, ?, ?, ?)
                """, [
                    snapshot_id, b.name, b.object_count, b.size_bytes,
                    json.dumps(b.servers),
                    json.dumps(b.version_distribution),
                    json.dumps(b.size_distribution)
                ])
            self.conn.commit()
        except duckdb.Error as e:
            raise StorageError(f"failed to save snapshot to {self.db_path}: {e}") from e

        return snapshot_id

    def list_snapshots(self, limit: int = 20) -> List[Dict[str, Any]]:
        """Most recent snapshots first."""
        rows = self._fetch(f"""
            SELECT id, source, created_at, bucket_count, total_objects,
                   total_size_bytes, cluster_fallback
            FROM summary_snapshots
            ORDER BY created_at DESC, id DESC
            LIMIT {int(limit)}
        """)
        return [{'id': r[0], 'source': r[1], 'created_at': r[2], 'bucket_count': r[3],
                 'total_objects': r[4], 'total_size_bytes': r[5],
                 'cluster_fallback': r[6]} for r in rows]

    def get_snapshot(self, snapshot_id: int) -> Optional[Dict[str, Any]]:
        rows = self._fetch("""
            SELECT id, source, created_at, bucket_count, total_objects,
                   total_size_bytes, cluster_fallback
            FROM summary_snapshots
            WHERE id = ?
        """, [snapshot_id])
        if not rows:
            return None
        r = rows[0]
        return {'id': r[0], 'source': r[1], 'created_at': r[2], 'bucket_count': r[3],
                'total_objects': r[4], 'total_size_bytes': r[5], 'cluster_fallback': r[6]}

    def get_snapshot_buckets(self, snapshot_id: int) -> List[BucketSummary]:
        """Rows of one snapshot, largest first."""
        rows = self._fetch("""
            SELECT bucket_name, object_count, size_bytes, servers,
                   version_distribution, size_distribution
            FROM bucket_snapshots
            WHERE snapshot_id = ?
            ORDER BY size_bytes DESC
        """, [snapshot_id])
        return [BucketSummary(
            name=r[0],
            object_count=r[1],
            size_bytes=r[2],
            servers=json.loads(r[3]) if r[3] else [],
            version_distribution=json.loads(r[4]) if r[4] else {},
            size_distribution=json.loads(r[5]) if r[5] else {},
        ) for r in rows]

    def bucket_history(self, bucket_name: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Object and byte counts of one bucket across snapshots, oldest first."""
        rows = self._fetch(f"""
            SELECT s.id, s.created_at, b.object_count, b.size_bytes
            FROM bucket_snapshots b JOIN summary_snapshots s ON b.snapshot_id = s.id
            WHERE b.bucket_name = ?
            ORDER BY s.created_at DESC, s.id DESC
            LIMIT {int(limit)}
        """, [bucket_name])
        history = [{'snapshot_id': r[0], 'created_at': r[1], 'object_count': r[2],
                    'size_bytes': r[3]} for r in rows]
        history.reverse()
        return history

    def _fetch(self, sql: str, params: Optional[list] = None) -> List[tuple]:
        try:
            return self.conn.execute(sql, params or []).fetchall()
        except duckdb.Error as e:
            raise StorageError(f"query failed on {self.db_path}: {e}") from e

    def close(self):
        """Close connection."""
        self.conn.close()
