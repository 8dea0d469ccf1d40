"""
JSON export of a bucket summary.

The document is written to a temp file in the target directory and renamed
into place, so a reader never sees a partial file.
"""

import json
import os
import tempfile
from datetime import datetime
from typing import Dict, Any, List, Optional

from .errors import ExportError
from .models import BucketSummary
from .report import get_size_status, get_versioning_status, totals


def build_export_data(rows: List[BucketSummary], source: str,
                      cluster_fallback: bool = False,
                      exported_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Build the exported document from reported rows."""
    total_objects, total_bytes = totals(rows)
    buckets = []
    for b in rows:
        entry = b.to_dict()
        entry['versioning_status'] = get_versioning_status(b.version_distribution)
        entry['size_status'] = get_size_status(b.size_distribution)
        buckets.append(entry)

    return {
        'source': source,
        'exported_at': (exported_at or datetime.utcnow()).isoformat(),
        'cluster_fallback': cluster_fallback,
        'summary': {
            'bucket_count': len(rows),
            'total_objects': total_objects,
            'total_size_bytes': total_bytes,
        },
        'buckets': buckets,
    }


def write_export(path: str, data: Dict[str, Any]):
    """Write ``data`` as JSON to ``path``; raises ExportError on failure."""
    directory = os.path.dirname(os.path.abspath(path))
    try:
        fd, temp_path = tempfile.mkstemp(prefix='.summary-', suffix='.tmp', dir=directory)
    except OSError as e:
        raise ExportError(f"cannot write {path}: {e}") from e

    try:
        with os.fdopen(fd, 'w') as f:
            json.dump(data, f, indent=2)
        os.replace(temp_path, path)
    except OSError as e:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise ExportError(f"cannot write {path}: {e}") from e
