"""
File Discovery and Change Detection

Lists uploaded exports and fingerprints the listing. The fingerprint is the
data cache's primary invalidation signal: any new, removed or rewritten
object changes it.
"""

import hashlib
import re
import time
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

import structlog

from retail_analytics.storage.base import ObjectStore, StoredObject

logger = structlog.get_logger(__name__)

_COMPACT_RANGE = re.compile(r"(\d{8})-(\d{8})")
_ISO_RANGE = re.compile(r"(\d{4}-\d{2}-\d{2})_(\d{4}-\d{2}-\d{2})")

METADATA_SUFFIX = "_metadata.json"


def compute_fingerprint(files: Iterable[StoredObject]) -> str:
    """
    Order-independent fingerprint of a listing.

    Entries are sorted by key and hashed as ``key:etag`` pairs joined by
    ``|``. MD5 is used for speed; this detects change, it does not protect
    against tampering.
    """
    parts = [f"{f.key}:{f.etag}" for f in sorted(files, key=lambda f: f.key)]
    return hashlib.md5("|".join(parts).encode("utf-8")).hexdigest()


def wall_clock_fingerprint() -> str:
    """A fingerprint that never matches a previous one"""
    return f"time-{time.time_ns()}"


def matches_record_type(key: str, record_type: str, extension: str = ".csv") -> bool:
    """Naming convention: ``<prefix>/<store>/<type>_<dates>_<timestamp>.csv``"""
    return f"/{record_type}_" in key and key.endswith(extension)


def extract_store_from_key(key: str, default: str = "combined") -> str:
    """Second path segment is the store id"""
    parts = key.split("/")
    if len(parts) >= 3 and parts[1]:
        return parts[1]
    return default


def _compact_to_iso(value: str) -> str:
    return f"{value[:4]}-{value[4:6]}-{value[6:8]}"


def extract_date_range_from_key(key: str) -> Optional[Tuple[str, str]]:
    """
    Upload window encoded in the file name.

    Accepts ``YYYYMMDD-YYYYMMDD`` and ``YYYY-MM-DD_YYYY-MM-DD``.
    """
    filename = key.rsplit("/", 1)[-1]

    match = _ISO_RANGE.search(filename)
    if match:
        return match.group(1), match.group(2)

    match = _COMPACT_RANGE.search(filename)
    if match:
        return _compact_to_iso(match.group(1)), _compact_to_iso(match.group(2))

    return None


def build_upload_key(
    prefix: str,
    store_id: str,
    record_type: str,
    start_date: str,
    end_date: str,
    uploaded_at: Optional[datetime] = None,
) -> str:
    """Object key for a new upload, following the discovery naming convention"""
    date_range = f"{start_date}_{end_date}".replace("/", "-")
    timestamp = (uploaded_at or datetime.utcnow()).isoformat(timespec="milliseconds")
    timestamp = timestamp.replace(":", "-").replace(".", "-")
    return f"{prefix.rstrip('/')}/{store_id}/{record_type}_{date_range}_{timestamp}.csv"


def metadata_key_for(key: str) -> str:
    """Sidecar key that carries an upload's metadata"""
    if key.endswith(".csv"):
        return key[: -len(".csv")] + METADATA_SUFFIX
    return key + METADATA_SUFFIX


class FileDiscovery:
    """
    Lists objects under the upload prefix.

    Example:
        discovery = FileDiscovery(store, "raw-uploads/")
        fingerprint = await discovery.current_fingerprint()
    """

    def __init__(self, store: ObjectStore, prefix: str):
        self.store = store
        self.prefix = prefix

    async def list_files(self) -> List[StoredObject]:
        """All objects under the prefix, ordered by key"""
        files = await self.store.list_objects(self.prefix)
        return sorted(files, key=lambda f: f.key)

    async def current_fingerprint(self) -> str:
        """
        Fingerprint of the current listing.

        A failing listing yields a wall-clock fingerprint so caches keep
        trying to refresh instead of serving one entry forever.
        """
        try:
            files = await self.list_files()
        except Exception as e:
            logger.error("Fingerprint listing failed", prefix=self.prefix, error=str(e))
            return wall_clock_fingerprint()
        return compute_fingerprint(files)
