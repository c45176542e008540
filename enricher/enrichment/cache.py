"""
Result Cache

File-based TTL cache for enrichment results. Entries are keyed by template id
plus a normalized record identity, so two rows describing the same company
(``Acme Inc`` / ``https://www.acme.com/``) share one cached answer.

Each entry is one JSON file:

    {"_cache_key": "...", "_cached_at": "...", "_expires_at": 1700000000.0,
     "result": {"field": "value", ...}}
"""

import hashlib
import json
import logging
import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from enricher.enrichment.errors import CacheError
from enricher.enrichment.records import Record
from enricher.enrichment.templates.models import EntityType


logger = logging.getLogger(__name__)


# Candidate column names per identity part, compared case/separator-insensitively
COMPANY_NAME_FIELDS = ("company name", "company", "name", "organization", "account name")
DOMAIN_FIELDS = ("domain", "website", "company domain", "url", "web")
FULL_NAME_FIELDS = ("full name", "contact name", "name")
FIRST_NAME_FIELDS = ("first name", "firstname", "given name")
LAST_NAME_FIELDS = ("last name", "lastname", "surname", "family name")
CONTACT_COMPANY_FIELDS = ("company", "company name", "organization", "account name")

_SEPARATORS = re.compile(r"[\s_\-]+")


def normalize_domain(value: str) -> str:
    """``https://www.Acme.com/about`` -> ``acme.com``."""
    domain = value.strip().lower()
    domain = re.sub(r"^[a-z][a-z0-9+.\-]*://", "", domain)
    domain = domain.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    domain = domain.split("@")[-1].split(":", 1)[0]
    if domain.startswith("www."):
        domain = domain[4:]
    return domain.rstrip(".")


def _normalize_text(value: str) -> str:
    return " ".join(value.lower().split())


def _lookup(record: Record, candidates: Iterable[str]) -> str:
    """First non-empty value among columns matching one of ``candidates``."""
    by_key = {
        _SEPARATORS.sub(" ", str(name).strip().lower()): name
        for name in record.fields
    }
    for candidate in candidates:
        column = by_key.get(candidate)
        if column is not None:
            value = record.value_of(column)
            if value:
                return value
    return ""


def record_identity(record: Record, entity_type: EntityType, required_fields: Iterable[str] = ()) -> str:
    """Normalized identity of a record for cache lookups.

    Company: lowercase name + normalized domain.
    Contact: lowercase full name (or first + last) + lowercase company;
    a contact without a name has no name-based identity.
    Custom, or when the identity columns above are missing: lowercase
    required-field values.
    """
    parts = []
    if entity_type == EntityType.COMPANY:
        name = _lookup(record, COMPANY_NAME_FIELDS)
        domain = _lookup(record, DOMAIN_FIELDS)
        parts = [_normalize_text(name), normalize_domain(domain)] if (name or domain) else []
    elif entity_type == EntityType.CONTACT:
        full_name = _lookup(record, FULL_NAME_FIELDS)
        if not full_name:
            full_name = " ".join(
                p for p in (_lookup(record, FIRST_NAME_FIELDS), _lookup(record, LAST_NAME_FIELDS)) if p
            )
        company = _lookup(record, CONTACT_COMPANY_FIELDS)
        parts = [_normalize_text(full_name), _normalize_text(company)] if full_name else []

    if not parts:
        parts = [_normalize_text(record.value_of(name)) for name in required_fields]

    return "|".join(parts)


class CacheSystem:
    """TTL cache of enrichment results stored as JSON files.

    Example:
        >>> cache = CacheSystem(cache_dir=".sheet-enricher/cache", ttl_seconds=86400)
        >>> key = cache.generate_key("company_overview", "acme inc|acme.com")
        >>> cache.set(key, {"industry": "Manufacturing"})
        >>> cache.get(key)
        {'industry': 'Manufacturing'}
    """

    def __init__(
        self,
        cache_dir: Union[str, Path] = ".sheet-enricher/cache",
        ttl_seconds: int = 7 * 24 * 3600
    ):
        self.cache_dir = Path(cache_dir)
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def generate_key(template_id: str, identity: str) -> str:
        """Stable cache key for a (template, identity) pair."""
        raw = f"{template_id}|{identity}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def key_for(self, record: Record, template) -> Optional[str]:
        """Cache key for a record under a template; None if it has no identity."""
        identity = record_identity(record, template.entity_type, template.required_fields)
        if not identity.strip("|"):
            return None
        return self.generate_key(template.id, identity)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """Cached values for ``key``, or None on a miss or expired entry.

        Unreadable entries are logged, removed and treated as a miss.
        """
        cache_file = self._path(key)
        if not cache_file.exists():
            return None

        try:
            with open(cache_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load cache file {cache_file}: {e}")
            self._remove(cache_file)
            return None

        if not isinstance(data, dict) or "result" not in data:
            logger.warning(f"Ignoring malformed cache file {cache_file}")
            self._remove(cache_file)
            return None

        if time.time() >= float(data.get("_expires_at", 0)):
            logger.debug(f"Cache entry {key[:12]} expired")
            self._remove(cache_file)
            return None

        return data["result"]

    def set(self, key: str, values: Dict[str, Any], ttl_seconds: Optional[int] = None) -> None:
        """Store values under ``key``.

        Raises:
            CacheError: If the entry cannot be written
        """
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        now = time.time()
        payload = {
            "_cache_key": key,
            "_cached_at": datetime.fromtimestamp(now, timezone.utc).isoformat(),
            "_expires_at": now + ttl,
            "result": values,
        }

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with open(self._path(key), "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
        except (OSError, TypeError) as e:
            raise CacheError(f"Failed to write cache entry {key[:12]}: {e}")

    def clear(self) -> int:
        """Remove every cache entry; returns the number removed."""
        if not self.cache_dir.exists():
            return 0
        removed = 0
        for cache_file in self.cache_dir.glob("*.json"):
            self._remove(cache_file)
            removed += 1
        return removed

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def _remove(self, cache_file: Path) -> None:
        try:
            cache_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove cache file {cache_file}: {e}")
