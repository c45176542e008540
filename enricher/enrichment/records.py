"""
Records and Record Stores

A record is one row of the grid being enriched: a flat mapping of field
name to scalar value plus the system columns the enricher maintains
(status, last-enriched timestamp, confidence score, notes).

The orchestrator only relies on get/set-by-field-name semantics. Two stores
are provided: an in-memory store and a CSV-backed store built on pandas.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import pandas as pd

from enricher.enrichment.errors import RecordStoreError


logger = logging.getLogger(__name__)


class EnrichmentStatus(str, Enum):
    """Lifecycle status of a record."""
    PENDING = "Pending"
    PROCESSING = "Processing"
    COMPLETE = "Complete"
    PARTIAL = "Partial"
    FAILED = "Failed"

    @classmethod
    def parse(cls, value: Any) -> Optional["EnrichmentStatus"]:
        """Status from a cell value; None for an empty or unknown cell."""
        if value is None:
            return None
        text = str(value).strip()
        for status in cls:
            if status.value.lower() == text.lower():
                return status
        return None


@dataclass
class SystemColumns:
    """Column names of the system fields in the record store."""
    status: str = "Enrichment Status"
    last_enriched: str = "Last Enriched"
    confidence: str = "Confidence"
    notes: str = "Enrichment Notes"

    def names(self) -> List[str]:
        return [self.status, self.last_enriched, self.confidence, self.notes]


@dataclass
class Record:
    """One entity being enriched.

    Attributes:
        entity_id: Row identifier in the store
        fields: Field name to value (system columns excluded)
        status: Enrichment status, None when never enriched
        last_enriched: ISO-8601 UTC timestamp of the last enrichment
        confidence: Percentage of output fields populated
        notes: Human-readable notes about the last enrichment
    """
    entity_id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    status: Optional[EnrichmentStatus] = None
    last_enriched: Optional[str] = None
    confidence: Optional[int] = None
    notes: str = ""

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def set(self, name: str, value: Any) -> None:
        self.fields[name] = value

    def value_of(self, name: str) -> str:
        """Field value as a trimmed string ('' when missing or empty)."""
        value = self.fields.get(name)
        if value is None:
            return ""
        if isinstance(value, float) and value != value:  # NaN from pandas
            return ""
        return str(value).strip()


class RecordStore(ABC):
    """Keyed table of records.

    Subclasses implement row-level reads and field-level writes; the
    system columns are mapped through ``SystemColumns``.
    """

    def __init__(self, columns: Optional[SystemColumns] = None):
        self.columns = columns or SystemColumns()

    @abstractmethod
    def list_ids(self) -> List[str]:
        """Identifiers of every record, in store order."""
        pass

    @abstractmethod
    def read_row(self, entity_id: str) -> Dict[str, Any]:
        """All cells of one row.

        Raises:
            RecordStoreError: If the row does not exist
        """
        pass

    @abstractmethod
    def set_field(self, entity_id: str, name: str, value: Any) -> None:
        """Write one cell."""
        pass

    def save(self) -> None:
        """Persist pending writes (no-op for in-memory stores)."""
        pass

    def get_record(self, entity_id: str) -> Record:
        row = dict(self.read_row(entity_id))
        columns = self.columns
        confidence = _parse_int(row.pop(columns.confidence, None))
        return Record(
            entity_id=entity_id,
            status=EnrichmentStatus.parse(row.pop(columns.status, None)),
            last_enriched=_blank_to_none(row.pop(columns.last_enriched, None)),
            confidence=confidence,
            notes=_blank_to_none(row.pop(columns.notes, None)) or "",
            fields=row,
        )

    def set_status(self, entity_id: str, status: EnrichmentStatus) -> None:
        self.set_field(entity_id, self.columns.status, status.value)

    def write_record(self, record: Record, field_names: Iterable[str] = ()) -> None:
        """Write the given fields plus all system columns of a record."""
        for name in field_names:
            self.set_field(record.entity_id, name, record.get(name))

        columns = self.columns
        self.set_field(
            record.entity_id, columns.status,
            record.status.value if record.status else ""
        )
        self.set_field(record.entity_id, columns.last_enriched, record.last_enriched or "")
        self.set_field(
            record.entity_id, columns.confidence,
            "" if record.confidence is None else record.confidence
        )
        self.set_field(record.entity_id, columns.notes, record.notes or "")


class InMemoryRecordStore(RecordStore):
    """Record store backed by a dict of rows."""

    def __init__(
        self,
        rows: Optional[Dict[str, Dict[str, Any]]] = None,
        columns: Optional[SystemColumns] = None
    ):
        super().__init__(columns)
        self.rows: Dict[str, Dict[str, Any]] = {
            str(key): dict(value) for key, value in (rows or {}).items()
        }

    def list_ids(self) -> List[str]:
        return list(self.rows.keys())

    def read_row(self, entity_id: str) -> Dict[str, Any]:
        try:
            return dict(self.rows[entity_id])
        except KeyError:
            raise RecordStoreError(f"No record with id {entity_id}")

    def set_field(self, entity_id: str, name: str, value: Any) -> None:
        if entity_id not in self.rows:
            raise RecordStoreError(f"No record with id {entity_id}")
        self.rows[entity_id][name] = value


class CsvRecordStore(RecordStore):
    """Record store over a CSV file, loaded and written with pandas.

    Rows are identified by the value of ``id_column`` or, when none is
    given, by their 1-based position in the file.
    """

    def __init__(
        self,
        path: Union[str, Path],
        id_column: Optional[str] = None,
        columns: Optional[SystemColumns] = None
    ):
        super().__init__(columns)
        self.path = Path(path)
        self.id_column = id_column

        try:
            self.df = pd.read_csv(self.path, dtype=str, keep_default_na=False)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise RecordStoreError(f"Cannot read {self.path}: {e}")

        for name in self.columns.names():
            if name not in self.df.columns:
                self.df[name] = ""

        if id_column:
            if id_column not in self.df.columns:
                raise RecordStoreError(f"Id column '{id_column}' not found in {self.path}")
            ids = self.df[id_column].astype(str)
            if ids.duplicated().any():
                duplicates = sorted(set(ids[ids.duplicated()]))
                raise RecordStoreError(
                    f"Duplicate ids in column '{id_column}': {', '.join(duplicates[:5])}"
                )
            self._index = {entity_id: i for i, entity_id in enumerate(ids)}
        else:
            self._index = {str(i + 1): i for i in range(len(self.df))}

        logger.debug(f"Loaded {len(self.df)} rows from {self.path}")

    def list_ids(self) -> List[str]:
        return list(self._index.keys())

    def read_row(self, entity_id: str) -> Dict[str, Any]:
        position = self._position(entity_id)
        return self.df.iloc[position].to_dict()

    def set_field(self, entity_id: str, name: str, value: Any) -> None:
        position = self._position(entity_id)
        if name not in self.df.columns:
            self.df[name] = ""
        self.df.iloc[position, self.df.columns.get_loc(name)] = (
            "" if value is None else str(value)
        )

    def save(self) -> None:
        try:
            self.df.to_csv(self.path, index=False)
        except OSError as e:
            raise RecordStoreError(f"Cannot write {self.path}: {e}")
        logger.debug(f"Saved {len(self.df)} rows to {self.path}")

    def _position(self, entity_id: str) -> int:
        try:
            return self._index[str(entity_id)]
        except KeyError:
            raise RecordStoreError(f"No record with id {entity_id}")


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_int(value: Any) -> Optional[int]:
    text = _blank_to_none(value)
    if text is None:
        return None
    try:
        return int(float(text))
    except ValueError:
        return None
