"""
In-memory sync target
"""
from typing import Any, Dict, Iterable, List, Optional

from tracksync.adapters.base import SyncTarget
from tracksync.common.exceptions import ApplyOperationError
from tracksync.sync.reconciler import generate_record_id


class InMemoryStore(SyncTarget):
    """
    Sync target keeping records in a dict keyed by record id

    Useful for tests, previews (dry runs) and as the reference behaviour
    for database-backed targets.
    """

    def __init__(
        self,
        key_fields: Optional[List[str]] = None,
        records: Optional[Iterable[Dict[str, Any]]] = None,
        **kwargs
    ):
        """
        Initialize store

        Args:
            key_fields: Fields identifying a record (default: tracking_code)
            records: Initial records, keyed with generate_record_id
            **kwargs: Additional configuration
        """
        key_fields = list(key_fields or ["tracking_code"])
        super().__init__({'key_fields': key_fields, **kwargs})

        self.key_fields = key_fields
        self._records: Dict[str, Dict[str, Any]] = {}
        for data in records or []:
            self._records[generate_record_id(data, key_fields)] = dict(data)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def get(self, record_id: str) -> Optional[Dict[str, Any]]:
        data = self._records.get(record_id)
        return dict(data) if data is not None else None

    def read_all(self) -> List[Dict[str, Any]]:
        return [dict(data) for data in self._records.values()]

    def insert(self, record_id: str, data: Dict[str, Any]) -> None:
        if record_id in self._records:
            raise ApplyOperationError(f"Record {record_id} already exists")
        self._records[record_id] = dict(data)
        self.logger.debug(f"Inserted {record_id}")

    def update(self, record_id: str, data: Dict[str, Any]) -> None:
        if record_id not in self._records:
            raise ApplyOperationError(f"Record {record_id} does not exist")
        self._records[record_id] = dict(data)
        self.logger.debug(f"Updated {record_id}")

    def delete(self, record_id: str) -> None:
        if record_id not in self._records:
            raise ApplyOperationError(f"Record {record_id} does not exist")
        del self._records[record_id]
        self.logger.debug(f"Deleted {record_id}")
