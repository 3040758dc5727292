"""
Base adapter interfaces for record sources and sync targets
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional

from tracksync.common.models import Record
from tracksync.common.logging import get_logger


class SourceAdapter(ABC):
    """Abstract base class for all record sources (CSV files, marketplace payloads)"""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize adapter with configuration

        Args:
            config: Adapter-specific configuration
        """
        self.config = config
        self._connected = False
        self.logger = get_logger(self.__class__.__name__)

    @abstractmethod
    def connect(self) -> None:
        """
        Establish connection to data source

        Raises:
            ConnectionError: If connection fails
        """
        pass

    @abstractmethod
    def read(self, batch_size: int = 100) -> Iterator[Record]:
        """
        Read records from source

        Args:
            batch_size: Number of records to read in each batch

        Yields:
            Record: Individual records

        Raises:
            ReadError: If reading fails
        """
        pass

    def get_columns(self) -> List[str]:
        """
        Column names offered by the source (for building a field mapping)

        Returns:
            List of column names, empty when unknown
        """
        return []

    @abstractmethod
    def close(self) -> None:
        """Close connection and cleanup resources"""
        pass

    def __enter__(self):
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()


class SyncTarget(ABC):
    """
    Abstract base class for stores receiving reconciliation writes

    Implementations raise ApplyOperationError when a single operation
    cannot be applied (duplicate insert, unknown record on update/delete).
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize target with configuration

        Args:
            config: Target-specific configuration
        """
        self.config = config or {}
        self._connected = False
        self.logger = get_logger(self.__class__.__name__)

    def connect(self) -> None:
        """Establish connection to the store"""
        self._connected = True

    @abstractmethod
    def read_all(self) -> List[Dict[str, Any]]:
        """
        Existing records, used as the target side of reconciliation

        Returns:
            List of record data dicts
        """
        pass

    @abstractmethod
    def insert(self, record_id: str, data: Dict[str, Any]) -> None:
        """
        Insert a new record

        Raises:
            ApplyOperationError: If the record already exists
        """
        pass

    @abstractmethod
    def update(self, record_id: str, data: Dict[str, Any]) -> None:
        """
        Replace an existing record

        Raises:
            ApplyOperationError: If the record does not exist
        """
        pass

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """
        Delete an existing record

        Raises:
            ApplyOperationError: If the record does not exist
        """
        pass

    def close(self) -> None:
        """Close connection and cleanup resources"""
        self._connected = False

    def __enter__(self):
        """Context manager entry"""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()
