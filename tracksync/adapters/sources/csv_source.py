"""
CSV source adapter for shipment spreadsheets
"""
from pathlib import Path
from typing import Iterator, List

import pandas as pd

from tracksync.adapters.base import SourceAdapter
from tracksync.common.models import Record
from tracksync.common.exceptions import ConnectionError, ReadError


class CSVSource(SourceAdapter):
    """
    Source adapter for CSV exports (e-commerce platforms, spreadsheets)

    Every cell is read as text and empty cells stay empty strings, so values
    such as CEPs with leading zeros or order values with decimal commas reach
    the correction stage untouched.
    """

    def __init__(
        self,
        file_path: str,
        delimiter: str = ",",
        encoding: str = "utf-8",
        **kwargs
    ):
        """
        Initialize CSV source

        Args:
            file_path: Path to CSV file
            delimiter: CSV delimiter (default: ',')
            encoding: File encoding (default: 'utf-8')
            **kwargs: Additional pandas read_csv parameters
        """
        config = {
            'file_path': file_path,
            'delimiter': delimiter,
            'encoding': encoding,
            **kwargs
        }
        super().__init__(config)

        self.file_path = Path(file_path)
        self.delimiter = delimiter
        self.encoding = encoding
        self.pandas_kwargs = kwargs

    def connect(self) -> None:
        """Establish connection (validate file exists)"""
        if not self.file_path.exists():
            raise ConnectionError(f"CSV file not found: {self.file_path}")

        if not self.file_path.is_file():
            raise ConnectionError(f"Path is not a file: {self.file_path}")

        self._connected = True
        self.logger.info(f"Connected to CSV file: {self.file_path}")

    def _read_csv(self, **options):
        return pd.read_csv(
            self.file_path,
            delimiter=self.delimiter,
            encoding=self.encoding,
            dtype=str,
            keep_default_na=False,
            **{**self.pandas_kwargs, **options}
        )

    def read(self, batch_size: int = 100) -> Iterator[Record]:
        """
        Read records from CSV file

        Args:
            batch_size: Number of rows to read at once

        Yields:
            Record: One record per CSV row, keyed by header names
        """
        if not self._connected:
            raise ReadError("Not connected. Call connect() first.")

        try:
            row_num = 0
            for chunk in self._read_csv(chunksize=batch_size):
                for row in chunk.to_dict(orient="records"):
                    row_num += 1
                    yield Record.from_dict(
                        row,
                        source_type="csv",
                        source_id=str(self.file_path),
                        record_id=f"row_{row_num}"
                    )

            self.logger.info(f"Read {row_num} records from CSV")

        except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as e:
            raise ReadError(f"Error reading CSV file: {e}")

    def get_columns(self) -> List[str]:
        """Header names of the CSV file"""
        if not self._connected:
            self.connect()

        try:
            return [str(column) for column in self._read_csv(nrows=0).columns]
        except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as e:
            raise ReadError(f"Error reading CSV header: {e}")

    def close(self) -> None:
        """Close and cleanup"""
        self._connected = False
        self.logger.info("CSV source closed")
