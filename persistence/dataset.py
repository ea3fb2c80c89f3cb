"""
Result sinks for finished job records.

Designed with an abstract interface so the crawler can write to a JSONL
file, keep records in memory, or be pointed at something else later.
"""

import json
import threading
from pathlib import Path
from typing import List, Protocol

from models import JobRecord


class Sink(Protocol):
    """
    Abstract interface for record storage.

    append() must be safe to call from several threads.
    """

    def append(self, record: JobRecord) -> None:
        """Durably append one finished record."""
        ...


class JsonlDataset:
    """
    JSONL-based implementation of Sink.

    One JSON object per line, appended and flushed per record.
    """

    def __init__(self, path: str):
        """
        Initialize the dataset.

        Args:
            path: Output JSONL file; parent directories are created
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.count = 0
        self._lock = threading.Lock()

    def append(self, record: JobRecord) -> None:
        line = json.dumps(record.to_dict(), ensure_ascii=False)
        with self._lock:
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(line + '\n')
            self.count += 1


class MemoryDataset:
    """In-memory Sink, used for dry runs and tests."""

    def __init__(self):
        self.records: List[JobRecord] = []
        self._lock = threading.Lock()

    def append(self, record: JobRecord) -> None:
        with self._lock:
            self.records.append(record)

    @property
    def urls(self) -> List[str]:
        return [record.url for record in self.records]
