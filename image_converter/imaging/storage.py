from __future__ import annotations

import threading
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from image_converter.imaging.types import ConversionResult


@dataclass(frozen=True)
class StoredArtifact:
    identifier: str
    result: ConversionResult

    @property
    def filename(self) -> str:
        return self.result.filename


class ArtifactStore:
    """Keeps the most recent conversion results in memory for download and sharing.

    Oldest entries are evicted once ``capacity`` is reached. Nothing is written
    to disk.
    """

    def __init__(self, capacity: int = 32) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._items: "OrderedDict[str, StoredArtifact]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def put(self, result: ConversionResult) -> StoredArtifact:
        artifact = StoredArtifact(identifier=uuid.uuid4().hex, result=result)
        with self._lock:
            self._items[artifact.identifier] = artifact
            while len(self._items) > self._capacity:
                self._items.popitem(last=False)
        return artifact

    def get(self, identifier: str) -> Optional[StoredArtifact]:
        with self._lock:
            return self._items.get(identifier)
