from __future__ import annotations

from typing import Iterator, Optional, Protocol


class LedgerAccessor(Protocol):
    """Key/value world state with range scans and selector queries.

    Implementations raise ``StorageError`` when a read or write did not happen.
    """

    def get(self, key: str) -> Optional[bytes]: ...
    def put(self, key: str, value: bytes) -> None: ...
    def range_scan(self, start_key: str, end_key: str) -> Iterator[tuple[str, bytes]]: ...
    def query(self, selector: str) -> Iterator[tuple[str, bytes]]: ...
