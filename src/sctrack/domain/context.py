from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sctrack.domain.errors import ValidationError
from sctrack.domain.validation import format_timestamp, parse_timestamp

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class TransactionContext:
    """Identity and instant of one invocation, supplied by the caller.

    Every replica executing the same invocation receives the same values, so
    anything derived from them (ids, keys, timestamps) is written identically.
    """

    tx_id: str
    timestamp: str

    def __post_init__(self) -> None:
        if not isinstance(self.tx_id, str) or not self.tx_id.strip():
            raise ValidationError("The 'txId' field is required.")
        if any(ch.isspace() for ch in self.tx_id):
            raise ValidationError("The 'txId' value may not contain whitespace.")
        try:
            parse_timestamp(self.timestamp)
        except (TypeError, ValueError):
            raise ValidationError("Invalid transaction timestamp format. Use ISO 8601 format.") from None

    @property
    def instant(self) -> datetime:
        return parse_timestamp(self.timestamp)

    @property
    def utc_timestamp(self) -> str:
        """The instant as ``YYYY-MM-DDTHH:MM:SS.sssZ``; sorts chronologically as text."""
        return format_timestamp(self.instant)

    @property
    def epoch_millis(self) -> int:
        return (self.instant - _EPOCH) // timedelta(milliseconds=1)
