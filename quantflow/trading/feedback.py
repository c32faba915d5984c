"""Outcome feedback: the append-only history of win/loss confirmations and the two
lookups the analyzer makes against it (similar past losses, recent tilt)."""

import threading
import time
from typing import Iterable, Optional

from quantflow.constants import Direction, FeedbackResult
from quantflow.core.models import FeedbackRecord, SignalContext
from quantflow.errors import ValidationError
from quantflow.trading.journal import FeedbackJournal
from quantflow.trading.performance import OutcomeTally
from quantflow.utils.logger import log


def confluence_overlap(recorded: Iterable[str], current: Iterable[str]) -> float:
    """Share of a recorded setup's labels found in the current one, over the longer list.

    Deliberately not Jaccard (|A ∪ B|): dividing by the larger list lets a small
    past setup fully contained in a bigger current one still score high. Labels are
    counted as lists, so a label repeated in the recorded setup counts each time.
    """
    recorded, current = list(recorded), list(current)
    denom = max(len(recorded), len(current))
    if denom == 0:
        return 0.0
    present = set(current)
    return sum(1 for c in recorded if c in present) / denom


def validate_submission(payload) -> tuple[str, Optional[Direction], FeedbackResult, Optional[SignalContext]]:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid feedback")
    asset = payload.get("asset")
    if not asset or not isinstance(asset, str):
        raise ValidationError("Invalid feedback: missing asset")
    try:
        result = FeedbackResult(payload.get("result"))
    except ValueError:
        raise ValidationError("Invalid feedback: result must be 'win' or 'loss'")
    direction = payload.get("direction")
    if direction is not None:
        try:
            direction = Direction(direction)
        except ValueError:
            raise ValidationError("Invalid feedback: direction must be 'CALL' or 'PUT'")
    context = SignalContext.from_dict(payload.get("context"))
    return asset, direction, result, context


class FeedbackStore:
    """In-memory feedback history. Appends are serialized by a lock and mirrored to
    the journal when one is attached; records are never edited or removed."""

    def __init__(self, records: Optional[Iterable[FeedbackRecord]] = None,
                 journal: Optional[FeedbackJournal] = None):
        self._records: list[FeedbackRecord] = list(records or [])
        self._journal = journal
        self._lock = threading.Lock()

    @classmethod
    def open(cls, path: str) -> "FeedbackStore":
        journal = FeedbackJournal(path)
        return cls(journal.load(), journal)

    def __len__(self):
        return len(self._records)

    @property
    def records(self) -> tuple:
        with self._lock:
            return tuple(self._records)

    # ------------------------------------------------------------------
    def append(self, record: FeedbackRecord) -> int:
        with self._lock:
            self._records.append(record)
            size = len(self._records)
            if self._journal is not None:
                self._journal.save(self._records)
        return size

    def submit(self, payload, now_ms: Optional[int] = None) -> FeedbackRecord:
        """Validate a client submission, stamp it and append it."""
        asset, direction, result, context = validate_submission(payload)
        record = FeedbackRecord(
            asset=asset,
            direction=direction,
            result=result,
            timestamp=int(time.time() * 1000) if now_ms is None else now_ms,
            context=context,
        )
        self.append(record)
        log.info("📝 Feedback received for %s: %s", asset, result.value)
        return record

    # ------------------------------------------------------------------
    def for_asset(self, asset: str) -> list[FeedbackRecord]:
        return [r for r in self.records if r.asset == asset]

    def similar_losses(self, asset: str, direction: Direction, confluences: Iterable[str],
                       threshold: float = 0.7) -> list[FeedbackRecord]:
        """Past losses on the same asset and direction whose setup overlaps this one."""
        confluences = tuple(confluences)
        return [
            r for r in self.for_asset(asset)
            if r.result == FeedbackResult.LOSS
            and r.direction == direction
            and r.context is not None
            and confluence_overlap(r.confluences, confluences) >= threshold
        ]

    def recent(self, asset: str, n: int = 20) -> list[FeedbackRecord]:
        if n <= 0:
            return []
        return self.for_asset(asset)[-n:]

    def tally(self, asset: Optional[str] = None) -> OutcomeTally:
        return OutcomeTally.of(self.for_asset(asset) if asset else self.records)
