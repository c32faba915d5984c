import json
from pathlib import Path

from quantflow.core.models import FeedbackRecord
from quantflow.utils.logger import log

class FeedbackJournal:
    """Flat JSON list of feedback records on disk. Failures are logged, never raised:
    the scanner keeps working on the in-memory history."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> list[FeedbackRecord]:
        if not self.path.exists():
            log.info("No feedback journal at %s, starting fresh.", self.path)
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.error("Error loading feedback from %s: %s", self.path, e)
            return []
        if not isinstance(raw, list):
            log.error("Feedback journal %s is not a list, ignoring it.", self.path)
            return []

        records = []
        for item in raw:
            try:
                records.append(FeedbackRecord.from_dict(item))
            except (KeyError, TypeError, ValueError):
                continue  # skip corrupted entries
        if len(records) != len(raw):
            log.warning("Skipped %d unreadable feedback entries.", len(raw) - len(records))
        log.info("📚 Loaded %d feedback records from %s", len(records), self.path)
        return records

    def save(self, records: list[FeedbackRecord]) -> bool:
        payload = [r.to_dict() for r in records]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            log.error("Error saving feedback to %s: %s", self.path, e)
            return False
        return True
