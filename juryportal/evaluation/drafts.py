# juryportal/evaluation/drafts.py

import json
from datetime import datetime, timezone

from juryportal.errors import DraftCorrupt, MalformedInput


class DraftManager:
    """One autosaved in-progress payload per juror, last write wins."""

    def __init__(self, records):
        self.records = records

    def _now(self):
        return datetime.now(timezone.utc)

    def save(self, juror_id, payload):
        try:
            serialized = json.dumps(payload, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise MalformedInput(f"Draft is not JSON serialisable: {e}")
        updated_at = self._now()
        self.records.put_draft(juror_id, serialized, updated_at)
        return updated_at

    def load(self, juror_id):
        """Return (payload, updated_at), or None when no draft is stored."""
        row = self.records.get_draft(juror_id)
        if row is None:
            return None
        try:
            payload = json.loads(row["payload"])
        except (TypeError, ValueError):
            raise DraftCorrupt()
        return payload, row.get("updated_at")

    def delete(self, juror_id):
        return self.records.delete_draft(juror_id)
