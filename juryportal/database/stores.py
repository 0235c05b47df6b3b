# juryportal/database/stores.py
"""Storage adapters used by the jury core.

The core only talks to two narrow interfaces:

- CredentialStore: get/set/delete of string values by string key. Holds PINs,
  secrets, attempt counters, lock flags, reset-unlock markers and display
  metadata, one property per key.
- RecordStore: evaluation rows addressed by a stable handle plus one draft
  row per juror.

Each interface has an in-memory implementation (used by unit tests and
handy for local runs) and a SQL implementation on top of Flask-SQLAlchemy.
Store errors are never caught here; they propagate to the operation in
progress.
"""

from datetime import datetime
from typing import Dict, Iterator, Optional, Tuple

from juryportal import db
from juryportal.database.models import CredentialProperty, Draft, Evaluation

EVALUATION_FIELDS = (
    'juror_id', 'juror_name', 'juror_dept', 'timestamp', 'group_id', 'group_name',
    'written', 'technical', 'oral', 'teamwork', 'total', 'comments',
    'status', 'editing_flag', 'juror_secret', 'highlight',
)


class CredentialStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class RecordStore:
    def scan_evaluations(self) -> Iterator[Tuple[int, Dict]]:
        """Yield (handle, fields) for every stored evaluation row."""
        raise NotImplementedError

    def update_evaluation(self, handle: int, fields: Dict) -> None:
        raise NotImplementedError

    def append_evaluation(self, fields: Dict) -> int:
        raise NotImplementedError

    def delete_evaluation(self, handle: int) -> None:
        raise NotImplementedError

    def get_draft(self, juror_id: str) -> Optional[Dict]:
        """Return {'payload': str, 'updated_at': datetime} or None."""
        raise NotImplementedError

    def put_draft(self, juror_id: str, payload: str, updated_at: datetime) -> None:
        raise NotImplementedError

    def delete_draft(self, juror_id: str) -> bool:
        raise NotImplementedError


class MemoryCredentialStore(CredentialStore):
    def __init__(self):
        self.properties = {}

    def get(self, key):
        return self.properties.get(key)

    def set(self, key, value):
        self.properties[key] = str(value)

    def delete(self, key):
        self.properties.pop(key, None)


class MemoryRecordStore(RecordStore):
    def __init__(self):
        self.evaluations = {}  # handle -> fields
        self.drafts = {}  # juror_id -> {'payload', 'updated_at'}
        self._next_handle = 1

    def scan_evaluations(self):
        for handle in sorted(self.evaluations):
            yield handle, dict(self.evaluations[handle])

    def update_evaluation(self, handle, fields):
        if handle not in self.evaluations:
            raise KeyError(f"No evaluation row with handle {handle}")
        self.evaluations[handle].update(fields)

    def append_evaluation(self, fields):
        handle = self._next_handle
        self._next_handle += 1
        row = {name: '' for name in EVALUATION_FIELDS}
        row['highlight'] = None
        row.update(fields)
        self.evaluations[handle] = row
        return handle

    def delete_evaluation(self, handle):
        self.evaluations.pop(handle, None)

    def get_draft(self, juror_id):
        draft = self.drafts.get(juror_id)
        return dict(draft) if draft else None

    def put_draft(self, juror_id, payload, updated_at):
        self.drafts[juror_id] = {'payload': payload, 'updated_at': updated_at}

    def delete_draft(self, juror_id):
        return self.drafts.pop(juror_id, None) is not None


class SqlCredentialStore(CredentialStore):
    """Credential properties in the `credential_properties` table.

    Each write commits immediately so a read of the same key in the next
    request sees it.
    """

    def get(self, key):
        prop = db.session.get(CredentialProperty, key)
        return prop.value if prop else None

    def set(self, key, value):
        prop = db.session.get(CredentialProperty, key)
        if prop:
            prop.value = str(value)
        else:
            db.session.add(CredentialProperty(key=key, value=str(value)))
        db.session.commit()

    def delete(self, key):
        prop = db.session.get(CredentialProperty, key)
        if prop:
            db.session.delete(prop)
            db.session.commit()


class SqlRecordStore(RecordStore):
    @staticmethod
    def _to_fields(row: Evaluation) -> Dict:
        return {name: getattr(row, name) for name in EVALUATION_FIELDS}

    def scan_evaluations(self):
        rows = db.session.query(Evaluation).order_by(Evaluation.id).all()
        for row in rows:
            yield row.id, self._to_fields(row)

    def update_evaluation(self, handle, fields):
        row = db.session.get(Evaluation, handle)
        if row is None:
            raise KeyError(f"No evaluation row with handle {handle}")
        for name, value in fields.items():
            if name in EVALUATION_FIELDS:
                setattr(row, name, value)
        db.session.commit()

    def append_evaluation(self, fields):
        row = Evaluation(**{k: v for k, v in fields.items() if k in EVALUATION_FIELDS})
        db.session.add(row)
        db.session.commit()
        return row.id

    def delete_evaluation(self, handle):
        row = db.session.get(Evaluation, handle)
        if row is not None:
            db.session.delete(row)
            db.session.commit()

    def get_draft(self, juror_id):
        draft = db.session.query(Draft).filter_by(juror_id=juror_id).first()
        if draft is None:
            return None
        return {'payload': draft.payload, 'updated_at': draft.updated_at}

    def put_draft(self, juror_id, payload, updated_at):
        draft = db.session.query(Draft).filter_by(juror_id=juror_id).first()
        if draft:
            draft.payload = payload
            draft.updated_at = updated_at
        else:
            db.session.add(Draft(juror_id=juror_id, payload=payload, updated_at=updated_at))
        db.session.commit()

    def delete_draft(self, juror_id):
        draft = db.session.query(Draft).filter_by(juror_id=juror_id).first()
        if draft is None:
            return False
        db.session.delete(draft)
        db.session.commit()
        return True