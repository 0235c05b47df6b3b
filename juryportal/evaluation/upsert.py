# juryportal/evaluation/upsert.py
"""Merge incoming score rows into the record store.

Each evaluation row is identified by the composite key (juror id, group id).
A batch is filtered to the authenticated juror, collapsed to the last row per
key, and then resolved against the stored row for that key:

1. Stale writes (incoming timestamp sorts before the stored one) are skipped.
2. A stored all_submitted row cannot move back to a lower status unless the
   juror's reset-unlock window is open; otherwise the status is clamped back
   to all_submitted and the row is reported under `clamped`.
3. The editing flag is cleared for all_submitted rows, forced to "editing"
   while the window is open, and carried over otherwise.

Timestamps are ISO 8601 strings and are compared as plain strings.
"""

import logging

from juryportal.evaluation.status import (
    EDITING_FLAG,
    EvaluationStatus,
    highlight_for,
    priority_of,
)

logger = logging.getLogger(__name__)

SCORE_FIELDS = ('written', 'technical', 'oral', 'teamwork', 'total')

WIRE_NAMES = {
    'juror_id': 'jurorId',
    'juror_name': 'jurorName',
    'juror_dept': 'jurorDept',
    'timestamp': 'timestamp',
    'group_id': 'groupId',
    'group_name': 'groupName',
    'written': 'written',
    'technical': 'technical',
    'oral': 'oral',
    'teamwork': 'teamwork',
    'total': 'total',
    'comments': 'comments',
    'status': 'status',
    'editing_flag': 'editingFlag',
}


def composite_key(juror_id, group_id):
    return (str(juror_id or "").strip(), str(group_id or "").strip())


def _number_or_blank(value):
    text = str(value if value is not None else "").strip()
    if text == "":
        return ""
    try:
        number = float(text)
    except ValueError:
        return text
    return int(number) if number.is_integer() else number


def _group_sort_key(group_id):
    text = str(group_id)
    if text.isdigit():
        return (0, int(text), text)
    return (1, 0, text)


def to_wire(fields, include_secret=False):
    """Render a stored row with the camelCase names clients use."""
    out = {wire: fields.get(name, "") for name, wire in WIRE_NAMES.items()}
    for name in SCORE_FIELDS:
        out[name] = _number_or_blank(fields.get(name))
    gid = str(fields.get('group_id') or "")
    out['groupId'] = int(gid) if gid.isdigit() else gid
    out['editingFlag'] = fields.get('editing_flag') or ""
    if include_secret:
        out['jurorSecret'] = fields.get('juror_secret') or ""
    return out


class EvaluationUpsertEngine:
    def __init__(self, records, accounts, reset_window):
        self.records = records
        self.accounts = accounts
        self.reset_window = reset_window

    def _juror_rows(self, juror_id):
        for handle, fields in self.records.scan_evaluations():
            if fields.get('juror_id') == juror_id:
                yield handle, fields

    def submit(self, juror_id, rows):
        """
        Upsert `rows` (normalised row dicts) for the authenticated `juror_id`.

        Returns a dict with updated, added, stale and clamped counts plus the
        group ids whose regression was ignored.
        """
        # Rows claiming another juror are dropped silently
        latest_by_key = {}
        for row in rows:
            if row.get('juror_id') != juror_id:
                continue
            key = composite_key(juror_id, row.get('group_id'))
            if not key[1]:
                continue
            latest_by_key[key] = row

        index = {}
        for handle, fields in self._juror_rows(juror_id):
            index[composite_key(fields.get('juror_id'), fields.get('group_id'))] = (handle, fields)

        window_open = self.reset_window.is_active(juror_id) if latest_by_key else False
        secret = self.accounts.get_secret(juror_id) or ""

        result = {"updated": 0, "added": 0, "stale": 0, "clamped": 0, "clampedGroups": []}

        for key, row in latest_by_key.items():
            existing = index.get(key)
            stored = existing[1] if existing else {}

            stored_ts = str(stored.get('timestamp') or "")
            incoming_ts = str(row.get('timestamp') or "")
            if stored_ts and incoming_ts and incoming_ts < stored_ts:
                result["stale"] += 1
                continue

            status = row.get('status') or EvaluationStatus.ALL_SUBMITTED.value
            final = EvaluationStatus.ALL_SUBMITTED.value
            if stored.get('status') == final and status != final and not window_open:
                status = final
                result["clamped"] += 1
                result["clampedGroups"].append(key[1])
                logger.info("Ignored status regression for juror %s group %s", juror_id, key[1])

            if status == final:
                editing_flag = ""
            elif window_open:
                editing_flag = EDITING_FLAG
            else:
                editing_flag = stored.get('editing_flag') or ""

            fields = {
                'juror_id': juror_id,
                'juror_name': row.get('juror_name', ""),
                'juror_dept': row.get('juror_dept', ""),
                'timestamp': incoming_ts,
                'group_id': key[1],
                'group_name': row.get('group_name', ""),
                'comments': row.get('comments', ""),
                'status': status,
                'editing_flag': editing_flag,
                'juror_secret': secret,
                'highlight': highlight_for(status),
            }
            for name in SCORE_FIELDS:
                fields[name] = row.get(name, "")

            if existing:
                self.records.update_evaluation(existing[0], fields)
                index[key] = (existing[0], fields)
                result["updated"] += 1
            else:
                handle = self.records.append_evaluation(fields)
                index[key] = (handle, fields)
                result["added"] += 1

        return result

    def list_my_scores(self, juror_id):
        """One row per group: highest status wins, ties go to the later timestamp."""
        best_by_group = {}
        for _, fields in self._juror_rows(juror_id):
            group_id = str(fields.get('group_id') or "").strip()
            if not group_id:
                continue
            prev = best_by_group.get(group_id)
            if prev is None:
                best_by_group[group_id] = fields
                continue
            new_pri, prev_pri = priority_of(fields.get('status')), priority_of(prev.get('status'))
            if new_pri > prev_pri:
                best_by_group[group_id] = fields
            elif new_pri == prev_pri and str(fields.get('timestamp') or "") > str(prev.get('timestamp') or ""):
                best_by_group[group_id] = fields

        ordered = sorted(best_by_group, key=_group_sort_key)
        return [to_wire(best_by_group[g]) for g in ordered]

    def count_finalized(self, juror_id):
        final = EvaluationStatus.ALL_SUBMITTED.value
        return sum(1 for _, f in self._juror_rows(juror_id) if str(f.get('status') or "").strip() == final)

    def delete_juror_rows(self, juror_id):
        handles = [h for h, _ in self._juror_rows(juror_id)]
        for handle in handles:
            self.records.delete_evaluation(handle)
        return len(handles)

    def export_all(self):
        return [to_wire(fields, include_secret=True) for _, fields in self.records.scan_evaluations()]
