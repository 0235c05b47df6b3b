# juryportal/evaluation/reset_window.py

from datetime import datetime, timedelta, timezone

from juryportal.evaluation.status import EDITING_FLAG, EvaluationStatus, highlight_for

# Time-boxed grace period during which a juror may downgrade finalized rows.
# Expiry is computed on each check; nothing closes the window explicitly.


class ResetUnlockWindow:
    def __init__(self, accounts, records, window_minutes=20):
        self.accounts = accounts
        self.records = records
        self.window = timedelta(minutes=window_minutes)

    def _now(self):
        # extracted for easier monkeypatching in tests
        return datetime.now(timezone.utc)

    def _now_ms(self):
        return int(self._now().timestamp() * 1000)

    def open(self, juror_id):
        """
        Start a window for `juror_id` and reopen all of its rows at once.

        Returns:
            reset (int): number of evaluation rows moved back to in_progress.
        """
        self.accounts.set_reset_unlock(juror_id, self._now_ms())

        status = EvaluationStatus.IN_PROGRESS.value
        reopened = {
            "status": status,
            "editing_flag": EDITING_FLAG,
            "highlight": highlight_for(status),
        }
        handles = [h for h, row in self.records.scan_evaluations() if row.get("juror_id") == juror_id]
        for handle in handles:
            self.records.update_evaluation(handle, reopened)
        return len(handles)

    def is_active(self, juror_id):
        opened_at = self.accounts.get_reset_unlock(juror_id)
        if opened_at is None:
            return False
        elapsed_ms = self._now_ms() - opened_at
        return elapsed_ms <= self.window.total_seconds() * 1000
