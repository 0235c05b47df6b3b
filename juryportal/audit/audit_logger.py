# juryportal/audit/audit_logger.py

import os
import json
import hashlib
import base64
import logging
import threading
from enum import Enum
from datetime import datetime, timezone
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

logger = logging.getLogger(__name__)

# Append-only audit trail of what happened to each juror account.
# One JSON line per event: {seq, at, event, juror, detail, prev, hash, sig}.
# `hash` is SHA-256 over the entry without hash/sig, `prev` links to the
# previous entry's hash and `sig` is an Ed25519 signature over entry + hash.


class AuditEvent(Enum):
    PIN_ISSUED = "pin_issued"
    PIN_ISSUE_REFUSED = "pin_issue_refused"
    PIN_VERIFIED = "pin_verified"
    PIN_FAILED = "pin_failed"
    ACCOUNT_LOCKED = "account_locked"
    PIN_RESET = "pin_reset"
    ACCOUNT_CLEARED = "account_cleared"
    DRAFT_SAVED = "draft_saved"
    DRAFT_DELETED = "draft_deleted"
    JUROR_DATA_DELETED = "juror_data_deleted"
    RESET_WINDOW_OPENED = "reset_window_opened"
    SCORES_SUBMITTED = "scores_submitted"
    REGRESSION_IGNORED = "regression_ignored"
    REQUEST_ERROR = "request_error"


def _digest(entry):
    return hashlib.sha256(json.dumps(entry, sort_keys=True).encode()).hexdigest()


class AuditLogger:
    def __init__(self, log_dir='logs', signing_key=None):
        self.log_dir = log_dir
        self.log_file = os.path.join(log_dir, 'audit.log')
        self.previous_hash = None
        self.seq = 0
        # One logger serves every request thread; the chain is only valid
        # if build, append and head update happen as one step.
        self._lock = threading.Lock()

        os.makedirs(log_dir, exist_ok=True)

        self.signing_key = signing_key or Ed25519PrivateKey.generate()
        self._resume_chain()

    def _resume_chain(self):
        if not os.path.exists(self.log_file):
            return
        with open(self.log_file, 'r') as f:
            lines = [line for line in f if line.strip()]
        if not lines:
            return
        try:
            last = json.loads(lines[-1])
        except ValueError:
            logger.warning("Audit log tail is not JSON; starting a new chain head")
            return
        self.previous_hash = last.get('hash')
        self.seq = last.get('seq') or 0

    def log_event(self, event, detail=None, juror_id=None):
        """Append one signed entry. Unknown event names raise ValueError."""
        event = AuditEvent(event)
        with self._lock:
            try:
                entry = {
                    "seq": self.seq + 1,
                    "at": datetime.now(timezone.utc).isoformat(),
                    "event": event.value,
                    "juror": juror_id,
                    "detail": detail or {},
                    "prev": self.previous_hash,
                }
                entry['hash'] = _digest(entry)
                signature = self.signing_key.sign(json.dumps(entry, sort_keys=True).encode())
                entry['sig'] = base64.b64encode(signature).decode()

                with open(self.log_file, 'a') as f:
                    f.write(json.dumps(entry) + "\n")

                self.previous_hash = entry['hash']
                self.seq = entry['seq']
            except Exception as e:
                # An audit failure must not fail the request being audited
                logger.error(f"Audit log error: {str(e)}")

    def verify_log_integrity(self):
        """Walk the whole file: sequence, links, hashes and signatures."""
        if not os.path.exists(self.log_file):
            return True
        public_key = self.signing_key.public_key()
        previous_hash, expected_seq = None, 1
        try:
            with open(self.log_file, 'r') as f:
                for line in f:
                    if not line.strip():
                        continue
                    entry = json.loads(line)
                    if entry.get('seq') != expected_seq or entry.get('prev') != previous_hash:
                        return False
                    signature = base64.b64decode(entry.pop('sig'))
                    public_key.verify(signature, json.dumps(entry, sort_keys=True).encode())

                    entry_hash = entry.pop('hash')
                    if _digest(entry) != entry_hash:
                        return False
                    previous_hash, expected_seq = entry_hash, expected_seq + 1
            return True
        except Exception:
            return False
