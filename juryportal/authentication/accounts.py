# juryportal/authentication/accounts.py

import secrets

# Juror account state lives in the credential store as one property per field,
# namespaced by juror id (PIN__<id>, SECRET__<id>, ...).

PIN = "PIN"
SECRET = "SECRET"
ATTEMPTS = "ATTEMPTS"
LOCKED = "LOCKED"
RESET_UNLOCK = "RESET_UNLOCK"
NAME = "NAME"
DEPT = "DEPT"

CREDENTIAL_FIELDS = (PIN, SECRET, ATTEMPTS, LOCKED)
ALL_FIELDS = CREDENTIAL_FIELDS + (RESET_UNLOCK, NAME, DEPT)


def property_key(field, juror_id):
    return f"{field}__{juror_id}"


def norm(value):
    return str(value or "").strip().lower()


def derive_juror_id(name, dept):
    """Stable juror key built from display name and department."""
    return f"{norm(name)}__{norm(dept)}"


class JurorAccounts:
    """Typed access to per-juror properties in a CredentialStore."""

    def __init__(self, credentials):
        self.credentials = credentials

    def _get(self, field, juror_id):
        return self.credentials.get(property_key(field, juror_id))

    def _set(self, field, juror_id, value):
        self.credentials.set(property_key(field, juror_id), str(value))

    def _delete(self, field, juror_id):
        self.credentials.delete(property_key(field, juror_id))

    def get_pin(self, juror_id):
        return self._get(PIN, juror_id) or None

    def set_pin(self, juror_id, pin):
        self._set(PIN, juror_id, pin)

    def get_secret(self, juror_id):
        return self._get(SECRET, juror_id) or None

    def rotate_secret(self, juror_id):
        secret = secrets.token_urlsafe(24)
        self._set(SECRET, juror_id, secret)
        return secret

    def ensure_secret(self, juror_id):
        return self.get_secret(juror_id) or self.rotate_secret(juror_id)

    def get_attempts(self, juror_id):
        try:
            return int(self._get(ATTEMPTS, juror_id) or "0")
        except ValueError:
            return 0

    def set_attempts(self, juror_id, count):
        self._set(ATTEMPTS, juror_id, count)

    def is_locked(self, juror_id):
        return self._get(LOCKED, juror_id) == "1"

    def lock(self, juror_id):
        self._set(LOCKED, juror_id, "1")

    def get_reset_unlock(self, juror_id):
        """Epoch milliseconds of the last reset-unlock, or None."""
        raw = self._get(RESET_UNLOCK, juror_id)
        try:
            return int(raw) if raw else None
        except ValueError:
            return None

    def set_reset_unlock(self, juror_id, epoch_ms):
        self._set(RESET_UNLOCK, juror_id, epoch_ms)

    def set_metadata(self, juror_id, name, dept):
        if name:
            self._set(NAME, juror_id, name)
        if dept:
            self._set(DEPT, juror_id, dept)

    def get_metadata(self, juror_id):
        return {
            "name": self._get(NAME, juror_id) or "",
            "dept": self._get(DEPT, juror_id) or "",
        }

    def clear_credentials(self, juror_id):
        for field in CREDENTIAL_FIELDS:
            self._delete(field, juror_id)

    def erase(self, juror_id):
        for field in ALL_FIELDS:
            self._delete(field, juror_id)
