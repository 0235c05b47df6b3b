# juryportal/services.py

from flask import current_app

from juryportal.audit.audit_logger import AuditLogger
from juryportal.authentication.accounts import JurorAccounts
from juryportal.authentication.pin_auth import PinAuthenticator
from juryportal.database.stores import SqlCredentialStore, SqlRecordStore
from juryportal.evaluation.drafts import DraftManager
from juryportal.evaluation.reset_window import ResetUnlockWindow
from juryportal.evaluation.upsert import EvaluationUpsertEngine
from juryportal.security.input_validator import InputValidator
from juryportal.security.token_manager import TokenManager


class JuryServices:
    """The jury core wired against one credential store and one record store."""

    def __init__(self, credentials, records, max_attempts=3, reset_unlock_minutes=20, audit_log_dir='logs'):
        self.credentials = credentials
        self.records = records
        self.accounts = JurorAccounts(credentials)
        self.tokens = TokenManager(self.accounts)
        self.pins = PinAuthenticator(self.accounts, self.tokens, max_attempts=max_attempts)
        self.drafts = DraftManager(records)
        self.reset_window = ResetUnlockWindow(self.accounts, records, window_minutes=reset_unlock_minutes)
        self.evaluations = EvaluationUpsertEngine(records, self.accounts, self.reset_window)
        self.validator = InputValidator()
        self.audit_logger = AuditLogger(log_dir=audit_log_dir)


def build_services(app, credentials=None, records=None):
    return JuryServices(
        credentials if credentials is not None else SqlCredentialStore(),
        records if records is not None else SqlRecordStore(),
        max_attempts=app.config['MAX_PIN_ATTEMPTS'],
        reset_unlock_minutes=app.config['RESET_UNLOCK_MINUTES'],
        audit_log_dir=app.config['AUDIT_LOG_DIR'],
    )


def get_services() -> JuryServices:
    return current_app.extensions['jury']
