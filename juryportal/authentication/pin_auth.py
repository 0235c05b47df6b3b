# juryportal/authentication/pin_auth.py

import hmac
import logging
import secrets

logger = logging.getLogger(__name__)

# PIN issuance and verification with per-juror brute-force lockout.
# Attempts and the lock flag live in the credential store, keyed by juror id,
# so the lockout survives client restarts and new sessions.


class PinAuthenticator:
    def __init__(self, accounts, tokens, max_attempts=3, pin_length=4):
        """
        accounts: JurorAccounts wrapper over the credential store
        tokens: TokenManager used to mint bearer tokens
        max_attempts: consecutive wrong PINs that lock the account
        pin_length: number of digits in a generated PIN
        """
        self.accounts = accounts
        self.tokens = tokens
        self.max_attempts = max_attempts
        self.pin_length = pin_length

    def generate_pin(self):
        return ''.join(secrets.choice('0123456789') for _ in range(self.pin_length))

    def exists(self, juror_id):
        return self.accounts.get_pin(juror_id) is not None

    def issue(self, juror_id, name="", dept=""):
        """
        Get-or-create the juror's PIN and return it with a fresh token.

        An existing PIN is never changed; its secret is kept (or created if
        missing) so the returned token is bound to the current secret.
        Locked accounts get neither PIN nor token.
        """
        self.accounts.set_metadata(juror_id, name, dept)

        if self.accounts.is_locked(juror_id):
            return {"created": False, "locked": True}

        pin = self.accounts.get_pin(juror_id)
        if pin is None:
            pin = self.generate_pin()
            self.accounts.set_pin(juror_id, pin)
            secret = self.accounts.rotate_secret(juror_id)
            created = True
        else:
            secret = self.accounts.ensure_secret(juror_id)
            created = False

        token = self.tokens.generate_token(juror_id, secret)
        return {"created": created, "locked": False, "pin": pin, "token": token}

    def verify(self, juror_id, candidate_pin, well_formed=True):
        """
        Check a candidate PIN.

        A candidate flagged as not `well_formed` is never compared and counts
        as a failed attempt.

        Returns a dict with valid, locked, attemptsLeft and, on success, token.
        """
        if self.accounts.is_locked(juror_id):
            return {"valid": False, "locked": True, "attemptsLeft": 0}

        stored = self.accounts.get_pin(juror_id)
        candidate = str(candidate_pin or "").strip()

        # No PIN on record (migrated data): let the juror through
        if stored is None or (well_formed and hmac.compare_digest(stored.encode(), candidate.encode())):
            self.accounts.set_attempts(juror_id, 0)
            secret = self.accounts.rotate_secret(juror_id)
            return {
                "valid": True,
                "locked": False,
                "attemptsLeft": self.max_attempts,
                "token": self.tokens.generate_token(juror_id, secret),
            }

        attempts = self.accounts.get_attempts(juror_id) + 1
        self.accounts.set_attempts(juror_id, attempts)
        left = max(0, self.max_attempts - attempts)
        if left == 0:
            self.accounts.lock(juror_id)
            logger.info("Juror %s locked after %d failed PIN attempts", juror_id, attempts)
        return {"valid": False, "locked": left == 0, "attemptsLeft": left}

    def clear(self, juror_id):
        # Only way out of the locked state; old tokens die with the secret.
        self.accounts.clear_credentials(juror_id)

    def erase(self, juror_id):
        self.accounts.erase(juror_id)
