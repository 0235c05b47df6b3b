# juryportal/security/token_manager.py
import hmac
import logging
from typing import Optional

from flask_jwt_extended import create_access_token, decode_token

logger = logging.getLogger(__name__)

SECRET_CLAIM = "sec"


# Bearer tokens minted with Flask-JWT-Extended. The token carries the juror id
# as its identity and the juror's current secret as a claim; it is valid only
# while that secret is still the one on record.
class TokenManager:
    def __init__(self, accounts):
        self.accounts = accounts

    def generate_token(self, juror_id: str, secret: str) -> str:
        # No expiry: a token dies only when the juror's secret rotates.
        return create_access_token(
            identity=juror_id,
            additional_claims={SECRET_CLAIM: secret},
            expires_delta=False,
        )

    def claims_match(self, claims: dict) -> bool:
        juror_id = claims.get("sub")
        presented = claims.get(SECRET_CLAIM)
        if not juror_id or not isinstance(presented, str):
            return False
        stored = self.accounts.get_secret(juror_id)
        if not stored:
            return False
        return hmac.compare_digest(stored.encode(), presented.encode())

    def validate_token(self, token: str) -> Optional[str]:
        # Return the juror id if the token is valid, else None.
        if not token or not isinstance(token, str):
            return None
        try:
            claims = decode_token(token)
        except Exception as e:
            logger.warning(f"Token validation failed: {str(e)}")
            return None
        if not self.claims_match(claims):
            logger.warning("Token validation failed: secret mismatch for %s", claims.get("sub"))
            return None
        return claims["sub"]
