# juryportal/authentication/guards.py

import hmac
import logging
from enum import Enum
from functools import wraps

from flask import current_app, request

from juryportal.errors import Unauthenticated

# Boundary checks for the two shared credentials. Juror-scoped routes are
# gated separately by the bearer token (flask_jwt_extended.jwt_required).


class Credential(Enum):
    API_SECRET = "API_SECRET"
    ADMIN_PASSWORD = "ADMIN_PASSWORD"


CREDENTIAL_HEADERS = {
    Credential.API_SECRET: "X-Api-Secret",
    Credential.ADMIN_PASSWORD: "X-Admin-Password",
}


def credential_matches(credential, presented):
    # An unset credential never authorizes anything
    stored = current_app.config.get(credential.value) or ""
    if not stored or not isinstance(presented, str):
        return False
    return hmac.compare_digest(stored.encode(), presented.encode())


def require_credential(credential):
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            presented = request.headers.get(CREDENTIAL_HEADERS[credential])
            if not credential_matches(credential, presented):
                logging.warning(f"Rejected {credential.value} for {request.path} from {request.remote_addr}")
                raise Unauthenticated()
            return func(*args, **kwargs)
        return wrapper
    return decorator


require_api_secret = require_credential(Credential.API_SECRET)
require_admin_password = require_credential(Credential.ADMIN_PASSWORD)
