# juryportal/errors.py
"""Exception types raised by the jury core and mapped to JSON responses.

Exception hierarchy:
- JuryError: Base class for every failure the core raises on purpose
  - Unauthenticated: Missing/invalid token, wrong API secret or admin password
  - MalformedInput: A request body or stored payload that cannot be used
    - DraftCorrupt: A stored draft whose JSON no longer parses

Locked accounts and missing drafts are normal outcomes and are reported in
the response body, not raised.
"""


class JuryError(Exception):
    status_code = 500
    status = "error"

    def __init__(self, message="", payload=None):
        super().__init__(message)
        self.message = message
        self.payload = payload or {}

    def to_dict(self):
        body = dict(self.payload)
        body["status"] = self.status
        if self.message:
            body["message"] = self.message
        return body


class Unauthenticated(JuryError):
    status_code = 401
    status = "unauthorized"


class MalformedInput(JuryError):
    status_code = 400


class DraftCorrupt(MalformedInput):
    def __init__(self, message="Corrupt draft JSON.", payload=None):
        super().__init__(message, payload)
