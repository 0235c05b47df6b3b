# juryportal/security/input_validator.py

import re
import html
import json
import bleach
from datetime import datetime

from juryportal.authentication.accounts import derive_juror_id
from juryportal.errors import MalformedInput
from juryportal.evaluation.status import STATUS_VALUES

# Input validation and sanitisation for everything a client sends in


class InputValidator:
    def __init__(self, max_rows=200):
        self.allowed_html_tags = []
        self.allowed_html_attributes = {}
        self.max_rows = max_rows

        self.patterns = {
            'pin': re.compile(r'^\d{4}$'),
            'group_id': re.compile(r'^[A-Za-z0-9_.\-]{1,64}$'),
            'number': re.compile(r'^-?\d+(\.\d+)?$'),
            'xss_script': re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL),
            'xss_event': re.compile(r'\bon\w+\s*=', re.IGNORECASE)
        }

    def sanitize_string(self, input_str, max_length=255):
        """Strip markup from free text and return it as plain text.

        The result is stored and served back through the JSON API, so bleach
        is used only to drop tags; its entity escaping is undone again.
        """
        if input_str is None:
            return ""
        if not isinstance(input_str, str):
            raise MalformedInput("Input must be a string")
        if len(input_str) > max_length:
            raise MalformedInput(f"Text exceeds {max_length} characters")

        sanitized = re.sub(self.patterns['xss_script'], '', input_str)
        sanitized = re.sub(self.patterns['xss_event'], '', sanitized)

        sanitized = bleach.clean(sanitized, tags=self.allowed_html_tags, attributes=self.allowed_html_attributes, strip=True)
        return html.unescape(sanitized).strip()

    def validate_pin(self, pin):
        return isinstance(pin, str) and bool(self.patterns['pin'].match(pin.strip()))

    def resolve_juror_id(self, data):
        """Take `jurorId` as given, or derive it from name + dept."""
        if not isinstance(data, dict):
            raise MalformedInput("Request body must be a JSON object")
        juror_id = data.get('jurorId')
        if juror_id is not None and not isinstance(juror_id, str):
            raise MalformedInput("jurorId must be a string")
        juror_id = (juror_id or "").strip()
        if not juror_id:
            name, dept = data.get('name') or data.get('jurorName'), data.get('dept') or data.get('jurorDept')
            if not (isinstance(name, str) and name.strip() and isinstance(dept, str) and dept.strip()):
                raise MalformedInput("jurorId, or name and dept, required")
            juror_id = derive_juror_id(name, dept)
        if len(juror_id) > 300:
            raise MalformedInput("jurorId too long")
        return juror_id

    def _score_value(self, value, field):
        if value is None or value == "":
            return ""
        if isinstance(value, bool):
            raise MalformedInput(f"Invalid score for {field}")
        text = str(value).strip()
        if text == "":
            return ""
        if not self.patterns['number'].match(text):
            raise MalformedInput(f"Invalid score for {field}: {value!r}")
        return text

    def _timestamp(self, value):
        if value is None or value == "":
            return ""
        if not isinstance(value, str) or len(value) > 64:
            raise MalformedInput("timestamp must be an ISO 8601 string")
        try:
            datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            raise MalformedInput(f"Invalid timestamp format: {value}")
        return value.strip()

    def validate_score_row(self, row):
        if not isinstance(row, dict):
            raise MalformedInput("Each row must be a JSON object")

        group_id = str(row.get('groupId') if row.get('groupId') is not None else "").strip()
        if not group_id:
            raise MalformedInput("Missing required row field: groupId")
        if not self.patterns['group_id'].match(group_id):
            raise MalformedInput(f"Invalid groupId: {group_id}")

        status = row.get('status')
        if status not in (None, ""):
            if status not in STATUS_VALUES:
                raise MalformedInput(f"Invalid status: {status}")
        else:
            status = None

        juror_id = row.get('jurorId')
        if not isinstance(juror_id, str) or not juror_id.strip():
            name, dept = row.get('jurorName'), row.get('jurorDept')
            juror_id = derive_juror_id(name, dept) if name and dept else ""

        normalized = {
            'juror_id': juror_id.strip(),
            'juror_name': self.sanitize_string(row.get('jurorName')),
            'juror_dept': self.sanitize_string(row.get('jurorDept')),
            'timestamp': self._timestamp(row.get('timestamp')),
            'group_id': group_id,
            'group_name': self.sanitize_string(row.get('groupName')),
            'comments': self.sanitize_string(row.get('comments'), max_length=5000),
            'status': status,
        }
        for field in ('written', 'technical', 'oral', 'teamwork', 'total'):
            normalized[field] = self._score_value(row.get(field), field)
        return normalized

    def validate_score_rows(self, rows):
        if not isinstance(rows, list):
            raise MalformedInput("rows must be a list")
        if len(rows) > self.max_rows:
            raise MalformedInput(f"Too many rows in one batch (max {self.max_rows})")
        return [self.validate_score_row(row) for row in rows]

    def validate_draft_payload(self, payload):
        # Drafts are opaque: any JSON value is accepted, a missing one is {}
        if payload is None:
            return {}
        try:
            json.dumps(payload)
        except (TypeError, ValueError):
            raise MalformedInput("draft is not JSON serialisable")
        return payload
