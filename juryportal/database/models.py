# juryportal/database/models.py

from juryportal import db
from datetime import datetime, timezone

# Database schema backing the SQL credential and record stores


def _utcnow():
    return datetime.now(timezone.utc)


class CredentialProperty(db.Model):
    """Flat key/value bag holding PINs, secrets, counters and lock flags."""
    __tablename__ = 'credential_properties'
    key = db.Column(db.String(300), primary_key=True)
    value = db.Column(db.Text, nullable=False)

    def __repr__(self):
        return f'<CredentialProperty {self.key}>'


class Evaluation(db.Model):
    __tablename__ = 'evaluations'
    id = db.Column(db.Integer, primary_key=True)
    juror_id = db.Column(db.String(300), nullable=False, index=True)
    juror_name = db.Column(db.String(255), nullable=False, default='')
    juror_dept = db.Column(db.String(255), nullable=False, default='')
    timestamp = db.Column(db.String(64), nullable=False, default='')  # ISO string, caller supplied
    group_id = db.Column(db.String(64), nullable=False)
    group_name = db.Column(db.String(255), nullable=False, default='')
    written = db.Column(db.String(16), nullable=False, default='')
    technical = db.Column(db.String(16), nullable=False, default='')
    oral = db.Column(db.String(16), nullable=False, default='')
    teamwork = db.Column(db.String(16), nullable=False, default='')
    total = db.Column(db.String(16), nullable=False, default='')
    comments = db.Column(db.Text, nullable=False, default='')
    status = db.Column(db.String(32), nullable=False, default='')
    editing_flag = db.Column(db.String(16), nullable=False, default='')
    juror_secret = db.Column(db.String(128), nullable=False, default='')
    highlight = db.Column(db.String(16), nullable=True)

    def __repr__(self):
        return f'<Evaluation {self.id} juror={self.juror_id} group={self.group_id}>'


class Draft(db.Model):
    __tablename__ = 'drafts'
    id = db.Column(db.Integer, primary_key=True)
    juror_id = db.Column(db.String(300), unique=True, nullable=False)
    payload = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
