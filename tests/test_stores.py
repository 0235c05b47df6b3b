import pytest
from datetime import datetime, timezone

from juryportal import create_app
from juryportal.database.stores import (
    MemoryCredentialStore,
    MemoryRecordStore,
    SqlCredentialStore,
    SqlRecordStore,
)


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-jwt-secret-key-long-enough-for-hs256',
        'AUDIT_LOG_DIR': str(tmp_path / 'logs'),
        'RATELIMIT_ENABLED': False,
    })
    with app.app_context():
        yield app


@pytest.fixture(params=["memory", "sql"])
def credentials(request, app):
    return MemoryCredentialStore() if request.param == "memory" else SqlCredentialStore()


@pytest.fixture(params=["memory", "sql"])
def records(request, app):
    return MemoryRecordStore() if request.param == "memory" else SqlRecordStore()


def test_default_app_uses_sql_stores(app):
    services = app.extensions['jury']
    assert isinstance(services.credentials, SqlCredentialStore)
    assert isinstance(services.records, SqlRecordStore)


def test_credentials_get_set_delete(credentials):
    assert credentials.get("PIN__j1") is None
    credentials.set("PIN__j1", "4821")
    assert credentials.get("PIN__j1") == "4821"

    credentials.set("PIN__j1", "1234")
    assert credentials.get("PIN__j1") == "1234"

    credentials.delete("PIN__j1")
    assert credentials.get("PIN__j1") is None
    # Deleting a missing key is fine
    credentials.delete("PIN__j1")


def test_evaluation_append_scan_update_delete(records):
    h1 = records.append_evaluation({'juror_id': 'j1', 'group_id': '1', 'status': 'in_progress'})
    h2 = records.append_evaluation({'juror_id': 'j1', 'group_id': '2', 'status': 'in_progress'})
    assert h1 != h2

    records.update_evaluation(h1, {'status': 'all_submitted', 'total': '90'})
    rows = dict(records.scan_evaluations())
    assert rows[h1]['status'] == 'all_submitted'
    assert rows[h1]['total'] == '90'
    assert rows[h2]['comments'] == ''

    records.delete_evaluation(h1)
    assert [h for h, _ in records.scan_evaluations()] == [h2]


def test_update_missing_evaluation_raises(records):
    with pytest.raises(KeyError):
        records.update_evaluation(999, {'status': 'in_progress'})


def test_draft_roundtrip(records):
    now = datetime(2025, 6, 12, 9, 0, tzinfo=timezone.utc)
    assert records.get_draft("j1") is None

    records.put_draft("j1", '{"a": 1}', now)
    records.put_draft("j1", '{"a": 2}', now)
    assert records.get_draft("j1")['payload'] == '{"a": 2}'

    assert records.delete_draft("j1") is True
    assert records.delete_draft("j1") is False
