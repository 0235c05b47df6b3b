import os
import json
import base64
import threading
import pytest
from juryportal.audit.audit_logger import AuditEvent, AuditLogger


@pytest.fixture
def temp_log_dir(tmp_path):
    """Create a temporary directory for test logs."""
    log_dir = tmp_path / "test_logs"
    log_dir.mkdir()
    return str(log_dir)


@pytest.fixture
def audit_logger(temp_log_dir):
    """Create an AuditLogger instance with a temporary log directory."""
    return AuditLogger(log_dir=temp_log_dir)


def read_entries(audit_logger):
    with open(audit_logger.log_file, 'r') as f:
        return [json.loads(line) for line in f if line.strip()]


def test_init_creates_log_directory(temp_log_dir):
    os.rmdir(temp_log_dir)
    AuditLogger(log_dir=temp_log_dir)
    assert os.path.exists(temp_log_dir)


def test_entry_schema(audit_logger):
    audit_logger.log_event(AuditEvent.PIN_FAILED, {"attemptsLeft": 2}, "ada__ee")

    entry = read_entries(audit_logger)[0]
    assert entry['seq'] == 1
    assert entry['event'] == "pin_failed"
    assert entry['juror'] == "ada__ee"
    assert entry['detail'] == {"attemptsLeft": 2}
    assert entry['prev'] is None  # First entry
    assert 'at' in entry and 'hash' in entry and 'sig' in entry


def test_event_names_are_accepted_as_strings(audit_logger):
    audit_logger.log_event("scores_submitted", {"added": 1}, "j1")
    assert read_entries(audit_logger)[0]['event'] == "scores_submitted"


def test_unknown_event_is_rejected(audit_logger):
    with pytest.raises(ValueError):
        audit_logger.log_event("vote_cast", {})
    assert not os.path.exists(audit_logger.log_file)


def test_hash_chaining(audit_logger):
    audit_logger.log_event(AuditEvent.PIN_ISSUED, {"created": True}, "j1")
    first_hash = audit_logger.previous_hash

    audit_logger.log_event(AuditEvent.PIN_VERIFIED, {}, "j1")

    second = read_entries(audit_logger)[1]
    assert second['prev'] == first_hash
    assert second['seq'] == 2


def test_signature_verification(audit_logger):
    audit_logger.log_event(AuditEvent.SCORES_SUBMITTED, {"added": 3}, "j1")

    entry = read_entries(audit_logger)[0]
    signature = entry.pop('sig')
    entry_json = json.dumps(entry, sort_keys=True).encode()

    # Raises InvalidSignature if the signature does not match
    audit_logger.signing_key.public_key().verify(base64.b64decode(signature), entry_json)


def test_verify_log_integrity_valid(audit_logger):
    audit_logger.log_event(AuditEvent.PIN_ISSUED, {"created": True}, "j1")
    audit_logger.log_event(AuditEvent.ACCOUNT_LOCKED, {}, "j1")
    assert audit_logger.verify_log_integrity() is True


def test_verify_log_integrity_tampered_entry(audit_logger):
    audit_logger.log_event(AuditEvent.SCORES_SUBMITTED, {"added": 1}, "j1")

    entry = read_entries(audit_logger)[0]
    entry['detail']['added'] = 99
    with open(audit_logger.log_file, 'w') as f:
        f.write(json.dumps(entry) + "\n")

    assert audit_logger.verify_log_integrity() is False


def test_verify_log_integrity_dropped_entry(audit_logger):
    for _ in range(3):
        audit_logger.log_event(AuditEvent.DRAFT_SAVED, {}, "j1")

    with open(audit_logger.log_file, 'r') as f:
        lines = f.readlines()
    with open(audit_logger.log_file, 'w') as f:
        f.writelines(lines[:1] + lines[2:])

    assert audit_logger.verify_log_integrity() is False


def test_verify_log_integrity_appended_garbage(audit_logger):
    audit_logger.log_event(AuditEvent.PIN_ISSUED, {}, "j1")
    with open(audit_logger.log_file, 'a') as f:
        f.write('{"tampered": true}\n')

    assert audit_logger.verify_log_integrity() is False


def test_chain_resumes_across_instances(temp_log_dir):
    logger1 = AuditLogger(log_dir=temp_log_dir)
    logger1.log_event(AuditEvent.PIN_ISSUED, {}, "j1")
    first_hash = logger1.previous_hash

    logger2 = AuditLogger(log_dir=temp_log_dir, signing_key=logger1.signing_key)
    assert logger2.previous_hash == first_hash
    assert logger2.seq == 1

    logger2.log_event(AuditEvent.PIN_VERIFIED, {}, "j1")
    assert logger2.verify_log_integrity() is True


def test_concurrent_writers_keep_one_chain(audit_logger):
    def write_many(juror_id):
        for i in range(50):
            audit_logger.log_event(AuditEvent.DRAFT_SAVED, {"n": i}, juror_id)

    threads = [threading.Thread(target=write_many, args=(f"j{n}",)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    entries = read_entries(audit_logger)
    assert [e['seq'] for e in entries] == list(range(1, 401))
    assert audit_logger.verify_log_integrity() is True


def test_error_handling(audit_logger, monkeypatch):
    def mock_open(*args, **kwargs):
        raise PermissionError("Access denied")

    monkeypatch.setattr("builtins.open", mock_open)

    # Must not raise
    audit_logger.log_event(AuditEvent.REQUEST_ERROR, {"data": "test"})
    assert audit_logger.seq == 0
