import pytest
from flask_jwt_extended import create_access_token

from juryportal import create_app
from juryportal.database.stores import MemoryCredentialStore, MemoryRecordStore


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-jwt-secret-key-long-enough-for-hs256',
        'AUDIT_LOG_DIR': str(tmp_path / 'logs'),
        'RATELIMIT_ENABLED': False,
    }, credentials=MemoryCredentialStore(), records=MemoryRecordStore())
    with app.app_context():
        yield app


@pytest.fixture
def accounts(app):
    return app.extensions['jury'].accounts


@pytest.fixture
def token_manager(app):
    return app.extensions['jury'].tokens


def test_generate_and_validate_token(token_manager, accounts):
    secret = accounts.rotate_secret("juror-a")
    token = token_manager.generate_token("juror-a", secret)
    assert isinstance(token, str)
    assert token_manager.validate_token(token) == "juror-a"


def test_token_never_authenticates_other_juror(token_manager, accounts):
    secret_a = accounts.rotate_secret("juror-a")
    accounts.rotate_secret("juror-b")

    token_a = token_manager.generate_token("juror-a", secret_a)
    assert token_manager.validate_token(token_a) != "juror-b"

    # Juror A's secret presented under juror B's identity
    forged = token_manager.generate_token("juror-b", secret_a)
    assert token_manager.validate_token(forged) is None


def test_rotated_secret_invalidates_old_token(token_manager, accounts):
    old = token_manager.generate_token("juror-a", accounts.rotate_secret("juror-a"))
    new = token_manager.generate_token("juror-a", accounts.rotate_secret("juror-a"))

    assert token_manager.validate_token(old) is None
    assert token_manager.validate_token(new) == "juror-a"


def test_token_without_stored_secret_is_rejected(token_manager):
    token = token_manager.generate_token("ghost", "made-up-secret")
    assert token_manager.validate_token(token) is None


@pytest.mark.parametrize("token", ["", "garbage", "a.b.c", None, 42])
def test_malformed_tokens_are_rejected(token_manager, token):
    assert token_manager.validate_token(token) is None


def test_token_without_secret_claim_is_rejected(token_manager, accounts):
    accounts.rotate_secret("juror-a")
    token = create_access_token(identity="juror-a", expires_delta=False)
    assert token_manager.validate_token(token) is None


def test_token_signed_with_other_key_is_rejected(token_manager, accounts, tmp_path):
    secret = accounts.rotate_secret("juror-a")
    other = create_app({
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'JWT_SECRET_KEY': 'a-completely-different-signing-key-for-tests',
        'AUDIT_LOG_DIR': str(tmp_path / 'other-logs'),
        'RATELIMIT_ENABLED': False,
    }, credentials=MemoryCredentialStore(), records=MemoryRecordStore())
    with other.app_context():
        foreign = create_access_token(identity="juror-a", additional_claims={"sec": secret}, expires_delta=False)

    assert token_manager.validate_token(foreign) is None


def test_tokens_do_not_expire(token_manager, accounts):
    from flask_jwt_extended import decode_token

    token = token_manager.generate_token("juror-a", accounts.rotate_secret("juror-a"))
    assert "exp" not in decode_token(token)


def test_claims_match_requires_both_claims(token_manager, accounts):
    secret = accounts.rotate_secret("juror-a")
    assert token_manager.claims_match({"sub": "juror-a", "sec": secret}) is True
    assert token_manager.claims_match({"sub": "juror-a"}) is False
    assert token_manager.claims_match({"sec": secret}) is False
