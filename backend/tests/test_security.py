from datetime import timedelta

import pytest

from crm.core.database import utcnow
from crm.core.security import (
    create_access_token,
    decode_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)


def test_password_round_trip():
    digest = hash_password("hunter22")
    assert digest != "hunter22"
    assert verify_password("hunter22", digest)
    assert not verify_password("hunter23", digest)


def test_hash_is_salted():
    assert hash_password("same-pass") != hash_password("same-pass")


@pytest.mark.parametrize("digest", [None, "", "not-a-hash"])
def test_verify_rejects_missing_or_corrupt_digest(digest):
    assert verify_password("whatever", digest) is False


def test_access_token_carries_subject():
    token = create_access_token({"sub": "42"})
    assert decode_token(token)["sub"] == "42"


def test_expired_access_token_is_rejected():
    token = create_access_token({"sub": "42"}, expires_delta=timedelta(seconds=-1))
    with pytest.raises(ValueError):
        decode_token(token)


def test_garbage_token_is_rejected():
    with pytest.raises(ValueError):
        decode_token("not.a.jwt")


def test_reset_token_only_digest_is_kept():
    token, digest, expires_at = generate_reset_token()
    assert len(token) == 64
    assert digest == hash_reset_token(token)
    assert digest != token
    assert timedelta(minutes=59) < expires_at - utcnow() <= timedelta(minutes=60)
