"""
Unit tests for the password hasher.
"""

import pytest

from core.security import PasswordHasher


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=1000)


def test_hash_verifies_same_password(hasher):
    digest = hasher.hash("secret1")
    assert hasher.verify("secret1", digest) is True


@pytest.mark.parametrize("other", ["secret2", "Secret1", "secret1 ", ""])
def test_hash_rejects_other_password(hasher, other):
    digest = hasher.hash("secret1")
    assert hasher.verify(other, digest) is False


def test_plaintext_not_in_digest(hasher):
    digest = hasher.hash("correct horse battery staple")
    assert "correct horse" not in digest
    assert digest.startswith("$pbkdf2-sha256$1000$")


def test_salt_is_random(hasher):
    """Same password hashed twice gives two different digests."""
    a = hasher.hash("secret1")
    b = hasher.hash("secret1")
    assert a != b
    assert hasher.verify("secret1", a) and hasher.verify("secret1", b)


def test_old_hashes_verify_after_rounds_change():
    """The cost factor is stored in the digest, so raising it keeps old hashes valid."""
    old = PasswordHasher(rounds=1000).hash("secret1")
    assert PasswordHasher(rounds=2000).verify("secret1", old) is True


def test_malformed_digest_raises(hasher):
    with pytest.raises(ValueError):
        hasher.verify("secret1", "not-a-hash")
