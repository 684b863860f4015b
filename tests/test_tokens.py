"""Unit tests for auth/tokens.py -- password digests and session tokens.

Covers:
- digests never equal the plaintext and are salted per call
- verify_password accepts the right password, rejects wrong or malformed input
- session tokens carry the account claims and reject tampering
"""

from __future__ import annotations

from jose import jwt

from auth.tokens import create_access_token, decode_access_token, hash_password, verify_password


class TestPasswordHashing:
    def test_digest_differs_from_plaintext(self) -> None:
        digest = hash_password("hunter2")
        assert digest != "hunter2"
        assert "hunter2" not in digest

    def test_same_password_hashes_differently(self) -> None:
        """A fresh salt per call means two digests of one password never match."""
        assert hash_password("same-input") != hash_password("same-input")

    def test_verify_roundtrip(self) -> None:
        digest = hash_password("correct horse")
        assert verify_password("correct horse", digest) is True
        assert verify_password("wrong horse", digest) is False

    def test_verify_malformed_digest_is_false(self) -> None:
        assert verify_password("anything", "not-a-bcrypt-digest") is False


class TestSessionTokens:
    def test_token_carries_account_claims(self) -> None:
        token = create_access_token(account_id=7, email="ada@example.com", role="user")
        payload = decode_access_token(token)
        assert payload is not None
        assert payload["account_id"] == 7
        assert payload["sub"] == "ada@example.com"
        assert payload["role"] == "user"

    def test_tampered_token_rejected(self) -> None:
        token = create_access_token(account_id=7, email="ada@example.com", role="user")
        assert decode_access_token(token[:-2] + "xx") is None

    def test_foreign_key_rejected(self) -> None:
        forged = jwt.encode({"account_id": 1, "role": "admin"}, "x" * 40, algorithm="HS256")
        assert decode_access_token(forged) is None

    def test_garbage_rejected(self) -> None:
        assert decode_access_token("not.a.jwt") is None
