"""
Cryptographic helpers: secret hashing and token hashing.

PINs and passwords are stored as ``pbkdf2$<iterations>$<salt>$<hex>``
(PBKDF2-HMAC-SHA256, 256-bit derived key). Hashes tagged ``$argon2`` (via
argon2-cffi) are still verified so older password rows keep working, and
can be produced instead by passing ``scheme="argon2"``.

One-time codes and reset tokens are stored as plain SHA-256 digests: they are
high-entropy or short-lived, so a slow hash buys nothing there.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

PBKDF2_TAG = "pbkdf2"
DEFAULT_ITERATIONS = 100_000
SALT_BYTES = 16
DERIVED_KEY_BYTES = 32

_argon2_hasher = PasswordHasher()


def _derive(secret: str, salt: str, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac(
        "sha256",
        secret.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
        dklen=DERIVED_KEY_BYTES,
    )


def _new_salt() -> str:
    return base64.urlsafe_b64encode(secrets.token_bytes(SALT_BYTES)).rstrip(b"=").decode("ascii")


def hash_secret(
    secret: str, *, iterations: int = DEFAULT_ITERATIONS, scheme: str = PBKDF2_TAG
) -> str:
    """Hash a PIN or password with a fresh random salt.

    Two calls with the same input produce different strings.
    """
    if scheme == "argon2":
        return _argon2_hasher.hash(secret)
    salt = _new_salt()
    digest = _derive(secret, salt, iterations).hex()
    return f"{PBKDF2_TAG}${iterations}${salt}${digest}"


def verify_secret(secret: str, encoded: str) -> bool:
    """Check *secret* against a stored hash.

    Returns:
        ``True`` on a match, ``False`` for a mismatch or a malformed or
        unrecognized stored value. Never raises.
    """
    if not encoded or not isinstance(encoded, str):
        return False

    if encoded.startswith("$argon2"):
        try:
            return _argon2_hasher.verify(encoded, secret)
        except (VerificationError, InvalidHashError):
            return False

    parts = encoded.split("$")
    if len(parts) != 4 or parts[0] != PBKDF2_TAG:
        return False
    _, raw_iterations, salt, expected_hex = parts
    try:
        iterations = int(raw_iterations)
        expected = bytes.fromhex(expected_hex)
    except ValueError:
        return False
    if iterations <= 0 or not salt:
        return False

    actual = _derive(secret, salt, iterations)
    if len(actual) != len(expected):
        return False
    return hmac.compare_digest(actual, expected)


def needs_rehash(
    encoded: str, *, iterations: int = DEFAULT_ITERATIONS, scheme: str = PBKDF2_TAG
) -> bool:
    """Report whether a verified hash was produced with older parameters."""
    if scheme == "argon2":
        if not encoded.startswith("$argon2"):
            return True
        try:
            return _argon2_hasher.check_needs_rehash(encoded)
        except InvalidHashError:
            return True

    parts = encoded.split("$")
    if len(parts) != 4 or parts[0] != PBKDF2_TAG:
        return True
    try:
        return int(parts[1]) < iterations
    except ValueError:
        return True


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    Used to hash OTP codes and reset tokens before storing them in the
    database so the plaintext is never persisted.

    Returns:
        64-character lowercase hex string.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_hashes_match(candidate: str, stored_hash: str) -> bool:
    """Constant-time comparison of ``hash_token(candidate)`` with *stored_hash*."""
    return hmac.compare_digest(hash_token(candidate), stored_hash or "")
