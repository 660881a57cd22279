"""
auth/passwords.py -- Password hashing (bcrypt, direct usage, no passlib wrapper).

bcrypt salts every hash, so hashing the same password twice gives two
different strings; verification recomputes with the salt embedded in the
stored hash. Comparison is bcrypt.checkpw's, never a hand-rolled byte loop.

Work factor 10 keeps a login under ~100ms on commodity hardware.
"""

from __future__ import annotations

import bcrypt

BCRYPT_ROUNDS = 10

# bcrypt reads at most 72 bytes. bcrypt 4 truncates longer input silently,
# bcrypt 5 raises ValueError.
MAX_PASSWORD_BYTES = 72


def password_too_long(plain: str) -> bool:
    return len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Callers must reject input where password_too_long() is true first;
    api/models.py and AuthService.signup both do.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash is a mismatch, not an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False
