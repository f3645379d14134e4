"""Password hashing with bcrypt.

The ``bcrypt`` package is called directly; passlib does not work with
bcrypt >= 4.
"""

import bcrypt


def hash_password(plain: str) -> str:
    """Return a utf-8 bcrypt hash of ``plain`` with a fresh salt."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash: treat as a failed login, not a 500.
        return False
