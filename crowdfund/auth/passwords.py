"""Password hashing (PBKDF2-SHA256)."""
import hashlib
import hmac
import secrets

PBKDF2_ITERATIONS = 150_000
_PREFIX = "pbkdf2:sha256:"


def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Hash a password as ``pbkdf2:sha256:<iterations>$<salt>$<hex digest>``."""
    salt = secrets.token_hex(16)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"{_PREFIX}{iterations}${salt}${dk.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a hash produced by hash_password."""
    if not password_hash.startswith(_PREFIX):
        return False
    parts = password_hash.split("$")
    if len(parts) != 3:
        return False
    header, salt, stored_hash = parts
    try:
        iterations = int(header[len(_PREFIX):])
    except ValueError:
        return False
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return hmac.compare_digest(dk.hex(), stored_hash)
