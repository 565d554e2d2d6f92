"""Password hashing used by the ``password_hash`` hook."""

import base64
import hashlib
import hmac
import secrets

ALGORITHM = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 260_000


def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS, salt: str | None = None) -> str:
    """Derive an encoded one-way hash of a password.

    Returns:
        String formatted as ``pbkdf2_sha256$<iterations>$<salt>$<hash>``

    Raises:
        TypeError: If password is not a string
        ValueError: If password is empty
    """
    if not isinstance(password, str):
        raise TypeError(f"password must be a string, got {type(password).__name__}")
    if not password:
        raise ValueError("password must not be empty")

    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    encoded = base64.b64encode(digest).decode("ascii").strip()
    return f"{ALGORITHM}${iterations}${salt}${encoded}"


def check_password(password: str, encoded: str) -> bool:
    """Check a plaintext password against an encoded hash."""
    if not is_password_hash(encoded):
        return False
    _, iterations, salt, _ = encoded.split("$", 3)
    if not iterations.isdigit() or int(iterations) < 1:
        return False

    candidate = hash_password(password, int(iterations), salt)
    return hmac.compare_digest(candidate, encoded)


def is_password_hash(value: object) -> bool:
    return isinstance(value, str) and value.startswith(f"{ALGORITHM}$") and value.count("$") == 3
