# medaccess/app/security/hashing.py
"""
Salted scrypt hashing for passwords and verification codes.

Stored format: ``<salt>:<derived key hex>``
- salt: 16 random bytes, hex-encoded (the hex text itself is the scrypt salt)
- derived key: 64 bytes of scrypt output, hex-encoded

Verification recomputes the key with the stored salt and compares
in constant time.
"""
import hashlib
import hmac
import secrets

SALT_BYTES = 16
KEY_LENGTH = 64

# scrypt cost parameters (N=2^14, r=8, p=1 → 16 MiB per hash)
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_MAXMEM = 64 * 1024 * 1024

SEPARATOR = ":"


class InvalidCredentialFormat(ValueError):
    """The stored credential is not a ``salt:key`` pair."""


def _derive(text: str, salt: str) -> bytes:
    return hashlib.scrypt(
        text.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        maxmem=SCRYPT_MAXMEM,
        dklen=KEY_LENGTH,
    )


def hash(text: str) -> str:
    """Hash ``text`` with a fresh random salt."""
    salt = secrets.token_hex(SALT_BYTES)
    return f"{salt}{SEPARATOR}{_derive(text, salt).hex()}"


def compare(text: str, credential: str) -> bool:
    """
    Check ``text`` against a credential produced by :func:`hash`.

    Raises:
        InvalidCredentialFormat: if the credential is not ``salt:hexkey``

    Returns:
        True if the text matches, False otherwise (never raises on mismatch)
    """
    salt, _, key = (credential or "").partition(SEPARATOR)
    if not salt or not key:
        raise InvalidCredentialFormat("Invalid hash")

    try:
        expected = bytes.fromhex(key)
    except ValueError:
        raise InvalidCredentialFormat("Invalid hash") from None

    return hmac.compare_digest(_derive(text, salt), expected)


# Names used by the endpoints and services
def get_password_hash(password: str) -> str:
    return hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return compare(plain_password, hashed_password)
