# medaccess/app/security/crypto.py
"""
Envelope encryption for user data recovery.

Every user gets one random master key. It is never stored in clear:
the server keeps two independent AES-256-GCM encryptions of it,

- ``user_key``:     wrapped under a key derived from the user's password
- ``recovery_key``: wrapped under a key derived from a generated passphrase

Either secret unlocks the same master key. The passphrase is handed to the
user once at signup and is not persisted anywhere.

Blob layout produced by :func:`encrypt`::

    salt (16 bytes) ‖ iv (16 bytes) ‖ ciphertext + GCM tag (16 bytes)
"""
import base64
import secrets
from dataclasses import dataclass
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

SALT_SIZE = 16
IV_SIZE = 16
TAG_SIZE = 16
KEY_SIZE = 32  # AES-256

KDF_ITERATIONS = 10000

PASSPHRASE_GROUPS = 8
PASSPHRASE_GROUP_LENGTH = 4


class DecryptionFailed(Exception):
    """Wrong secret, tampered blob, or a blob too short to be ours."""


@dataclass(frozen=True)
class EncryptionKeys:
    recovery_key: bytes
    user_key: bytes


@dataclass(frozen=True)
class EncryptionProfileResult:
    keys: EncryptionKeys
    passphrase: str

    def __repr__(self) -> str:
        return "EncryptionProfileResult(passphrase=<hidden>)"


def derive_key(secret: str, salt: bytes, iterations: int = KDF_ITERATIONS) -> bytes:
    """PBKDF2-HMAC-SHA256 → 32-byte AES-GCM key. The salt enters in its hex form."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt.hex().encode("ascii"),
        iterations=iterations,
    )
    return kdf.derive(secret.encode("utf-8"))


def encrypt(plaintext: Union[str, bytes], secret: str, iterations: int = KDF_ITERATIONS) -> bytes:
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")

    salt = secrets.token_bytes(SALT_SIZE)
    iv = secrets.token_bytes(IV_SIZE)
    key = derive_key(secret, salt, iterations)

    return salt + iv + AESGCM(key).encrypt(iv, plaintext, None)


def decrypt(blob: bytes, secret: str, iterations: int = KDF_ITERATIONS) -> bytes:
    """
    Reverse :func:`encrypt`.

    Raises:
        DecryptionFailed: on a wrong secret, a modified blob or a malformed blob.
            Garbage is never returned.
    """
    if not blob or len(blob) < SALT_SIZE + IV_SIZE + TAG_SIZE:
        raise DecryptionFailed("Encrypted blob is too short")

    salt = blob[:SALT_SIZE]
    iv = blob[SALT_SIZE:SALT_SIZE + IV_SIZE]
    data = blob[SALT_SIZE + IV_SIZE:]
    key = derive_key(secret, salt, iterations)

    try:
        return AESGCM(key).decrypt(iv, data, None)
    except InvalidTag:
        raise DecryptionFailed("Authentication tag mismatch") from None


def create_passphrase(groups: int = PASSPHRASE_GROUPS, group_length: int = PASSPHRASE_GROUP_LENGTH) -> str:
    """
    Human-copyable recovery passphrase, e.g. ``K7QD 2MXA ...``.

    Base32 alphabet (no 0/1/8/9 lookalikes), 8 groups of 4 → 160 bits.
    """
    raw = secrets.token_bytes((groups * group_length * 5 + 7) // 8)
    alphabet = base64.b32encode(raw).decode("ascii").rstrip("=")
    return " ".join(
        alphabet[i * group_length:(i + 1) * group_length]
        for i in range(groups)
    )


def create_private_key(length: int = 64) -> str:
    """Random hex master key of ``length`` characters."""
    return secrets.token_hex((length + 1) // 2)[:length]


def create_encryption_profile(password: str, iterations: int = KDF_ITERATIONS) -> EncryptionProfileResult:
    """
    Generate a master key and wrap it twice (password, recovery passphrase).

    The returned passphrase is the caller's to show once; it is not stored.
    """
    passphrase = create_passphrase()
    master_key = create_private_key()

    return EncryptionProfileResult(
        keys=EncryptionKeys(
            recovery_key=encrypt(master_key, passphrase, iterations),
            user_key=encrypt(master_key, password, iterations),
        ),
        passphrase=passphrase,
    )
