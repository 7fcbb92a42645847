"""Credential hashing for tutor accounts.

Argon2 (memory-hard, random salt per credential) is the active scheme.
pbkdf2_sha256 digests are still accepted on verification so records created
with the older scheme keep working.
"""
from passlib.context import CryptContext


class PasswordHasher:
    def __init__(self, schemes: tuple[str, ...] = ("argon2", "pbkdf2_sha256")):
        self._context = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, plain: str) -> str:
        return self._context.hash(plain or "")

    def verify(self, plain: str, hashed: str) -> bool:
        if not hashed:
            return False
        try:
            return self._context.verify(plain or "", hashed)
        except ValueError:
            # Unrecognised or corrupted digest.
            return False

    def dummy_verify(self) -> None:
        """Burn comparable time when there is no digest to check (unknown phone)."""
        self._context.dummy_verify()


password_hasher = PasswordHasher()
