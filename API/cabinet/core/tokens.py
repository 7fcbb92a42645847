"""Opaque session tokens."""
import hashlib
import secrets

TOKEN_BYTES = 32


class TokenIssuer:
    def __init__(self, nbytes: int = TOKEN_BYTES):
        self._nbytes = nbytes

    def issue(self) -> str:
        return secrets.token_urlsafe(self._nbytes)

    @staticmethod
    def fingerprint(token: str) -> str:
        """SHA-256 of a token; the store only ever sees this, never the token itself."""
        return hashlib.sha256(token.encode("utf-8")).hexdigest()


token_issuer = TokenIssuer()
