import hashlib
import hmac
import secrets
from typing import Optional

# Number of hex characters of the signature handed to clients
PARTIAL_LENGTH = 16


class Signer:
    """HMAC-SHA256 signatures over a session token and its issue time.

    The secret lives only in memory, so a restart invalidates every
    signature issued before it.
    """

    def __init__(self, secret: Optional[str] = None):
        self._secret = (secret or secrets.token_hex(16)).encode()

    def issue(self, token: str, start_time: int) -> str:
        msg = f"{token}{start_time}".encode()
        return hmac.new(self._secret, msg, hashlib.sha256).hexdigest()

    def verify(self, token: str, start_time: int, signature: str) -> bool:
        if not signature:
            return False
        return hmac.compare_digest(self.issue(token, start_time), signature)

    def __repr__(self) -> str:
        return "Signer(secret=***)"


def partial(signature: str) -> str:
    """Prefix of a signature that is safe to show to the client."""
    return signature[:PARTIAL_LENGTH]
