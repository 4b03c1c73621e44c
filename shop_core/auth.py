import hmac
from typing import Protocol


class CredentialVerifier(Protocol):
    def verify(self, secret: str) -> bool: ...


class StaticSecretVerifier:
    """Сравнивает с заранее настроенным секретом (constant-time)"""

    def __init__(self, expected: str):
        self._expected = expected.encode("utf-8")

    def verify(self, secret: str) -> bool:
        if not secret:
            return False
        return hmac.compare_digest(self._expected, str(secret).encode("utf-8"))
