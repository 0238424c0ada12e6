"""Signing strategies for session tokens."""

from typing import Any, Protocol

from itsdangerous import BadPayload, BadSignature, URLSafeSerializer

from algoshelf.errors import InvalidSignatureError, MalformedTokenError


class TokenSigner(Protocol):
    """Turns a payload into an opaque signed string and back."""

    def sign(self, payload: dict[str, Any]) -> str: ...

    def unsign(self, token: str) -> dict[str, Any]:
        """Return the payload, raising MalformedTokenError or InvalidSignatureError."""
        ...


class SerializerTokenSigner:
    """HMAC signer built on itsdangerous.

    `current_key` signs new tokens. `previous_keys` (oldest first) are only
    accepted for verification, which allows rotating keys without logging
    everybody out.
    """

    def __init__(self, current_key: str, previous_keys: list[str] | None = None, salt: str = "algoshelf-admin-token") -> None:
        if not current_key:
            raise ValueError("Token signing key must not be empty")
        # itsdangerous signs with the last key in the list and verifies with all of them
        keys = [*(previous_keys or []), current_key]
        self._serializer = URLSafeSerializer(keys, salt=salt)

    def sign(self, payload: dict[str, Any]) -> str:
        return str(self._serializer.dumps(payload))

    def unsign(self, token: str) -> dict[str, Any]:
        if not token or "." not in token:
            raise MalformedTokenError
        try:
            payload = self._serializer.loads(token)
        except BadPayload as e:
            raise MalformedTokenError from e
        except BadSignature as e:
            raise InvalidSignatureError from e
        if not isinstance(payload, dict):
            raise MalformedTokenError
        return payload
