import secrets

from itsdangerous import BadSignature, URLSafeTimedSerializer

from flowboard.core.config import get_settings

settings = get_settings()

INVITE_TOKEN_BYTES = 32


def generate_invite_token() -> str:
    # 32 random bytes rendered as 64 lowercase hex characters
    return secrets.token_hex(INVITE_TOKEN_BYTES)


class SessionSigner:
    def __init__(self) -> None:
        self._serializer = URLSafeTimedSerializer(secret_key=settings.session_secret)

    def sign(self, user_id: str) -> str:
        return self._serializer.dumps({"user_id": user_id})

    def unsign(self, token: str, max_age_seconds: int = 60 * 60 * 24 * 30) -> str | None:
        try:
            payload = self._serializer.loads(token, max_age=max_age_seconds)
        except BadSignature:
            return None
        return payload.get("user_id")
