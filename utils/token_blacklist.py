import time


class TokenBlacklist:
    """Revoked session tokens, kept only until the token would have expired anyway."""

    def __init__(self, store):
        self.store = store

    @staticmethod
    def _key(jti: str) -> str:
        return f"revoked:{jti}"

    async def revoke(self, jti: str, expires_at: int) -> None:
        ttl = int(expires_at - time.time())
        if ttl > 0:
            await self.store.put(self._key(jti), "1", ttl)

    async def is_revoked(self, jti: str | None) -> bool:
        if not jti:
            return False
        return await self.store.exists(self._key(jti))
