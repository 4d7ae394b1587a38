"""Redis focus-lock backend implementing IFocusStore."""

from __future__ import annotations

import redis

from redwing.core.exceptions import CacheError
from redwing.models.escalation import FocusLock


class RedisFocusStore:
    """Production IFocusStore backed by Redis.

    One key per authority; ``SET ... EX`` overwrites atomically and the
    conditional delete runs under ``WATCH``/``MULTI`` so a release for an
    older escalation never clears a newer lock.
    """

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 key_prefix: str = "redwing") -> None:
        self._host = host
        self._port = port
        self._db = db
        self._key_prefix = key_prefix
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def _key(self, authority_identity: str) -> str:
        return f"{self._key_prefix}:focus:{authority_identity}"

    def put(self, lock: FocusLock, ttl_seconds: int) -> None:
        key = self._key(lock.authority_identity)
        try:
            self._client.set(key, lock.model_dump_json(), ex=ttl_seconds)
        except Exception as exc:
            raise CacheError(f"Redis SET failed for key={key!r}: {exc}") from exc

    def get(self, authority_identity: str) -> FocusLock | None:
        key = self._key(authority_identity)
        try:
            raw = self._client.get(key)
        except Exception as exc:
            raise CacheError(f"Redis GET failed for key={key!r}: {exc}") from exc
        if raw is None:
            return None
        return FocusLock.model_validate_json(raw)

    def delete(self, authority_identity: str, expected_escalation_id: str | None = None) -> bool:
        key = self._key(authority_identity)
        try:
            if expected_escalation_id is None:
                return bool(self._client.delete(key))
            with self._client.pipeline() as pipe:
                while True:
                    try:
                        pipe.watch(key)
                        raw = pipe.get(key)
                        if raw is None:
                            pipe.unwatch()
                            return False
                        if FocusLock.model_validate_json(raw).locked_escalation_id != expected_escalation_id:
                            pipe.unwatch()
                            return False
                        pipe.multi()
                        pipe.delete(key)
                        pipe.execute()
                        return True
                    except redis.WatchError:
                        continue
        except Exception as exc:
            raise CacheError(f"Redis DELETE failed for key={key!r}: {exc}") from exc
