"""In-memory registry of tokens revoked before their natural expiry.

A process restart clears the registry. That only shortens the protection
window for revoked tokens, never extends a token's lifetime, and every
revoked token still expires on its own schedule.
"""

import asyncio
import logging
import threading
import time
from collections.abc import Callable

from registration.services.errors import TokenError
from registration.services.tokens import TokenCodec

logger = logging.getLogger(__name__)

# Bound on stored tokens whose expiry could not be read
DEFAULT_MAX_UNREADABLE_ENTRIES = 10_000


class RevocationRegistry:
    """Thread-safe map of raw token -> expiry epoch seconds.

    Read on every authenticated request, written on every logout. All
    access goes through the instance lock.
    """

    def __init__(
        self,
        codec: TokenCodec,
        clock: Callable[[], float] = time.time,
        max_unreadable_entries: int = DEFAULT_MAX_UNREADABLE_ENTRIES,
    ):
        self._codec = codec
        self._clock = clock
        self._max_unreadable = max_unreadable_entries
        self._entries: dict[str, float] = {}
        self._unreadable: set[str] = set()
        self._lock = threading.Lock()

    def revoke(self, token: str) -> None:
        """Reject ``token`` from now on.

        Tokens whose expiry cannot be read (corrupt, foreign signature) are
        revoked anyway, with the longest lifetime any issued token can have,
        so they are still swept eventually. Logout is unauthenticated, so
        anyone can submit such strings; at most ``max_unreadable_entries`` of
        them are held at once. They can never authenticate anyway, since the
        codec rejects them.
        """
        now = self._clock()
        try:
            expires_at: float = self._codec.expiry_of(token)
        except TokenError as e:
            logger.warning(f"Revoking token with unreadable expiry: {e.message}")
            self._revoke_unreadable(token, now + self._codec.validity_seconds)
            return
        if expires_at <= now:
            logger.debug("Token already expired, nothing to revoke")
            return

        with self._lock:
            # Keep the later expiry if the same token is revoked twice
            self._entries[token] = max(expires_at, self._entries.get(token, 0.0))
        logger.debug("Token revoked")

    def _revoke_unreadable(self, token: str, expires_at: float) -> None:
        with self._lock:
            if token not in self._unreadable and len(self._unreadable) >= self._max_unreadable:
                logger.warning("Unreadable revocation entries at capacity, token not stored")
                return
            self._unreadable.add(token)
            self._entries[token] = max(expires_at, self._entries.get(token, 0.0))

    def is_revoked(self, token: str | None) -> bool:
        """Membership check. An absent token is never revoked."""
        if not token:
            return False
        with self._lock:
            return token in self._entries

    def sweep_expired(self) -> int:
        """Drop entries whose token has expired. Returns count removed."""
        now = self._clock()
        with self._lock:
            expired = [token for token, exp in self._entries.items() if exp <= now]
            for token in expired:
                del self._entries[token]
                self._unreadable.discard(token)
        if expired:
            logger.debug(f"Swept {len(expired)} expired revocation entries")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


async def revocation_sweep_loop(registry: RevocationRegistry, interval_seconds: float) -> None:
    """Periodically remove expired entries from the revocation registry."""
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            removed = registry.sweep_expired()
            if removed > 0:
                logger.info(f"Cleaned up {removed} expired revocation entries")
        except asyncio.CancelledError:
            break
        except Exception:
            logger.exception("Error sweeping revocation registry")
