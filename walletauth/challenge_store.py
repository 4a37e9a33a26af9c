# walletauth/challenge_store.py

import logging
import threading
import time
from typing import Dict

logger = logging.getLogger(__name__)

class ChallengeStore:
    """
    In-memory store of issued challenge nonces (nonce -> expiry, unix seconds).

    Issued nonces are removed when redeemed, so each one can be used once.
    Client-derived nonces are not issued here; they are remembered after
    redemption until they expire so they cannot be replayed inside the
    freshness window.
    WARNING: This is per-process and lost on restart! Use a shared store
    (e.g., Redis) when running more than one worker.
    """

    def __init__(self):
        self._issued: Dict[str, float] = {}
        self._redeemed: Dict[str, float] = {}
        self._lock = threading.Lock()

    def add(self, nonce: str, expires_at: float):
        """Record an issued nonce."""
        with self._lock:
            self._cleanup(time.time())
            self._issued[nonce] = expires_at
        logger.debug(f"Stored challenge nonce {nonce} (expires at {expires_at:.0f})")

    def consume(self, nonce: str) -> float | None:
        """Remove an issued nonce and return its expiry, or None if it was never issued or is already used."""
        with self._lock:
            return self._issued.pop(nonce, None)

    def remember_redeemed(self, nonce: str, expires_at: float) -> bool:
        """Mark a client-derived nonce as used. Returns False if it was already used."""
        with self._lock:
            self._cleanup(time.time())
            if nonce in self._redeemed:
                return False
            self._redeemed[nonce] = expires_at
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._issued)

    def _cleanup(self, now: float):
        """Removes expired entries. Caller holds the lock."""
        for store in (self._issued, self._redeemed):
            expired_keys = [key for key, expires_at in store.items() if expires_at < now]
            for key in expired_keys:
                del store[key]
                logger.debug(f"Expired challenge nonce removed: {key}")
