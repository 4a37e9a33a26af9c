import logging
import time

from siwe import generate_nonce

from ..challenge_store import ChallengeStore
from ..exceptions import InvalidInputError, UnauthorizedError
from ..models.data_models import AuthChallenge

logger = logging.getLogger(__name__)

MESSAGE_PREFIX = "Sign this message to authenticate: "
NONCE_TAG_PREFIX = "auth-"
# Client clocks may run slightly ahead of the server.
CLIENT_CLOCK_SKEW_SECONDS = 60


def render_message(nonce: str) -> str:
    return f"{MESSAGE_PREFIX}{NONCE_TAG_PREFIX}{nonce}"


class ChallengeIssuer:
    """Issues single-use sign-in challenges and checks them off when redeemed."""

    def __init__(self, store: ChallengeStore, ttl_seconds: int = 300, allow_client_challenges: bool = False):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.allow_client_challenges = allow_client_challenges

    def issue(self) -> AuthChallenge:
        now = time.time()
        nonce = generate_nonce()
        self.store.add(nonce, now + self.ttl_seconds)
        logger.info(f"Issued challenge nonce: {nonce}")
        return AuthChallenge(
            nonce=nonce,
            issued_at_millis=int(now * 1000),
            message=render_message(nonce),
        )

    def parse(self, message: str) -> tuple[str, str]:
        """
        Extracts the nonce from a submitted challenge.

        Accepts the full rendered message or just its ``auth-<nonce>`` tag and
        returns ``(nonce, full_message)``; the full message is what the wallet signed.
        """
        text = (message or "").strip()
        if text.startswith(MESSAGE_PREFIX):
            text = text[len(MESSAGE_PREFIX):]
        if not text.startswith(NONCE_TAG_PREFIX):
            raise InvalidInputError("Message is not a recognised sign-in challenge.")
        nonce = text[len(NONCE_TAG_PREFIX):]
        if not nonce or not nonce.isalnum():
            raise InvalidInputError("Message is not a recognised sign-in challenge.")
        return nonce, render_message(nonce)

    def redeem(self, nonce: str):
        """Marks the challenge as used. Raises UnauthorizedError if it is unknown, expired or already used."""
        now = time.time()
        expires_at = self.store.consume(nonce)
        if expires_at is not None:
            if expires_at < now:
                logger.warning(f"Challenge nonce expired: {nonce}")
                raise UnauthorizedError("Expired challenge.")
            logger.info(f"Challenge nonce consumed: {nonce}")
            return

        if self.allow_client_challenges and nonce.isdigit():
            self._redeem_client_challenge(nonce, now)
            return

        logger.warning(f"Challenge nonce not found or already used: {nonce}")
        raise UnauthorizedError("Invalid or expired challenge.")

    def _redeem_client_challenge(self, nonce: str, now: float):
        issued_at = int(nonce) / 1000
        if issued_at > now + CLIENT_CLOCK_SKEW_SECONDS or now - issued_at > self.ttl_seconds:
            logger.warning(f"Client challenge outside freshness window: {nonce}")
            raise UnauthorizedError("Expired challenge.")
        if not self.store.remember_redeemed(nonce, issued_at + self.ttl_seconds + CLIENT_CLOCK_SKEW_SECONDS):
            logger.warning(f"Client challenge replayed: {nonce}")
            raise UnauthorizedError("Challenge already used.")
        logger.info(f"Client challenge accepted: {nonce}")
