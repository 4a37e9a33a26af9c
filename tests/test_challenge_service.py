import time

import pytest

from walletauth.challenge_store import ChallengeStore
from walletauth.exceptions import InvalidInputError, UnauthorizedError
from walletauth.services.challenge_service import MESSAGE_PREFIX, ChallengeIssuer, render_message


@pytest.fixture
def issuer(challenge_store) -> ChallengeIssuer:
    return ChallengeIssuer(challenge_store, ttl_seconds=300)


def test_issue_renders_prefixed_message(issuer, challenge_store):
    challenge = issuer.issue()

    assert challenge.message == f"Sign this message to authenticate: auth-{challenge.nonce}"
    assert abs(challenge.issued_at_millis - time.time() * 1000) < 5000
    assert len(challenge_store) == 1


def test_issue_nonces_are_unique(issuer):
    nonces = {issuer.issue().nonce for _ in range(50)}

    assert len(nonces) == 50


def test_parse_accepts_full_message_and_tag(issuer):
    challenge = issuer.issue()

    assert issuer.parse(challenge.message) == (challenge.nonce, challenge.message)
    assert issuer.parse(f"auth-{challenge.nonce}") == (challenge.nonce, challenge.message)


@pytest.mark.parametrize("message", [
    "",
    "hello",
    MESSAGE_PREFIX,
    f"{MESSAGE_PREFIX}auth-",
    f"{MESSAGE_PREFIX}auth-abc def",
    "Sign something else: auth-abc",
])
def test_parse_rejects_unrecognised_messages(issuer, message):
    with pytest.raises(InvalidInputError):
        issuer.parse(message)


def test_redeem_is_single_use(issuer, challenge_store):
    challenge = issuer.issue()

    issuer.redeem(challenge.nonce)

    assert len(challenge_store) == 0
    with pytest.raises(UnauthorizedError):
        issuer.redeem(challenge.nonce)


def test_redeem_rejects_unknown_nonce(issuer):
    with pytest.raises(UnauthorizedError):
        issuer.redeem("neverIssued123")


def test_redeem_rejects_expired_challenge(issuer, challenge_store):
    challenge_store.add("staleNonce1", time.time() - 1)

    with pytest.raises(UnauthorizedError, match="Expired"):
        issuer.redeem("staleNonce1")


def test_store_drops_expired_entries_on_add(challenge_store):
    challenge_store.add("old", time.time() - 10)
    challenge_store.add("new", time.time() + 10)

    assert len(challenge_store) == 1
    assert challenge_store.consume("old") is None


def test_client_challenges_rejected_by_default(issuer):
    nonce = str(int(time.time() * 1000))

    with pytest.raises(UnauthorizedError):
        issuer.redeem(nonce)


def test_client_challenge_accepted_once_within_window(challenge_store):
    issuer = ChallengeIssuer(challenge_store, ttl_seconds=300, allow_client_challenges=True)
    nonce = str(int(time.time() * 1000))

    issuer.redeem(nonce)

    with pytest.raises(UnauthorizedError, match="already used"):
        issuer.redeem(nonce)


@pytest.mark.parametrize("offset_seconds", [-301, 120])
def test_client_challenge_outside_window_rejected(challenge_store, offset_seconds):
    issuer = ChallengeIssuer(challenge_store, ttl_seconds=300, allow_client_challenges=True)
    nonce = str(int((time.time() + offset_seconds) * 1000))

    with pytest.raises(UnauthorizedError, match="Expired"):
        issuer.redeem(nonce)


def test_render_message_matches_reference_format():
    assert render_message("1700000000000") == "Sign this message to authenticate: auth-1700000000000"
