import pytest

from walletauth.client import WalletAuthClient, WalletAuthClientError


@pytest.fixture
def auth_client(client, wallet) -> WalletAuthClient:
    # TestClient speaks the same request() interface as requests.Session
    return WalletAuthClient("http://testserver", wallet, session=client)


def test_authenticate_runs_challenge_sign_submit(auth_client, directory, wallet):
    credential = auth_client.authenticate("client@example.com")

    [account] = directory.accounts
    assert credential.account_id == account.account_id
    assert account.preferences["walletAddress"] == wallet.get_active_address().lower()


def test_sign_in_and_out(auth_client, session_store):
    session = auth_client.sign_in("client@example.com")

    assert session_store.session_exists(session.account_id, session.session_id)

    auth_client.sign_out(session.access_token)

    assert not session_store.session_exists(session.account_id, session.session_id)


def test_errors_carry_kind_and_status(client, wallet, other_wallet):
    WalletAuthClient("http://testserver", wallet, session=client).authenticate("client@example.com")

    with pytest.raises(WalletAuthClientError) as exc_info:
        WalletAuthClient("http://testserver", other_wallet, session=client).authenticate("client@example.com")

    assert exc_info.value.kind == "wallet_mismatch"
    assert exc_info.value.status_code == 403
