"""
Pytest fixtures for the dropkit tests.
"""
from unittest.mock import MagicMock

import pytest
from web3.providers.rpc import HTTPProvider

from dropkit.client import ContractClient
from dropkit.config import ChainRegistry
from dropkit.signer.local import LocalSigner
from dropkit.store import ProjectStore

from tests.test_helpers import TEST_OWNER, TEST_PRIV_KEY, erc721_data, make_config, make_fake_client


@pytest.fixture(autouse=True)
def _patch_http_provider(monkeypatch):
    """
    Stub every Web3 HTTP call so no DNS / network traffic is triggered.
    Works for all tests because it is autouse.
    """
    def _dummy(self, method, params=None, _=None):
        if method in {"eth_chainId"}:
            return {"jsonrpc": "2.0", "id": 1, "result": "0x2105"}  # base
        if method in {"eth_gasPrice"}:
            return {"jsonrpc": "2.0", "id": 1, "result": "0x3b9aca00"}  # 1 gwei
        return {"jsonrpc": "2.0", "id": 1, "result": "0x0"}

    monkeypatch.setattr(HTTPProvider, "make_request", _dummy, raising=True)


@pytest.fixture(autouse=True)
def _reset_network_cache():
    """Tests may swap the chain catalog; always start from the packaged one"""
    ChainRegistry._networks_cache = None
    yield
    ChainRegistry._networks_cache = None


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DROPKIT_COLLECTION_DIR", str(tmp_path / "collections"))
    monkeypatch.delenv("DROPKIT_CONFIRMATION_TIMEOUT", raising=False)
    monkeypatch.delenv("DROPKIT_PRIVATE_KEY", raising=False)
    monkeypatch.delenv("BASE_RPC_URL", raising=False)
    monkeypatch.delenv("NO_COLOR", raising=False)


@pytest.fixture
def base_chain():
    return ChainRegistry.get_by_name("base")


@pytest.fixture
def signer():
    return LocalSigner(TEST_PRIV_KEY)


@pytest.fixture
def mock_w3():
    """Web3 double with the eth methods ContractClient touches"""
    w3 = MagicMock()
    w3.eth.chain_id = 8453
    w3.eth.gas_price = 1_000_000_000
    w3.eth.get_transaction_count.return_value = 7
    w3.eth.send_raw_transaction.return_value = bytes.fromhex("ab" * 32)
    return w3


@pytest.fixture
def mock_signer():
    signer = MagicMock()
    signer.address = TEST_OWNER
    signer.sign_transaction.return_value = MagicMock(raw_transaction=b"signed_transaction")
    return signer


@pytest.fixture
def client(base_chain, mock_signer, mock_w3):
    client = ContractClient(base_chain, signer=mock_signer, confirmation_timeout=5, poll_interval=0)
    client.w3 = mock_w3
    return client


@pytest.fixture
def fake_client():
    return make_fake_client()


@pytest.fixture
def confirmer():
    confirmer = MagicMock()
    confirmer.confirm.return_value = True
    return confirmer


@pytest.fixture
def store():
    store = ProjectStore("TEST")
    store.create(make_config(erc721_data()))
    return store
