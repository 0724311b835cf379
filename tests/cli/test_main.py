"""
Tests for the dropkit CLI.
"""
import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from dropkit.display import should_use_color
from dropkit.exceptions import TransactionPending
from dropkit.models import DeploymentRecord
from dropkit.store import ProjectStore
from dropkit_cli.main import app

from tests.test_helpers import (
    TEST_CONTRACT,
    TEST_OWNER,
    TEST_PRIV_KEY,
    TEST_RECEIVER,
    erc1155_data,
    make_fake_client,
)

runner = CliRunner()


@pytest.fixture
def fake_build_client():
    client = make_fake_client()
    with patch("dropkit_cli.main.build_client", return_value=client) as mock_build:
        yield mock_build


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("dropkit ")


def test_new_and_show():
    result = runner.invoke(app, ["new", "DROP", "--name", "My Drop", "--env", "base"])
    assert result.exit_code == 0, result.output

    result = runner.invoke(app, ["show", "DROP"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["name"] == "My Drop"
    assert data["chainId"] == 8453
    assert data["tokenStandard"] == "ERC721"


def test_new_from_config_file(tmp_path):
    config_file = tmp_path / "multi.json"
    data = erc1155_data()
    del data["name"], data["symbol"], data["chainId"]
    config_file.write_text(json.dumps(data))

    result = runner.invoke(
        app,
        ["new", "MULTI", "--name", "Multi", "--env", "sepolia", "--standard", "ERC1155", "--config", str(config_file)],
    )

    assert result.exit_code == 0, result.output
    config = ProjectStore("MULTI").read()
    assert config.chain_id == 11155111
    assert config.global_wallet_limit == [0, 5]


def test_new_rejects_invalid_config(tmp_path):
    config_file = tmp_path / "bad.json"
    config_file.write_text(json.dumps({"royaltyFee": 20000, "royaltyReceiver": "0x12"}))

    result = runner.invoke(app, ["new", "BAD", "--name", "Bad", "--env", "base", "--config", str(config_file)])

    assert result.exit_code == 1
    assert "invalid configuration" in result.output
    assert "royaltyFee" in result.output
    assert "royaltyReceiver" in result.output
    assert not ProjectStore("BAD").exists()


def test_new_duplicate(store):
    result = runner.invoke(app, ["new", "TEST", "--name", "Again", "--env", "base"])
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_new_unknown_env():
    result = runner.invoke(app, ["new", "X", "--name", "X", "--env", "nowhere"])
    assert result.exit_code == 1
    assert "Available networks" in result.output


def test_list_empty():
    assert "No projects found." in runner.invoke(app, ["list"]).output


def test_list(store):
    store.save_deployment(DeploymentRecord.now(TEST_CONTRACT, TEST_OWNER))
    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert "TEST" in result.output
    assert TEST_CONTRACT in result.output


def test_show_missing_project():
    result = runner.invoke(app, ["show", "NOPE"])
    assert result.exit_code == 1
    assert "No project found" in result.output


def test_deploy_non_interactive(store, fake_build_client):
    result = runner.invoke(app, ["deploy", "TEST", "--env", "base", "--yes"])

    assert result.exit_code == 0, result.output
    assert "TEST deployed at" in result.output
    assert "policy-wired" in result.output
    fake_build_client.assert_called_once_with(8453, None)
    assert store.read().deployment is not None


def test_deploy_cancelled(store, fake_build_client):
    result = runner.invoke(app, ["deploy", "TEST", "--env", "base"], input="n\n")

    assert result.exit_code == 1
    assert "cancelled" in result.output
    assert store.read().deployment is None


def test_deploy_wrong_env(store, fake_build_client):
    result = runner.invoke(app, ["deploy", "TEST", "--env", "ethereum", "--yes"])

    assert result.exit_code == 1
    assert "configured for chain 8453" in result.output
    fake_build_client.assert_not_called()


def test_deploy_requires_private_key(store):
    result = runner.invoke(app, ["deploy", "TEST", "--env", "base", "--yes"])
    assert result.exit_code == 1
    assert "DROPKIT_PRIVATE_KEY" in result.output


def test_deploy_pending_transaction(store, fake_build_client):
    fake_build_client.return_value.create_contract.side_effect = TransactionPending(
        "Transaction 0xab not confirmed after 120s", tx_hash="0xab"
    )

    result = runner.invoke(app, ["deploy", "TEST", "--env", "base", "--yes"])

    assert result.exit_code == 1
    assert "not confirmed" in result.output


def test_build_client_uses_private_key(monkeypatch):
    monkeypatch.setenv("DROPKIT_PRIVATE_KEY", TEST_PRIV_KEY)
    from dropkit_cli.main import build_client

    client = build_client(8453, "https://rpc.example.com")

    assert client.chain.rpc_url == "https://rpc.example.com"
    assert client.signer is not None


def test_set_mintable(store, fake_build_client):
    store.save_deployment(DeploymentRecord.now(TEST_CONTRACT, TEST_OWNER))

    result = runner.invoke(app, ["set-mintable", "TEST", "false", "--env", "base", "--yes"])

    assert result.exit_code == 0, result.output
    assert store.read().mintable is False


def test_set_royalties(store, fake_build_client):
    store.save_deployment(DeploymentRecord.now(TEST_CONTRACT, TEST_OWNER))

    result = runner.invoke(app, ["set-royalties", "TEST", TEST_RECEIVER, "750", "--env", "base", "--yes"])

    assert result.exit_code == 0, result.output
    assert store.read().royalty_fee == 750
    assert fake_build_client.return_value.send.call_args[0][2:] == ("setDefaultRoyalty", [TEST_RECEIVER, 750])


def test_withdraw(store, fake_build_client):
    store.save_deployment(DeploymentRecord.now(TEST_CONTRACT, TEST_OWNER))

    result = runner.invoke(app, ["withdraw", "TEST", "--env", "base", "--yes"])

    assert result.exit_code == 0, result.output
    assert "1 ETH" in result.output
    assert fake_build_client.return_value.send.call_args[0][2] == "withdraw"


def test_owner_mint_rejects_zero_quantity(store, fake_build_client):
    store.save_deployment(DeploymentRecord.now(TEST_CONTRACT, TEST_OWNER))

    result = runner.invoke(app, ["owner-mint", "TEST", TEST_RECEIVER, "0", "--env", "base", "--yes"])

    assert result.exit_code == 1
    assert "qty: must be between 1 and" in result.output
    fake_build_client.return_value.send.assert_not_called()


def test_init_contract_reports_out_of_range_values(store, fake_build_client):
    store.save_deployment(DeploymentRecord.now(TEST_CONTRACT, TEST_OWNER))
    config = store.read()
    config.max_mintable_supply = -1
    store.write(config)

    result = runner.invoke(app, ["init-contract", "TEST", "--env", "base", "--yes"])

    assert result.exit_code == 1
    assert "invalid configuration" in result.output
    assert "maxMintableSupply: must be between 0 and" in result.output
    fake_build_client.return_value.send.assert_not_called()


def test_freeze_requires_deployment(store, fake_build_client):
    result = runner.invoke(app, ["freeze", "TEST", "--env", "base", "--yes"])
    assert result.exit_code == 1
    assert "run deploy first" in result.output


def test_should_use_color(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    assert should_use_color() is False
    monkeypatch.delenv("NO_COLOR")
    with patch("sys.stdout.isatty", return_value=True):
        assert should_use_color() is True
