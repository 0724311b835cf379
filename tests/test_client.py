"""
Tests for ContractClient.
"""
import pytest
from unittest.mock import MagicMock, PropertyMock, patch
from web3 import Web3
from web3.exceptions import ContractLogicError, MismatchedABI, TimeExhausted

from dropkit.abis import FACTORY_ABI, NEW_CONTRACT_INITIALIZED_TOPIC, collection_abi
from dropkit.client import ContractClient
from dropkit.config import ChainRegistry
from dropkit.exceptions import (
    ChainRpcError,
    ConfigValidationError,
    LogDecodingError,
    LogNotFound,
    TransactionError,
    TransactionFailed,
    TransactionPending,
    UnsupportedChainError,
)
from dropkit.models import LogEntry, TokenStandard

from tests.test_helpers import (
    TEST_CONTRACT,
    TEST_OWNER,
    TEST_TX_HASH,
    creation_log,
    make_outcome,
    make_receipt,
)


def _function_mock(mock_w3, name):
    return getattr(mock_w3.eth.contract.return_value.functions, name).return_value


def test_init_rejects_plain_http(base_chain):
    chain = base_chain.model_copy(update={"rpc_url": "http://rpc.example.com"})
    with pytest.raises(ValueError, match="https://"):
        ContractClient(chain)


def test_init_allows_localhost(base_chain):
    chain = base_chain.model_copy(update={"rpc_url": "http://127.0.0.1:8545"})
    client = ContractClient(chain)
    assert client.w3 is not None


def test_from_chain_id():
    client = ContractClient.from_chain_id(8453, rpc_url="https://rpc.example.com")
    assert client.chain.name == "base"
    assert client.chain.rpc_url == "https://rpc.example.com"


def test_from_chain_id_unsupported():
    with pytest.raises(UnsupportedChainError, match="Unsupported chain ID: 999"):
        ContractClient.from_chain_id(999)


def test_confirmation_timeout_from_env(monkeypatch, base_chain):
    monkeypatch.setenv("DROPKIT_CONFIRMATION_TIMEOUT", "300")
    assert ContractClient(base_chain).confirmation_timeout == 300.0


def test_address_requires_signer(base_chain):
    client = ContractClient(base_chain)
    with pytest.raises(ValueError, match="No signer available"):
        client.address


@pytest.mark.parametrize(
    "tx_hash_input",
    [
        bytes.fromhex("1234567890abcdef" * 4),
        "1234567890abcdef" * 4,
        "0x" + "1234567890abcdef" * 4,
    ],
    ids=["bytes", "hex_without_prefix", "hex_with_prefix"],
)
def test_tx_url_input_formats(client, tx_hash_input):
    assert client.tx_url(tx_hash_input) == "https://basescan.org/tx/0x" + "1234567890abcdef" * 4


def test_address_url(client):
    assert client.address_url(TEST_CONTRACT) == f"https://basescan.org/address/{TEST_CONTRACT}"


class TestAssertChainId:

    def test_matching(self, client):
        client.assert_chain_id()

    def test_mismatch(self, client, mock_w3):
        mock_w3.eth.chain_id = 1
        with pytest.raises(ChainRpcError, match="Chain ID mismatch"):
            client.assert_chain_id()

    def test_rpc_error(self, client, mock_w3):
        type(mock_w3.eth).chain_id = PropertyMock(side_effect=Exception("RPC error"))
        with pytest.raises(ChainRpcError, match="Failed to validate chain ID"):
            client.assert_chain_id()


class TestSend:

    def test_successful_send(self, client, mock_w3, mock_signer):
        fn = _function_mock(mock_w3, "createContract")
        fn.estimate_gas.return_value = 100000
        fn.build_transaction.return_value = {"to": TEST_CONTRACT, "data": "0x"}
        mock_w3.eth.wait_for_transaction_receipt.return_value = make_receipt()

        outcome = client.send(TEST_CONTRACT, FACTORY_ABI, "createContract", ["n", "s", 0, TEST_OWNER, 0], value=5)

        assert outcome.success
        assert outcome.tx_hash == TEST_TX_HASH
        assert outcome.explorer_url == f"https://basescan.org/tx/{TEST_TX_HASH}"
        tx_params = fn.build_transaction.call_args[0][0]
        assert tx_params["gas"] == 110000
        assert tx_params["nonce"] == 7
        assert tx_params["value"] == 5
        assert tx_params["chainId"] == 8453
        # base prices with EIP-1559 defaults
        assert "gasPrice" not in tx_params
        mock_signer.sign_transaction.assert_called_once_with({"to": TEST_CONTRACT, "data": "0x"})
        mock_w3.eth.send_raw_transaction.assert_called_once_with(b"signed_transaction")
        mock_w3.eth.wait_for_transaction_receipt.assert_called_once_with(
            TEST_TX_HASH, timeout=5, poll_latency=0
        )

    def test_explicit_gas_skips_estimation(self, client, mock_w3):
        fn = _function_mock(mock_w3, "setTransferable")
        mock_w3.eth.wait_for_transaction_receipt.return_value = make_receipt()

        client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", [False], gas=50000)

        fn.estimate_gas.assert_not_called()
        assert fn.build_transaction.call_args[0][0]["gas"] == 50000

    def test_estimation_failure_uses_default_gas(self, client, mock_w3):
        fn = _function_mock(mock_w3, "setTransferable")
        fn.estimate_gas.side_effect = Exception("node does not support estimation")
        mock_w3.eth.wait_for_transaction_receipt.return_value = make_receipt()

        client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", [False])

        assert fn.build_transaction.call_args[0][0]["gas"] == ContractClient.DEFAULT_GAS_LIMIT

    def test_revert_during_estimation_is_not_broadcast(self, client, mock_w3):
        fn = _function_mock(mock_w3, "setTransferable")
        fn.estimate_gas.side_effect = ContractLogicError("execution reverted: Ownable")

        with pytest.raises(TransactionFailed, match="would revert"):
            client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", [False])

        mock_w3.eth.send_raw_transaction.assert_not_called()

    def test_legacy_gas_chain_uses_gas_price(self, mock_w3, mock_signer):
        client = ContractClient(ChainRegistry.get_by_name("abstract"), signer=mock_signer)
        client.w3 = mock_w3
        fn = _function_mock(mock_w3, "setTransferable")
        fn.estimate_gas.return_value = 1000
        mock_w3.eth.wait_for_transaction_receipt.return_value = make_receipt()

        client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", [False])

        assert fn.build_transaction.call_args[0][0]["gasPrice"] == 1_000_000_000

    def test_gas_price_override(self, client, mock_w3):
        fn = _function_mock(mock_w3, "setTransferable")
        fn.estimate_gas.return_value = 1000
        mock_w3.eth.wait_for_transaction_receipt.return_value = make_receipt()

        client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", [False], gas_price=42)

        assert fn.build_transaction.call_args[0][0]["gasPrice"] == 42

    def test_signing_failure(self, client, mock_w3, mock_signer):
        _function_mock(mock_w3, "setTransferable").estimate_gas.return_value = 1000
        mock_signer.sign_transaction.side_effect = ValueError("Signing failed deliberately")

        with pytest.raises(TransactionError, match="Failed to sign transaction"):
            client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", [False])

    def test_broadcast_failure(self, client, mock_w3):
        _function_mock(mock_w3, "setTransferable").estimate_gas.return_value = 1000
        mock_w3.eth.send_raw_transaction.side_effect = Exception("nonce too low")

        with pytest.raises(TransactionError, match="nonce too low"):
            client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", [False])

    def test_reverted_receipt(self, client, mock_w3):
        _function_mock(mock_w3, "setTransferable").estimate_gas.return_value = 1000
        mock_w3.eth.wait_for_transaction_receipt.return_value = make_receipt(status=0)

        with pytest.raises(TransactionFailed) as exc_info:
            client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", [False])

        assert exc_info.value.tx_hash == TEST_TX_HASH
        assert exc_info.value.outcome.status == 0

    def test_confirmation_deadline(self, client, mock_w3):
        _function_mock(mock_w3, "setTransferable").estimate_gas.return_value = 1000
        mock_w3.eth.wait_for_transaction_receipt.side_effect = TimeExhausted("timed out")

        with pytest.raises(TransactionPending) as exc_info:
            client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", [False])

        assert exc_info.value.tx_hash == TEST_TX_HASH
        assert "check" in str(exc_info.value)

    def test_out_of_range_argument_is_config_error(self, base_chain, mock_signer):
        # real web3 contract binding, nothing reaches the RPC
        client = ContractClient(base_chain, signer=mock_signer)

        with pytest.raises(ConfigValidationError) as exc_info:
            client.send(TEST_CONTRACT, collection_abi(False), "setMaxMintableSupply", [-1])

        assert exc_info.value.errors[0].startswith("setMaxMintableSupply:")
        mock_signer.sign_transaction.assert_not_called()

    def test_abi_mismatch_is_not_broadcast(self, client, mock_w3):
        mock_w3.eth.contract.return_value.functions.setTransferable.side_effect = MismatchedABI("bad args")

        with pytest.raises(ConfigValidationError, match="setTransferable: bad args"):
            client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", ["yes"])

        mock_w3.eth.send_raw_transaction.assert_not_called()

    def test_send_without_signer(self, base_chain):
        client = ContractClient(base_chain)
        with pytest.raises(ValueError, match="No signer available"):
            client.send(TEST_CONTRACT, FACTORY_ABI, "setTransferable", [False])


def test_convert_receipt_decodes_logs(client):
    receipt = make_receipt(
        logs=[
            {
                "address": TEST_CONTRACT,
                "topics": [bytes.fromhex(NEW_CONTRACT_INITIALIZED_TOPIC[2:])],
                "data": bytes.fromhex("00" * 12 + "22" * 20),
            }
        ]
    )
    outcome = client._convert_receipt(receipt)

    assert outcome.block_number == 10
    assert outcome.gas_used == 123456
    assert outcome.logs[0].topics == [NEW_CONTRACT_INITIALIZED_TOPIC]
    assert outcome.logs[0].data == "0x" + "00" * 12 + "22" * 20


class TestExtractAddressFromLog:

    def test_finds_creation_log(self):
        outcome = make_outcome(logs=[creation_log()])
        assert ContractClient.extract_address_from_log(outcome) == Web3.to_checksum_address(TEST_CONTRACT)

    def test_skips_unrelated_logs(self):
        unrelated = LogEntry(
            address=TEST_CONTRACT,
            topics=["0x" + "99" * 32],
            data="0x" + "00" * 12 + "44" * 20,
        )
        outcome = make_outcome(logs=[unrelated, creation_log()])
        assert ContractClient.extract_address_from_log(outcome) == Web3.to_checksum_address(TEST_CONTRACT)

    def test_topic_matching_is_case_insensitive(self):
        log = creation_log()
        upper = log.model_copy(update={"topics": [NEW_CONTRACT_INITIALIZED_TOPIC.upper().replace("0X", "0x")]})
        assert ContractClient.extract_address_from_log(make_outcome(logs=[upper]))

    def test_not_found(self):
        with pytest.raises(LogNotFound):
            ContractClient.extract_address_from_log(make_outcome(logs=[]))

    def test_short_data(self):
        log = LogEntry(address=TEST_CONTRACT, topics=[NEW_CONTRACT_INITIALIZED_TOPIC], data="0x1234")
        with pytest.raises(LogDecodingError):
            ContractClient.extract_address_from_log(make_outcome(logs=[log]))


class TestContractHelpers:

    def test_call_wraps_rpc_errors(self, client, mock_w3):
        _function_mock(mock_w3, "getDeploymentFee").call.side_effect = ContractLogicError("revert")
        with pytest.raises(ChainRpcError):
            client.get_deployment_fee(TokenStandard.ERC721, 0)

    def test_get_deployment_fee(self, client, mock_w3):
        functions = mock_w3.eth.contract.return_value.functions
        functions.getDeploymentFee.return_value.call.return_value = 12345

        assert client.get_deployment_fee(TokenStandard.ERC1155, 0) == 12345
        functions.getDeploymentFee.assert_called_once_with(1, 0)
        assert mock_w3.eth.contract.call_args.kwargs["address"] == Web3.to_checksum_address(
            client.chain.registry_address
        )

    def test_supports_interface(self, client, mock_w3):
        functions = mock_w3.eth.contract.return_value.functions
        functions.supportsInterface.return_value.call.return_value = True

        assert client.supports_interface(TEST_CONTRACT) is True
        functions.supportsInterface.assert_called_once_with(bytes.fromhex("ad0d7f6c"))

    def test_supports_interface_rpc_failure_is_false(self, client, mock_w3):
        _function_mock(mock_w3, "supportsInterface").call.side_effect = ContractLogicError("no ERC165")
        assert client.supports_interface(TEST_CONTRACT) is False

    def test_create_contract(self, client, mock_w3):
        fn = _function_mock(mock_w3, "createContract")
        fn.estimate_gas.return_value = 1000
        receipt = make_receipt(
            logs=[{"address": TEST_CONTRACT, "topics": creation_log().topics, "data": creation_log().data}]
        )
        mock_w3.eth.wait_for_transaction_receipt.return_value = receipt

        outcome, address = client.create_contract("Test", "TEST", TokenStandard.ERC721, TEST_OWNER, 5, fee=7)

        assert address == Web3.to_checksum_address(TEST_CONTRACT)
        functions = mock_w3.eth.contract.return_value.functions
        functions.createContract.assert_called_once_with("Test", "TEST", 0, TEST_OWNER, 5)
        assert fn.build_transaction.call_args[0][0]["value"] == 7

    def test_apply_list_to_collection_targets_validator(self, client, mock_w3):
        _function_mock(mock_w3, "applyListToCollection").estimate_gas.return_value = 1000
        mock_w3.eth.wait_for_transaction_receipt.return_value = make_receipt()

        client.apply_list_to_collection(client.chain.default_transfer_validator, TEST_CONTRACT, 1)

        assert mock_w3.eth.contract.call_args.kwargs["address"] == Web3.to_checksum_address(
            client.chain.default_transfer_validator
        )
        mock_w3.eth.contract.return_value.functions.applyListToCollection.assert_called_once_with(TEST_CONTRACT, 1)

    def test_get_balance(self, client, mock_w3):
        mock_w3.eth.get_balance.return_value = 10**18
        assert client.get_balance() == 10**18
        mock_w3.eth.get_balance.assert_called_once_with(TEST_OWNER)
