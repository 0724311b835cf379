"""
ContractClient - uniform transaction submission across the supported chains.
"""
import logging
import urllib.parse
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception
from web3.types import TxReceipt as Web3TxReceipt

from .abis import (
    FACTORY_ABI,
    ICREATOR_TOKEN_INTERFACE_ID,
    NEW_CONTRACT_INITIALIZED_TOPIC,
    REGISTRY_ABI,
    TRANSFER_VALIDATOR_ABI,
    collection_abi,
)
from .config import ChainDescriptor, ChainRegistry, get_confirmation_timeout
from .exceptions import (
    ChainRpcError,
    ConfigValidationError,
    LogDecodingError,
    LogNotFound,
    TransactionError,
    TransactionFailed,
    TransactionPending,
)
from .models import LogEntry, TokenStandard, TxOutcome
from .signer import Signer

Abi = List[Dict[str, Any]]


def _to_hex(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


def _validate_rpc_url(url: str) -> None:
    parsed = urllib.parse.urlparse(url)
    host = parsed.netloc.split(":")[0]
    is_local = host in ("localhost", "127.0.0.1")
    if parsed.scheme != "https" and not is_local:
        raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")


class ContractClient:
    """
    Client bound to one chain from the registry.

    Handles:
    1. Read-only contract calls (fees, capability probes, setup lock)
    2. Building, signing and broadcasting transactions
    3. Waiting for receipts and decoding their logs
    """

    DEFAULT_GAS_LIMIT = 3_000_000
    GAS_BUFFER = 1.1

    def __init__(
        self,
        chain: ChainDescriptor,
        signer: Optional[Signer] = None,
        retry_count: int = 3,
        timeout: int = 30,
        confirmation_timeout: Optional[float] = None,
        poll_interval: float = 1.0,
        gas_price: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the ContractClient

        Args:
            chain: Descriptor of the chain to talk to
            signer: Signer for state-changing transactions (optional for read-only use)
            retry_count: Number of retries for RPC HTTP requests
            timeout: Timeout for RPC HTTP requests in seconds
            confirmation_timeout: Seconds to wait for a receipt before giving up
                (defaults to DROPKIT_CONFIRMATION_TIMEOUT or 120)
            poll_interval: Seconds between receipt polls
            gas_price: Legacy gas price override in wei applied to every send
            logger: Optional logger instance

        Raises:
            ValueError: If the RPC URL is not https (unless localhost/127.0.0.1)
        """
        _validate_rpc_url(chain.rpc_url)

        self.chain = chain
        self.signer = signer
        self.logger = logger or logging.getLogger(__name__)
        self.confirmation_timeout = (
            confirmation_timeout if confirmation_timeout is not None else get_confirmation_timeout()
        )
        self.poll_interval = poll_interval
        self.gas_price = gas_price

        self.session = requests.Session()
        retries = Retry(
            total=retry_count,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET", "POST"],
            raise_on_status=False,
            connect=retry_count,
            read=retry_count,
        )
        self.session.mount("http://", HTTPAdapter(max_retries=retries))
        self.session.mount("https://", HTTPAdapter(max_retries=retries))

        self.w3 = Web3(
            Web3.HTTPProvider(chain.rpc_url, request_kwargs={"timeout": timeout}, session=self.session)
        )

    @classmethod
    def from_chain_id(
        cls,
        chain_id: int,
        signer: Optional[Signer] = None,
        rpc_url: Optional[str] = None,
        **kwargs: Any,
    ) -> "ContractClient":
        """
        Create a client for a chain id from the registry.

        Raises:
            UnsupportedChainError: If the chain id is not in the registry
        """
        chain = ChainRegistry.get_chain(chain_id, rpc_url)
        return cls(chain, signer=signer, **kwargs)

    @property
    def address(self) -> str:
        """
        Address of the signer

        Raises:
            ValueError: If no signer is available
        """
        if self.signer is None:
            raise ValueError("No signer available")
        return self.signer.address

    def tx_url(self, tx_hash: Union[str, bytes]) -> str:
        return self.chain.tx_url(tx_hash)

    def address_url(self, address: str) -> str:
        return self.chain.address_url(address)

    def assert_chain_id(self) -> None:
        """
        Verify that the RPC endpoint serves the expected chain.

        Raises:
            ChainRpcError: On mismatch or if the chain id cannot be read
        """
        try:
            actual = self.w3.eth.chain_id
        except Exception as e:
            raise ChainRpcError(f"Failed to validate chain ID: {e}") from e
        if actual != self.chain.chain_id:
            raise ChainRpcError(
                f"Chain ID mismatch: expected {self.chain.chain_id} ({self.chain.name}), "
                f"RPC endpoint reports {actual}"
            )

    def contract(self, address: str, abi: Abi):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    def call(self, address: str, abi: Abi, fn_name: str, *args: Any) -> Any:
        """
        Execute a read-only contract call.

        Raises:
            ChainRpcError: If the RPC request fails or the call reverts
        """
        self.logger.debug(f"eth_call {fn_name}{args} on {address}")
        try:
            fn = getattr(self.contract(address, abi).functions, fn_name)
            return fn(*args).call()
        except (Web3Exception, requests.RequestException) as e:
            self.logger.error(f"Call {fn_name} on {address} failed: {e}")
            raise ChainRpcError(f"Call {fn_name} on {address} failed: {e}") from e

    def send(
        self,
        address: str,
        abi: Abi,
        fn_name: str,
        args: Sequence[Any] = (),
        value: int = 0,
        gas: Optional[int] = None,
        gas_price: Optional[int] = None,
    ) -> TxOutcome:
        """
        Submit a state-changing transaction and block until it is confirmed.

        Args:
            address: Target contract address
            abi: ABI fragments containing the function
            fn_name: Function name
            args: Positional function arguments
            value: Native token value in wei
            gas: Gas limit (estimated with a 10% buffer when omitted)
            gas_price: Legacy gas price override in wei

        Returns:
            Confirmed TxOutcome with decoded logs and explorer URL

        Raises:
            ConfigValidationError: If the arguments do not fit the function's ABI types
            TransactionFailed: If the call would revert or the receipt reports failure
            TransactionPending: If no receipt arrives before the confirmation deadline
            TransactionError: If signing or broadcasting fails
            ChainRpcError: If the RPC endpoint fails while preparing the transaction
        """
        from_address = self.address
        try:
            fn = getattr(self.contract(address, abi).functions, fn_name)(*args)
        except Web3Exception as e:
            self.logger.error(f"Arguments for {fn_name} do not match its ABI: {e}")
            raise ConfigValidationError([f"{fn_name}: {e}"]) from e

        try:
            nonce = self.w3.eth.get_transaction_count(from_address)
        except (Web3Exception, requests.RequestException) as e:
            raise ChainRpcError(f"Failed to fetch nonce for {from_address}: {e}") from e

        if gas is None:
            gas = self._estimate_gas(fn, fn_name, from_address, value)

        tx_params: Dict[str, Any] = {
            "from": from_address,
            "nonce": nonce,
            "gas": gas,
            "value": value,
            "chainId": self.chain.chain_id,
        }
        if gas_price is None:
            gas_price = self.gas_price
        try:
            if gas_price is not None:
                tx_params["gasPrice"] = gas_price
            elif self.chain.legacy_gas:
                tx_params["gasPrice"] = self.w3.eth.gas_price
            tx = fn.build_transaction(tx_params)
        except (Web3Exception, requests.RequestException) as e:
            raise ChainRpcError(f"Failed to build {fn_name} transaction: {e}") from e

        try:
            signed_tx = self.signer.sign_transaction(tx)
        except Exception as e:
            self.logger.error(f"Transaction signing failed: {e}")
            raise TransactionError(f"Failed to sign transaction: {e}") from e

        try:
            raw_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        except Exception as e:
            self.logger.error(f"Failed to send transaction: {e}")
            raise TransactionError(f"Failed to send transaction: {e}") from e

        tx_hash = _to_hex(raw_hash)
        self.logger.info(f"Transaction sent: {tx_hash} ({self.tx_url(tx_hash)})")
        return self.wait_for_outcome(tx_hash)

    def _estimate_gas(self, fn, fn_name: str, from_address: str, value: int) -> int:
        try:
            estimate = fn.estimate_gas({"from": from_address, "value": value})
        except ContractLogicError as e:
            self.logger.error(f"{fn_name} would revert: {e}")
            raise TransactionFailed(f"{fn_name} would revert: {e}") from e
        except Exception as e:
            self.logger.warning(f"Gas estimation failed, using default: {self.DEFAULT_GAS_LIMIT}. Error: {e}")
            return self.DEFAULT_GAS_LIMIT
        gas = int(estimate * self.GAS_BUFFER)
        self.logger.debug(f"Estimated gas for {fn_name}: {gas}")
        return gas

    def wait_for_outcome(self, tx_hash: str) -> TxOutcome:
        """
        Wait for a receipt and convert it.

        Raises:
            TransactionPending: If the deadline elapses first
            TransactionFailed: If the receipt status is not success
        """
        try:
            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self.confirmation_timeout,
                poll_latency=self.poll_interval,
            )
        except TimeExhausted as e:
            raise TransactionPending(
                f"Transaction {tx_hash} not confirmed after {self.confirmation_timeout}s, "
                f"check {self.tx_url(tx_hash)} later",
                tx_hash=tx_hash,
            ) from e

        outcome = self._convert_receipt(receipt)
        if not outcome.success:
            self.logger.error(f"Transaction reverted: {outcome.tx_hash}")
            raise TransactionFailed(
                f"Transaction {outcome.tx_hash} failed: {outcome.explorer_url}",
                tx_hash=outcome.tx_hash,
                outcome=outcome,
            )
        return outcome

    def _convert_receipt(self, web3_receipt: Web3TxReceipt) -> TxOutcome:
        """
        Convert a Web3 receipt to our TxOutcome model
        """
        receipt_dict = dict(web3_receipt)
        tx_hash = _to_hex(receipt_dict["transactionHash"])
        logs = [
            LogEntry(
                address=log["address"],
                topics=[_to_hex(topic) for topic in log.get("topics", [])],
                data=_to_hex(log.get("data", "0x")),
            )
            for log in receipt_dict.get("logs", [])
        ]
        return TxOutcome(
            tx_hash=tx_hash,
            status=receipt_dict.get("status", 0),
            block_number=receipt_dict.get("blockNumber"),
            gas_used=receipt_dict.get("gasUsed"),
            logs=logs,
            explorer_url=self.tx_url(tx_hash),
        )

    @staticmethod
    def extract_address_from_log(outcome: TxOutcome, topic: str = NEW_CONTRACT_INITIALIZED_TOPIC) -> str:
        """
        Decode the address in the first data word of the first log carrying ``topic``.

        Unrelated logs in the same receipt are skipped.

        Raises:
            LogNotFound: If no log carries the topic
            LogDecodingError: If the matching log's data is too short
        """
        wanted = topic.lower()
        for log in outcome.logs:
            if not any(t.lower() == wanted for t in log.topics):
                continue
            data = log.data[2:] if log.data.startswith("0x") else log.data
            if len(data) < 64:
                raise LogDecodingError(f"Log data too short to hold an address: {log.data}")
            return Web3.to_checksum_address("0x" + data[24:64])
        raise LogNotFound(f"No log with topic {topic} in transaction {outcome.tx_hash}")

    # Contract helpers

    def get_deployment_fee(self, standard: TokenStandard, impl_id: int) -> int:
        return self.call(
            self.chain.registry_address, REGISTRY_ABI, "getDeploymentFee", standard.standard_id, impl_id
        )

    def supports_interface(self, address: str, interface_id: str = ICREATOR_TOKEN_INTERFACE_ID) -> bool:
        """ERC165 probe; an RPC failure counts as unsupported"""
        try:
            return bool(
                self.call(address, collection_abi(False), "supportsInterface", bytes.fromhex(interface_id[2:]))
            )
        except ChainRpcError as e:
            self.logger.warning(f"supportsInterface({interface_id}) failed on {address}: {e}")
            return False

    def is_setup_locked(self, address: str, is_multi_token: bool = False) -> bool:
        return bool(self.call(address, collection_abi(is_multi_token), "isSetupLocked"))

    def create_contract(
        self,
        name: str,
        symbol: str,
        standard: TokenStandard,
        initial_owner: str,
        impl_id: int,
        fee: int = 0,
    ) -> Tuple[TxOutcome, str]:
        """
        Clone a new collection through the factory.

        Returns:
            The confirmed outcome and the new contract address
        """
        outcome = self.send(
            self.chain.factory_address,
            FACTORY_ABI,
            "createContract",
            [name, symbol, standard.standard_id, Web3.to_checksum_address(initial_owner), impl_id],
            value=fee,
        )
        return outcome, self.extract_address_from_log(outcome)

    def set_transfer_validator(self, collection: str, validator: str) -> TxOutcome:
        return self.send(
            collection, collection_abi(False), "setTransferValidator", [Web3.to_checksum_address(validator)]
        )

    def apply_list_to_collection(self, validator: str, collection: str, list_id: int) -> TxOutcome:
        return self.send(
            validator,
            TRANSFER_VALIDATOR_ABI,
            "applyListToCollection",
            [Web3.to_checksum_address(collection), list_id],
        )

    def set_transferable(self, collection: str, transferable: bool) -> TxOutcome:
        return self.send(collection, collection_abi(False), "setTransferable", [transferable])

    def get_balance(self, address: Optional[str] = None) -> int:
        """Native balance in wei, of the signer by default"""
        target = Web3.to_checksum_address(address or self.address)
        try:
            return self.w3.eth.get_balance(target)
        except (Web3Exception, requests.RequestException) as e:
            raise ChainRpcError(f"Failed to fetch balance of {target}: {e}") from e
