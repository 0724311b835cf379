"""
Post-deploy management of a collection.

Each action is one confirmed transaction; on success the changed field is
written back to the project file so the stored config tracks the contract.
"""
from typing import Any, List, Optional, Sequence

from web3 import Web3

from .abis import collection_abi
from .display import show_text
from .exceptions import ConfigValidationError
from .models import CollectionConfig, TxOutcome
from .orchestrator import CollectionAction, WorkflowContext
from .stages import ResolvedStage, StageResolver
from .validation import MAX_ROYALTY_BPS, UINT32_MAX, UINT256_MAX, check_range, config_errors


class CollectionManager(CollectionAction):
    """Setters for a deployed collection"""

    def _send(
        self,
        context: WorkflowContext,
        message: str,
        config: CollectionConfig,
        address: str,
        fn_name: str,
        args: Sequence[Any],
    ) -> TxOutcome:
        self._confirm(context, message)
        outcome = self.client.send(address, collection_abi(config.is_multi_token), fn_name, list(args))
        return self._record(None, outcome)

    def _persist(self, **changes: Any) -> None:
        config = self.store.read()
        for name, value in changes.items():
            setattr(config, name, value)
        self.store.write(config)
        self.logger.info(f"Updated {', '.join(changes)} of {config.symbol}")

    @staticmethod
    def _require_erc721(config: CollectionConfig, action: str) -> None:
        if config.is_multi_token:
            raise ConfigValidationError([f"{action} is only supported for ERC721 collections"])

    @staticmethod
    def _token_index(config: CollectionConfig, token_id: Optional[int]) -> int:
        if token_id is None:
            raise ConfigValidationError(["tokenId: required for ERC1155 collections"])
        count = config.token_count or 0
        if not 0 <= token_id < count:
            raise ConfigValidationError([f"tokenId: {token_id} is out of range (collection has {count} token ids)"])
        return token_id

    @staticmethod
    def _check_address(field: str, value: str) -> str:
        if not (value.startswith("0x") and Web3.is_address(value)):
            raise ConfigValidationError([f"{field}: invalid address {value!r}"])
        return Web3.to_checksum_address(value)

    def set_stages(self, context: Optional[WorkflowContext] = None) -> List[ResolvedStage]:
        """Replace the on-chain stages with the stored ones"""
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        errors = [e for e in config_errors(config, for_setup=True) if e.startswith(("stages", "totalTokens"))]
        if errors:
            raise ConfigValidationError(errors)

        show_text(f"Setting stages for {config.token_standard.value} collection...")
        resolved = StageResolver(self.store, self.compiler, self.logger).resolve(config)
        self._send(
            context,
            f"Set {len(resolved)} stages on {address}?",
            config,
            address,
            "setStages",
            [[stage.args for stage in resolved]],
        )
        return resolved

    def set_cosigner(self, cosigner: str, context: Optional[WorkflowContext] = None) -> TxOutcome:
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        self._require_erc721(config, "set-cosigner")
        cosigner = self._check_address("cosigner", cosigner)
        outcome = self._send(context, f"Set cosigner to {cosigner}?", config, address, "setCosigner", [cosigner])
        self._persist(cosigner=cosigner)
        return outcome

    def set_mintable(self, mintable: bool, context: Optional[WorkflowContext] = None) -> TxOutcome:
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        outcome = self._send(context, f"Set mintable to {mintable}?", config, address, "setMintable", [mintable])
        self._persist(mintable=mintable)
        return outcome

    def set_uri(self, uri: str, context: Optional[WorkflowContext] = None) -> TxOutcome:
        """Base URI for ERC721, token URI template for ERC1155"""
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        fn_name = "setURI" if config.is_multi_token else "setBaseURI"
        outcome = self._send(context, f"Set URI to {uri}?", config, address, fn_name, [uri])
        self._persist(uri=uri)
        return outcome

    def set_token_uri_suffix(self, suffix: str, context: Optional[WorkflowContext] = None) -> TxOutcome:
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        self._require_erc721(config, "set-token-uri-suffix")
        outcome = self._send(
            context, f"Set token URI suffix to {suffix!r}?", config, address, "setTokenURISuffix", [suffix]
        )
        self._persist(token_uri_suffix=suffix)
        return outcome

    def _set_per_token_limit(
        self,
        field: str,
        fn_name: str,
        value: int,
        token_id: Optional[int],
        context: Optional[WorkflowContext],
    ) -> TxOutcome:
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        errors: List[str] = []
        check_range(errors, field, value, UINT256_MAX)
        if errors:
            raise ConfigValidationError(errors)

        if config.is_multi_token:
            index = self._token_index(config, token_id)
            args = [index, value]
            current = getattr(config, field)
            updated = list(current) if isinstance(current, list) else [0] * (config.token_count or 0)
            updated[index] = value
            message = f"Set {field} of token {index} to {value}?"
        else:
            args = [value]
            updated = value
            message = f"Set {field} to {value}?"

        outcome = self._send(context, message, config, address, fn_name, args)
        self._persist(**{field: updated})
        return outcome

    def set_global_wallet_limit(
        self, limit: int, token_id: Optional[int] = None, context: Optional[WorkflowContext] = None
    ) -> TxOutcome:
        return self._set_per_token_limit("global_wallet_limit", "setGlobalWalletLimit", limit, token_id, context)

    def set_max_mintable_supply(
        self, supply: int, token_id: Optional[int] = None, context: Optional[WorkflowContext] = None
    ) -> TxOutcome:
        return self._set_per_token_limit("max_mintable_supply", "setMaxMintableSupply", supply, token_id, context)

    def transfer_ownership(self, new_owner: str, context: Optional[WorkflowContext] = None) -> TxOutcome:
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        new_owner = self._check_address("newOwner", new_owner)
        show_text("WARNING: This action will transfer ownership of the contract to a new owner.")
        show_text("Please triple check the new owner's address before proceeding!")
        outcome = self._send(
            context,
            f"You are about to transfer ownership of {config.name} to {new_owner}. Do you want to proceed?",
            config,
            address,
            "transferOwnership",
            [new_owner],
        )
        show_text(f"Ownership transferred to {new_owner}.")
        return outcome

    def set_royalties(self, receiver: str, fee: int, context: Optional[WorkflowContext] = None) -> TxOutcome:
        """Default ERC2981 royalty, ``fee`` in basis points"""
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        receiver = self._check_address("royaltyReceiver", receiver)
        if not 0 <= fee <= MAX_ROYALTY_BPS:
            raise ConfigValidationError([f"royaltyFee: must be between 0 and {MAX_ROYALTY_BPS} basis points"])
        outcome = self._send(
            context,
            f"Set royalties to {fee / 100}% paid to {receiver}?",
            config,
            address,
            "setDefaultRoyalty",
            [receiver, fee],
        )
        self._persist(royalty_receiver=receiver, royalty_fee=fee)
        return outcome

    def withdraw_balance(self, context: Optional[WorkflowContext] = None) -> Optional[TxOutcome]:
        """
        Withdraw the contract's whole native balance to its owner.

        Returns:
            The withdrawal outcome, or None if there was nothing to withdraw
        """
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        balance = self.client.get_balance(address)
        if balance == 0:
            show_text("Contract has no balance to withdraw.")
            return None

        amount = f"{Web3.from_wei(balance, 'ether')} {self.client.chain.native_symbol}"
        show_text(f"You're about to withdraw contract balance: {amount}")
        outcome = self._send(context, "Do you want to withdraw the entire balance?", config, address, "withdraw", [])
        self.logger.info(f"Withdrew {amount} from {config.symbol}")
        return outcome

    def owner_mint(
        self,
        receiver: str,
        quantity: int,
        token_id: Optional[int] = None,
        context: Optional[WorkflowContext] = None,
    ) -> TxOutcome:
        """Mint as the owner, bypassing stages and price"""
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        receiver = self._check_address("receiver", receiver)
        if not 0 < quantity <= UINT32_MAX:
            raise ConfigValidationError([f"qty: must be between 1 and {UINT32_MAX}"])

        if config.is_multi_token:
            index = self._token_index(config, token_id)
            message = f"Mint {quantity} of token {index} to {receiver}?"
            args: List[Any] = [receiver, index, quantity]
        else:
            message = f"Mint {quantity} token(s) to {receiver}?"
            args = [quantity, receiver]
        return self._send(context, message, config, address, "ownerMint", args)
