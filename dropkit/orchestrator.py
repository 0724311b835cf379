"""
DeploymentOrchestrator - deploy and configure a collection step by step.

The workflow is linear with optional skips:

    Draft -> Deployed -> CapabilityDetected -> [PolicyWired] -> [Frozen] -> [Configured]

Every step that writes to the chain is confirmed before broadcast and either
completes (receipt confirmed, state persisted) or raises, halting the
workflow. Nothing is retried or rolled back; the next invocation resumes from
what the project store last recorded.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from web3 import Web3

from .abis import collection_abi
from .allowlist import AllowlistCompiler
from .client import ContractClient
from .config import ChainDescriptor
from .display import collapse_address, format_summary, print_transaction, show_text
from .exceptions import (
    AlreadyDeployedError,
    ConfigValidationError,
    ContractNotDeployedError,
    OperationCancelled,
    SetupLockedError,
)
from .models import CollectionConfig, DeploymentRecord, TxOutcome
from .stages import ResolvedStage, StageResolver, build_setup_args
from .store import ProjectStore
from .validation import validate_config


class WorkflowState(str, Enum):
    DRAFT = "draft"
    DEPLOYED = "deployed"
    CAPABILITY_DETECTED = "capability-detected"
    POLICY_WIRED = "policy-wired"
    FROZEN = "frozen"
    CONFIGURED = "configured"


class SetupOption(str, Enum):
    """When to run the one-time setup after deploying"""
    YES = "yes"
    NO = "no"
    DEFERRED = "deferred"


@dataclass(frozen=True)
class WorkflowContext:
    """
    Operator answers for one invocation.

    ``freeze`` of None means ask; ``assume_yes`` approves the mandatory
    confirmation gates without prompting but never opts into optional steps.
    """
    setup: SetupOption = SetupOption.DEFERRED
    freeze: Optional[bool] = None
    assume_yes: bool = False
    fund_receiver: Optional[str] = None


class Confirmer(Protocol):
    """Asks the operator to approve a step"""

    def confirm(self, message: str, summary: Optional[str] = None, default: bool = False) -> bool:
        ...


@dataclass
class SetupResult:
    outcome: TxOutcome
    stages: List[ResolvedStage]


@dataclass
class DeploymentResult:
    contract_address: str
    states: List[WorkflowState] = field(default_factory=lambda: [WorkflowState.DRAFT])
    transactions: List[TxOutcome] = field(default_factory=list)
    supports_transfer_policy: bool = False
    setup: Optional[SetupResult] = None

    @property
    def state(self) -> WorkflowState:
        return self.states[-1]


def select_impl_id(config: CollectionConfig, chain: ChainDescriptor) -> int:
    """Factory implementation id: the chain's ERC721C clone when requested, else the default"""
    if not config.is_multi_token and config.use_erc721c:
        return chain.erc721c_impl_id
    return 0


class CollectionAction:
    """Shared plumbing for actions on one stored collection: load, confirm, send, report"""

    def __init__(
        self,
        client: ContractClient,
        store: ProjectStore,
        confirmer: Confirmer,
        compiler: Optional[AllowlistCompiler] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.store = store
        self.confirmer = confirmer
        self.compiler = compiler or AllowlistCompiler()
        self.logger = logger or logging.getLogger(__name__)

    def _confirm(self, context: WorkflowContext, message: str, summary: Optional[str] = None) -> None:
        """
        Mandatory gate before a chain write.

        Raises:
            OperationCancelled: If the operator declines
        """
        if context.assume_yes:
            if summary:
                show_text(summary)
            return
        if not self.confirmer.confirm(message, summary=summary, default=False):
            self.logger.info(f"Operator declined: {message}")
            raise OperationCancelled("Operation cancelled, nothing was sent")

    def _ask(self, context: WorkflowContext, message: str, default: bool = True) -> bool:
        """Optional step prompt; never opted into non-interactively"""
        if context.assume_yes:
            return False
        return self.confirmer.confirm(message, default=default)

    def _record(self, result: Optional[DeploymentResult], outcome: TxOutcome) -> TxOutcome:
        print_transaction(outcome.explorer_url, outcome.tx_hash)
        if result is not None:
            result.transactions.append(outcome)
        return outcome

    def _load(self) -> CollectionConfig:
        config = self.store.read()
        if config.chain_id != self.client.chain.chain_id:
            raise ConfigValidationError(
                [f"chainId: collection is on chain {config.chain_id}, client is bound to {self.client.chain.chain_id}"]
            )
        return config

    def _deployed_address(self, contract_address: Optional[str] = None) -> Tuple[CollectionConfig, str]:
        config = self._load()
        address = contract_address or config.contract_address
        if not address:
            raise ContractNotDeployedError(f"{config.symbol} has no deployed contract; run deploy first")
        return config, address


class DeploymentOrchestrator(CollectionAction):
    """Drives the deploy/configure workflow of one collection"""

    # Draft -> Deployed

    def deploy(self, context: Optional[WorkflowContext] = None) -> DeploymentResult:
        """
        Run the full workflow from an undeployed project.

        The deployment record is persisted as soon as the creation
        transaction confirms, before any later step can fail.

        Raises:
            AlreadyDeployedError: If the project already records a deployment
            ConfigValidationError: If the config is invalid (nothing is sent)
            OperationCancelled: If the operator declines the deployment
            TransactionFailed: If a transaction reverts
        """
        context = context or WorkflowContext()
        config = self._load()
        if config.deployment is not None:
            raise AlreadyDeployedError(
                f"{config.symbol} is already deployed at {config.deployment.contract_address}"
            )
        validate_config(config, for_setup=context.setup is SetupOption.YES)

        chain = self.client.chain
        impl_id = select_impl_id(config, chain)
        fee = self.client.get_deployment_fee(config.token_standard, impl_id)
        owner = self.client.address
        balance = self.client.get_balance()

        summary = format_summary(
            "Deployment details",
            [
                ("Name", config.name),
                ("Symbol", config.symbol),
                ("Token Standard", config.token_standard.value),
                ("Initial Owner", collapse_address(owner)),
                ("Impl ID", "DEFAULT" if impl_id == 0 else impl_id),
                ("Chain", f"{chain.name} ({chain.chain_id})"),
                ("Deployment Fee", f"{Web3.from_wei(fee, 'ether')} {chain.native_symbol}"),
                ("Signer Balance", f"{Web3.from_wei(balance, 'ether')} {chain.native_symbol}"),
            ],
        )
        self._confirm(context, "Do you want to proceed?", summary)

        show_text("Deploying contract... this may take a minute.")
        outcome, address = self.client.create_contract(
            config.name, config.symbol, config.token_standard, owner, impl_id, fee
        )
        result = DeploymentResult(contract_address=address)
        self._record(result, outcome)

        self.store.save_deployment(DeploymentRecord.now(address, owner))
        result.states.append(WorkflowState.DEPLOYED)
        show_text(f"Deployed Contract Address: {address}")
        show_text(self.client.address_url(address))

        result.supports_transfer_policy = self.detect_capability(address)
        result.states.append(WorkflowState.CAPABILITY_DETECTED)

        if result.supports_transfer_policy:
            show_text("Contract supports ICreatorToken, updating transfer validator and transfer list...")
            self.wire_transfer_policy(address, result=result)
            result.states.append(WorkflowState.POLICY_WIRED)

            if context.freeze or (context.freeze is None and self._ask(context, "Would you like to freeze the collection?")):
                self.freeze(address, frozen=True, result=result)
                result.states.append(WorkflowState.FROZEN)
                show_text("Token transfers frozen.")

        setup_now = context.setup is SetupOption.YES or (
            context.setup is SetupOption.DEFERRED
            and self._ask(context, "Would you like to setup the contract?", default=False)
        )
        if setup_now:
            result.setup = self.setup_contract(context)
            result.transactions.append(result.setup.outcome)
            result.states.append(WorkflowState.CONFIGURED)

        return result

    # Deployed -> CapabilityDetected

    def detect_capability(self, contract_address: str) -> bool:
        """Whether the collection implements ICreatorToken (transfer policies apply)"""
        supported = self.client.supports_interface(contract_address)
        self.logger.info(f"{contract_address} ICreatorToken support: {supported}")
        return supported

    # CapabilityDetected -> PolicyWired

    def set_transfer_validator(
        self,
        contract_address: Optional[str] = None,
        validator: Optional[str] = None,
        context: Optional[WorkflowContext] = None,
        result: Optional[DeploymentResult] = None,
    ) -> TxOutcome:
        """
        Point the collection at a transfer validator (the chain default unless given).

        Prompts only when called with a context, i.e. as a standalone command.
        """
        _, address = self._deployed_address(contract_address)
        validator = validator or self.client.chain.default_transfer_validator
        if context is not None:
            self._confirm(context, f"Set transfer validator of {address} to {validator}?")
        show_text(f"Setting transfer validator to {validator}...")
        return self._record(result, self.client.set_transfer_validator(address, validator))

    def apply_transfer_list(
        self,
        contract_address: Optional[str] = None,
        list_id: Optional[int] = None,
        validator: Optional[str] = None,
        context: Optional[WorkflowContext] = None,
        result: Optional[DeploymentResult] = None,
    ) -> TxOutcome:
        """Register the collection in a transfer list on the validator"""
        _, address = self._deployed_address(contract_address)
        chain = self.client.chain
        list_id = chain.list_id if list_id is None else list_id
        validator = validator or chain.default_transfer_validator
        if context is not None:
            self._confirm(context, f"Apply transfer list {list_id} to {address}?")
        show_text(f"Applying transfer list {list_id}...")
        return self._record(result, self.client.apply_list_to_collection(validator, address, list_id))

    def wire_transfer_policy(
        self, contract_address: str, result: Optional[DeploymentResult] = None
    ) -> List[TxOutcome]:
        """
        Set validator, then apply list: two independent transactions. A failure
        of the second leaves the first in place; rerun ``apply_transfer_list``.
        """
        return [
            self.set_transfer_validator(contract_address, result=result),
            self.apply_transfer_list(contract_address, result=result),
        ]

    # PolicyWired -> Frozen

    def freeze(
        self,
        contract_address: Optional[str] = None,
        frozen: bool = True,
        context: Optional[WorkflowContext] = None,
        result: Optional[DeploymentResult] = None,
    ) -> TxOutcome:
        """Disable (``frozen``) or re-enable token transfers"""
        _, address = self._deployed_address(contract_address)
        if context is not None:
            action = "Freeze" if frozen else "Thaw"
            self._confirm(context, f"{action} token transfers of {address}?")
        return self._record(result, self.client.set_transferable(address, not frozen))

    # -> Configured

    def setup_contract(self, context: Optional[WorkflowContext] = None) -> SetupResult:
        """
        Send the one-time setup transaction with all stages.

        Raises:
            ContractNotDeployedError: If the project has no deployment
            SetupLockedError: If the contract was already set up
            ConfigValidationError: If the config or stage schedule is invalid
            OperationCancelled: If the operator declines
        """
        context = context or WorkflowContext()
        config, address = self._deployed_address()
        validate_config(config, for_setup=True)

        if self.client.is_setup_locked(address, config.is_multi_token):
            raise SetupLockedError(
                f"{address} has already been set up; use the set-* commands to update it"
            )

        fund_receiver = context.fund_receiver or config.fund_receiver or self.client.address
        show_text("Processing stages... this may take a moment.")
        resolved = StageResolver(self.store, self.compiler, self.logger).resolve(config)

        summary = format_summary("Setup details", self._setup_rows(config, address, fund_receiver, resolved))
        self._confirm(context, "Do you want to proceed with the setup?", summary)

        show_text("Setting up contract... this will take a moment.")
        args = build_setup_args(config, resolved, fund_receiver)
        self.logger.debug(f"setup args: {args}")
        outcome = self.client.send(address, collection_abi(config.is_multi_token), "setup", args)
        self._record(None, outcome)
        self.logger.info(f"Setup of {config.symbol} confirmed in {outcome.tx_hash}")
        show_text("Contract setup completed.")
        return SetupResult(outcome=outcome, stages=resolved)

    def _setup_rows(
        self,
        config: CollectionConfig,
        address: str,
        fund_receiver: str,
        stages: Sequence[ResolvedStage],
    ) -> List[Tuple[str, Any]]:
        chain = self.client.chain
        rows: List[Tuple[str, Any]] = [
            ("Chain", f"{chain.name} ({chain.chain_id})"),
            ("Token Standard", config.token_standard.value),
            ("Contract", address),
            ("Max Mintable Supply", config.max_mintable_supply),
            ("Global Wallet Limit", config.global_wallet_limit),
            ("Mint Currency", config.mint_currency),
            ("Royalty Receiver", config.royalty_receiver),
            ("Royalty Fee (bps)", config.royalty_fee),
            ("Fund Receiver", fund_receiver),
            ("Stages", len(stages)),
        ]
        for stage in stages:
            leaves = [c.leaf_count if c else 0 for c in stage.commitments]
            rows.append((f"Stage {stage.index} allowlist leaves", leaves if config.is_multi_token else leaves[0]))
        return rows
