"""
dropkit - deploy and configure NFT collections across EVM chains.
"""
from .allowlist import AllowlistCompiler, AllowlistMode, MerkleCommitment, MerkleTree
from .client import ContractClient
from .config import ChainDescriptor, ChainRegistry
from .exceptions import (
    AlreadyDeployedError,
    ChainRpcError,
    ConfigValidationError,
    ContractNotDeployedError,
    DropkitError,
    LogDecodingError,
    LogNotFound,
    OperationCancelled,
    ProjectNotFoundError,
    SetupLockedError,
    StoreIOError,
    TransactionError,
    TransactionFailed,
    TransactionPending,
    UnsupportedChainError,
)
from .manage import CollectionManager
from .models import CollectionConfig, DeploymentRecord, StageConfig, TokenStandard, TxOutcome
from .orchestrator import DeploymentOrchestrator, DeploymentResult, SetupOption, WorkflowContext, WorkflowState
from .store import ProjectStore
from .version import __version__

__all__ = [
    "AllowlistCompiler",
    "AllowlistMode",
    "MerkleCommitment",
    "MerkleTree",
    "ContractClient",
    "ChainDescriptor",
    "ChainRegistry",
    "CollectionManager",
    "CollectionConfig",
    "DeploymentRecord",
    "StageConfig",
    "TokenStandard",
    "TxOutcome",
    "DeploymentOrchestrator",
    "DeploymentResult",
    "SetupOption",
    "WorkflowContext",
    "WorkflowState",
    "ProjectStore",
    "DropkitError",
    "ConfigValidationError",
    "UnsupportedChainError",
    "ChainRpcError",
    "TransactionError",
    "TransactionFailed",
    "TransactionPending",
    "LogDecodingError",
    "LogNotFound",
    "StoreIOError",
    "ProjectNotFoundError",
    "AlreadyDeployedError",
    "ContractNotDeployedError",
    "SetupLockedError",
    "OperationCancelled",
    "__version__",
]
