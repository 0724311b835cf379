"""
Mint stage resolution and setup-call encoding.

Stages are stored with ether-denominated prices and optional allowlist paths;
the contracts take wei amounts and Merkle roots in a fixed tuple layout that
differs between ERC721 (scalars) and ERC1155 (per-token-id vectors).
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence, Tuple

from web3 import Web3

from .allowlist import AllowlistCompiler, MerkleCommitment
from .exceptions import ConfigValidationError
from .models import ZERO_MERKLE_ROOT, CollectionConfig, StageConfig
from .store import ProjectStore

logger = logging.getLogger(__name__)

# Minimum seconds between one stage's end and the next stage's start;
# absorbs clock skew on cosigner signatures
STAGE_GAP_SECONDS = 60


def ether_to_wei(amount: Any) -> int:
    """
    Convert an ether-denominated decimal to wei.

    Raises:
        ConfigValidationError: If the amount is not a non-negative decimal
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ConfigValidationError([f"invalid ether amount: {amount!r}"])
    if not value.is_finite() or value < 0:
        raise ConfigValidationError([f"invalid ether amount: {amount!r}"])
    try:
        return int(Web3.to_wei(value, "ether"))
    except ValueError as e:
        raise ConfigValidationError([f"invalid ether amount: {amount!r} ({e})"]) from e


def schedule_errors(stages: Sequence[StageConfig], gap: int = STAGE_GAP_SECONDS) -> List[str]:
    """Ordering violations across a stage list, empty when the schedule is valid"""
    errors = []
    for i, stage in enumerate(stages):
        if stage.start_time_unix_seconds >= stage.end_time_unix_seconds:
            errors.append(f"stages[{i}]: startTime must be before endTime")
    for i in range(len(stages) - 1):
        end = stages[i].end_time_unix_seconds
        next_start = stages[i + 1].start_time_unix_seconds
        if end > next_start - gap:
            errors.append(
                f"stages[{i}] ends at {end} but stages[{i + 1}] starts at {next_start}; "
                f"stages need a gap of at least {gap}s"
            )
    return errors


def check_schedule(stages: Sequence[StageConfig], gap: int = STAGE_GAP_SECONDS) -> None:
    errors = schedule_errors(stages, gap)
    if errors:
        raise ConfigValidationError(errors)


def root_to_bytes32(root: str) -> bytes:
    raw = bytes.fromhex(root[2:] if root.startswith("0x") else root)
    if len(raw) != 32:
        raise ConfigValidationError([f"merkle root must be 32 bytes: {root}"])
    return raw


@dataclass(frozen=True)
class ResolvedStage:
    """A stage ready for encoding, plus the allowlists compiled for it"""
    index: int
    args: Tuple[Any, ...]
    commitments: List[Optional[MerkleCommitment]] = field(default_factory=list)


class StageResolver:
    """Resolves stored stages into contract arguments for one project"""

    def __init__(
        self,
        store: ProjectStore,
        compiler: Optional[AllowlistCompiler] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.compiler = compiler or AllowlistCompiler()
        self.logger = logger or logging.getLogger(__name__)

    def _side_file(self, kind: str, stage_index: int, token_index: Optional[int]) -> str:
        suffix = f"_token_{token_index}" if token_index is not None else ""
        return str(self.store.project_dir / f"{kind}_stage_{stage_index}{suffix}.txt")

    def resolve_root(
        self,
        whitelist_path: Optional[str],
        merkle_root: Optional[str],
        stage_index: int,
        token_index: Optional[int] = None,
    ) -> Tuple[str, Optional[MerkleCommitment]]:
        """
        Merkle root for one allowlist slot.

        A whitelist path wins over a stored root; with neither the root is
        all-zero (no restriction).
        """
        if whitelist_path:
            path = self.store.resolve_path(whitelist_path)
            self.store.project_dir.mkdir(parents=True, exist_ok=True)
            commitment = self.compiler.compile_file(
                path,
                cleaned_path=self._side_file("cleaned_allowlist", stage_index, token_index),
                invalid_path=self._side_file("invalid_entries", stage_index, token_index),
            )
            return commitment.root, commitment
        if merkle_root:
            return merkle_root, None
        return ZERO_MERKLE_ROOT, None

    def resolve_721(self, stage: StageConfig, index: int) -> ResolvedStage:
        root, commitment = self.resolve_root(stage.whitelist_path, stage.merkle_root, index)
        args = (
            ether_to_wei(stage.price),
            ether_to_wei(stage.mint_fee),
            int(stage.wallet_limit),
            root_to_bytes32(root),
            int(stage.max_stage_supply or 0),
            stage.start_time_unix_seconds,
            stage.end_time_unix_seconds,
        )
        return ResolvedStage(index=index, args=args, commitments=[commitment])

    def resolve_1155(self, stage: StageConfig, index: int, token_count: int) -> ResolvedStage:
        paths = stage.whitelist_path or [""] * token_count
        roots = stage.merkle_root or [""] * token_count
        resolved = [self.resolve_root(paths[j], roots[j], index, j) for j in range(token_count)]
        args = (
            [ether_to_wei(p) for p in stage.price],
            [ether_to_wei(f) for f in stage.mint_fee],
            [int(limit) for limit in stage.wallet_limit],
            [root_to_bytes32(root) for root, _ in resolved],
            [int(s) for s in stage.max_stage_supply] if stage.max_stage_supply else [0] * token_count,
            stage.start_time_unix_seconds,
            stage.end_time_unix_seconds,
        )
        return ResolvedStage(index=index, args=args, commitments=[c for _, c in resolved])

    def resolve(self, config: CollectionConfig) -> List[ResolvedStage]:
        """
        Resolve every stage of a config in order.

        Raises:
            ConfigValidationError: If the schedule breaks the ordering rules
        """
        check_schedule(config.stages)
        self.logger.info(f"Processing {len(config.stages)} stages for {config.symbol}")
        if config.is_multi_token:
            return [self.resolve_1155(s, i, config.token_count or 0) for i, s in enumerate(config.stages)]
        return [self.resolve_721(s, i) for i, s in enumerate(config.stages)]


def _checksum(address: str) -> str:
    return Web3.to_checksum_address(address)


def build_setup_args(config: CollectionConfig, stages: Sequence[ResolvedStage], fund_receiver: str) -> List[Any]:
    """
    Positional arguments of the one-time ``setup`` call.

    ERC721 takes scalar supply and wallet limits plus a token URI suffix;
    ERC1155 takes per-token-id arrays in token-id order.
    """
    stage_args = [stage.args for stage in stages]
    if config.is_multi_token:
        return [
            config.uri or "",
            [int(v) for v in config.max_mintable_supply],
            [int(v) for v in config.global_wallet_limit],
            _checksum(config.mint_currency),
            _checksum(fund_receiver),
            stage_args,
            _checksum(config.royalty_receiver),
            config.royalty_fee,
        ]
    return [
        config.uri or "",
        config.token_uri_suffix,
        int(config.max_mintable_supply),
        int(config.global_wallet_limit),
        _checksum(config.mint_currency),
        _checksum(fund_receiver),
        stage_args,
        _checksum(config.royalty_receiver),
        config.royalty_fee,
    ]
