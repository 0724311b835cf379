"""
Collection configuration checks run before any chain write.
"""
from typing import Any, List, Optional

from web3 import Web3

from .config import ChainRegistry
from .exceptions import ConfigValidationError
from .models import CollectionConfig, StageConfig
from .stages import ether_to_wei, schedule_errors

MAX_ROYALTY_BPS = 10_000

# Widths of the integer fields in the setup and stage tuples
UINT24_MAX = 2**24 - 1
UINT32_MAX = 2**32 - 1
UINT80_MAX = 2**80 - 1
UINT256_MAX = 2**256 - 1


def _check_address(errors: List[str], field: str, value: Optional[str]) -> None:
    if value is not None and not (value.startswith("0x") and Web3.is_address(value)):
        errors.append(f"{field}: invalid address {value!r}")


def _values(value: Any) -> List[Any]:
    return value if isinstance(value, list) else [value]


def _check_amounts(errors: List[str], field: str, value: Any) -> None:
    for amount in _values(value):
        try:
            wei = ether_to_wei(amount)
        except ConfigValidationError:
            errors.append(f"{field}: invalid ether amount {amount!r}")
            continue
        if wei > UINT80_MAX:
            errors.append(f"{field}: {amount} ether exceeds the maximum of {UINT80_MAX} wei")


def check_range(errors: List[str], field: str, value: Any, upper: int) -> None:
    """Append an error if any integer in ``value`` falls outside ``[0, upper]``"""
    if value is None:
        return
    if any(not 0 <= v <= upper for v in _values(value)):
        errors.append(f"{field}: must be between 0 and {upper}")


def _check_vector(errors: List[str], field: str, value: Any, length: int, required: bool = True) -> None:
    if value is None:
        if required:
            errors.append(f"{field}: required for ERC1155 collections")
        return
    if not isinstance(value, list):
        errors.append(f"{field}: must be a list with one value per token id")
    elif len(value) != length:
        errors.append(f"{field}: expected {length} values, got {len(value)}")


def _check_scalar(errors: List[str], field: str, value: Any, required: bool = True) -> None:
    if value is None:
        if required:
            errors.append(f"{field}: required for ERC721 collections")
    elif isinstance(value, list):
        errors.append(f"{field}: must be a single value for ERC721 collections")


def _stage_errors(stage: StageConfig, index: int, token_count: Optional[int]) -> List[str]:
    errors: List[str] = []
    prefix = f"stages[{index}]"
    _check_amounts(errors, f"{prefix}.price", stage.price)
    _check_amounts(errors, f"{prefix}.mintFee", stage.mint_fee)

    vector_fields = {
        "price": (stage.price, True),
        "mintFee": (stage.mint_fee, True),
        "walletLimit": (stage.wallet_limit, True),
        "maxStageSupply": (stage.max_stage_supply, False),
        "whitelistPath": (stage.whitelist_path, False),
        "merkleRoot": (stage.merkle_root, False),
    }
    for name, (value, required) in vector_fields.items():
        if token_count is None:
            _check_scalar(errors, f"{prefix}.{name}", value, required)
        else:
            _check_vector(errors, f"{prefix}.{name}", value, token_count, required)

    check_range(errors, f"{prefix}.walletLimit", stage.wallet_limit, UINT32_MAX)
    check_range(errors, f"{prefix}.maxStageSupply", stage.max_stage_supply, UINT24_MAX)
    return errors


def config_errors(config: CollectionConfig, for_setup: bool = False) -> List[str]:
    """
    Every violation in a collection config.

    Args:
        config: Collection configuration to check
        for_setup: Also check the fields the one-time setup call needs

    Returns:
        List of human-readable violations, empty when the config is valid
    """
    errors: List[str] = []

    if not config.name.strip():
        errors.append("name: must not be empty")
    if not config.symbol.strip():
        errors.append("symbol: must not be empty")
    if not ChainRegistry.is_supported(config.chain_id):
        errors.append(f"chainId: unsupported chain {config.chain_id}")
    if not 0 <= config.royalty_fee <= MAX_ROYALTY_BPS:
        errors.append(f"royaltyFee: must be between 0 and {MAX_ROYALTY_BPS} basis points")
    if config.use_erc721c and config.is_multi_token:
        errors.append("useERC721C: only applies to ERC721 collections")

    _check_address(errors, "mintCurrency", config.mint_currency)
    _check_address(errors, "fundReceiver", config.fund_receiver)
    _check_address(errors, "royaltyReceiver", config.royalty_receiver)
    _check_address(errors, "cosigner", config.cosigner)

    if not for_setup:
        return errors

    token_count = None
    if config.is_multi_token:
        token_count = config.token_count
        if not token_count:
            errors.append("totalTokens: ERC1155 collections need at least one token id")
            return errors
        _check_vector(errors, "maxMintableSupply", config.max_mintable_supply, token_count)
        _check_vector(errors, "globalWalletLimit", config.global_wallet_limit, token_count)
    else:
        _check_scalar(errors, "maxMintableSupply", config.max_mintable_supply)
        _check_scalar(errors, "globalWalletLimit", config.global_wallet_limit)
    check_range(errors, "maxMintableSupply", config.max_mintable_supply, UINT256_MAX)
    check_range(errors, "globalWalletLimit", config.global_wallet_limit, UINT256_MAX)

    if not config.stages:
        errors.append("stages: at least one stage is required")
    for i, stage in enumerate(config.stages):
        errors.extend(_stage_errors(stage, i, token_count))
    errors.extend(schedule_errors(config.stages))
    return errors


def validate_config(config: CollectionConfig, for_setup: bool = False) -> None:
    """
    Raises:
        ConfigValidationError: Listing every violation, if there are any
    """
    errors = config_errors(config, for_setup)
    if errors:
        raise ConfigValidationError(errors)
