"""
Data models for dropkit.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
# Mint currency sentinel for the chain's native token
NATIVE_CURRENCY = ZERO_ADDRESS
ZERO_MERKLE_ROOT = "0x" + "00" * 32
DEFAULT_TOKEN_URI_SUFFIX = ".json"


class TokenStandard(str, Enum):
    """Token standards the factory can clone"""
    ERC721 = "ERC721"
    ERC1155 = "ERC1155"

    @property
    def standard_id(self) -> int:
        """Numeric id used by the factory and registry contracts"""
        return 0 if self is TokenStandard.ERC721 else 1


def _stringify(value: Any) -> Any:
    """Keep ether amounts as decimal strings, whether given as numbers or strings"""
    if isinstance(value, list):
        return [_stringify(v) for v in value]
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


def to_unix_seconds(value: Union[int, str]) -> int:
    """
    Convert a stage timestamp to unix seconds.

    Accepts unix seconds (int or digit string) or an ISO-8601 string.
    Naive ISO values are interpreted as UTC.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.isdigit():
        return int(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


class StageConfig(BaseModel):
    """
    A time-boxed mint stage.

    Scalar fields for ERC721 collections; per-token-id lists for ERC1155.
    """
    model_config = ConfigDict(populate_by_name=True)

    price: Union[str, List[str]] = "0"
    mint_fee: Union[str, List[str]] = Field("0", alias="mintFee")
    wallet_limit: Union[int, List[int]] = Field(0, alias="walletLimit")
    max_stage_supply: Optional[Union[int, List[int]]] = Field(None, alias="maxStageSupply")
    whitelist_path: Optional[Union[str, List[str]]] = Field(None, alias="whitelistPath")
    merkle_root: Optional[Union[str, List[str]]] = Field(None, alias="merkleRoot")
    start_time: Union[int, str] = Field(..., alias="startTime")
    end_time: Union[int, str] = Field(..., alias="endTime")

    @field_validator("price", "mint_fee", mode="before")
    @classmethod
    def _amounts_as_strings(cls, value: Any) -> Any:
        return _stringify(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def _parseable_time(cls, value: Union[int, str]) -> Union[int, str]:
        to_unix_seconds(value)
        return value

    @property
    def start_time_unix_seconds(self) -> int:
        return to_unix_seconds(self.start_time)

    @property
    def end_time_unix_seconds(self) -> int:
        return to_unix_seconds(self.end_time)

    @property
    def is_vector(self) -> bool:
        """True if the stage carries per-token-id lists"""
        return isinstance(self.price, list)


class DeploymentRecord(BaseModel):
    """Result of the one successful creation transaction for a collection"""
    contract_address: str
    initial_owner: str
    deployed_at: str

    @classmethod
    def now(cls, contract_address: str, initial_owner: str) -> "DeploymentRecord":
        return cls(
            contract_address=contract_address,
            initial_owner=initial_owner,
            deployed_at=datetime.now(timezone.utc).isoformat(),
        )


class CollectionConfig(BaseModel):
    """Persisted configuration of one collection, keyed by its symbol"""
    model_config = ConfigDict(populate_by_name=True)

    name: str
    symbol: str
    chain_id: int = Field(..., alias="chainId")
    token_standard: TokenStandard = Field(..., alias="tokenStandard")
    max_mintable_supply: Optional[Union[int, List[int]]] = Field(None, alias="maxMintableSupply")
    global_wallet_limit: Optional[Union[int, List[int]]] = Field(None, alias="globalWalletLimit")
    mint_currency: str = Field(NATIVE_CURRENCY, alias="mintCurrency")
    fund_receiver: Optional[str] = Field(None, alias="fundReceiver")
    royalty_receiver: str = Field(ZERO_ADDRESS, alias="royaltyReceiver")
    royalty_fee: int = Field(0, alias="royaltyFee")
    cosigner: str = ZERO_ADDRESS
    token_uri_suffix: str = Field(DEFAULT_TOKEN_URI_SUFFIX, alias="tokenUriSuffix")
    uri: Optional[str] = None
    mintable: bool = True
    use_erc721c: bool = Field(False, alias="useERC721C")
    total_tokens: Optional[int] = Field(None, alias="totalTokens")
    stages: List[StageConfig] = Field(default_factory=list)
    deployment: Optional[DeploymentRecord] = None

    @field_validator("token_uri_suffix", mode="before")
    @classmethod
    def _null_suffix_is_empty(cls, value: Any) -> Any:
        # null means no suffix, the same as an empty string
        return "" if value is None else value

    @property
    def is_multi_token(self) -> bool:
        return self.token_standard is TokenStandard.ERC1155

    @property
    def token_count(self) -> Optional[int]:
        """Number of token ids for ERC1155 collections, None for ERC721"""
        if not self.is_multi_token:
            return None
        if self.total_tokens is not None:
            return self.total_tokens
        if isinstance(self.max_mintable_supply, list):
            return len(self.max_mintable_supply)
        if isinstance(self.global_wallet_limit, list):
            return len(self.global_wallet_limit)
        return None

    @property
    def contract_address(self) -> Optional[str]:
        return self.deployment.contract_address if self.deployment else None

    def to_json_dict(self) -> Dict[str, Any]:
        """Dictionary in the on-disk layout (camelCase keys, unset optionals omitted)"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LogEntry(BaseModel):
    """An event log from a transaction receipt"""
    address: str
    topics: List[str] = Field(default_factory=list)
    data: str = "0x"


class TxOutcome(BaseModel):
    """Confirmed result of a submitted transaction"""
    model_config = ConfigDict(populate_by_name=True)

    tx_hash: str = Field(..., alias="transactionHash")
    status: int
    block_number: Optional[int] = Field(None, alias="blockNumber")
    gas_used: Optional[int] = Field(None, alias="gasUsed")
    logs: List[LogEntry] = Field(default_factory=list)
    explorer_url: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status == 1
