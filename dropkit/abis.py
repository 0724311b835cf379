"""
Contract ABI fragments used by dropkit.

Only the functions and events the tool actually calls are listed; the
factory, registry and token contracts expose more.
"""
from typing import Any, Dict, List, Optional

from web3 import Web3


def _param(type_: str, name: str = "", components: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
    param: Dict[str, Any] = {"name": name, "type": type_, "internalType": type_}
    if components is not None:
        param["components"] = components
    return param


def _function(
    name: str,
    inputs: List[Dict[str, Any]],
    outputs: Optional[List[Dict[str, Any]]] = None,
    state_mutability: str = "nonpayable",
) -> Dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs or [],
        "stateMutability": state_mutability,
    }


# Mint stage tuple layouts, field order is the on-chain struct order
STAGE_COMPONENTS_721 = [
    _param("uint80", "price"),
    _param("uint80", "mintFee"),
    _param("uint32", "walletLimit"),
    _param("bytes32", "merkleRoot"),
    _param("uint24", "maxStageSupply"),
    _param("uint256", "startTimeUnixSeconds"),
    _param("uint256", "endTimeUnixSeconds"),
]

STAGE_COMPONENTS_1155 = [
    _param("uint80[]", "price"),
    _param("uint80[]", "mintFee"),
    _param("uint32[]", "walletLimit"),
    _param("bytes32[]", "merkleRoot"),
    _param("uint24[]", "maxStageSupply"),
    _param("uint256", "startTimeUnixSeconds"),
    _param("uint256", "endTimeUnixSeconds"),
]

FACTORY_ABI = [
    _function(
        "createContract",
        [
            _param("string", "name"),
            _param("string", "symbol"),
            _param("uint8", "standard"),
            _param("address", "initialOwner"),
            _param("uint32", "implId"),
        ],
        [_param("address")],
        "payable",
    ),
]

REGISTRY_ABI = [
    _function(
        "getDeploymentFee",
        [_param("uint8", "standard"), _param("uint32", "implId")],
        [_param("uint256", "deploymentFee")],
        "view",
    ),
]

TRANSFER_VALIDATOR_ABI = [
    _function(
        "applyListToCollection",
        [_param("address", "collection"), _param("uint120", "id")],
    ),
]

COLLECTION_ABI = [
    _function("supportsInterface", [_param("bytes4", "interfaceId")], [_param("bool")], "view"),
    _function("isSetupLocked", [], [_param("bool")], "view"),
    _function("setTransferValidator", [_param("address", "transferValidator_")]),
    _function("setTransferable", [_param("bool", "transferable")]),
    _function("setCosigner", [_param("address", "cosigner")]),
    _function("setMintable", [_param("bool", "mintable")]),
    _function("transferOwnership", [_param("address", "newOwner")]),
    _function("setDefaultRoyalty", [_param("address", "receiver"), _param("uint96", "feeNumerator")]),
    _function("withdraw", []),
]

ERC721_ABI = COLLECTION_ABI + [
    _function(
        "setup",
        [
            _param("string", "uri"),
            _param("string", "tokenUriSuffix"),
            _param("uint256", "maxMintableSupply"),
            _param("uint256", "globalWalletLimit"),
            _param("address", "mintCurrency"),
            _param("address", "fundReceiver"),
            _param("tuple[]", "initialStages", STAGE_COMPONENTS_721),
            _param("address", "royaltyReceiver"),
            _param("uint96", "royaltyFeeNumerator"),
        ],
    ),
    _function("setStages", [_param("tuple[]", "newStages", STAGE_COMPONENTS_721)]),
    _function("setBaseURI", [_param("string", "baseURI")]),
    _function("setTokenURISuffix", [_param("string", "suffix")]),
    _function("setGlobalWalletLimit", [_param("uint256", "globalWalletLimit")]),
    _function("setMaxMintableSupply", [_param("uint256", "maxMintableSupply")]),
    _function("ownerMint", [_param("uint32", "qty"), _param("address", "to")]),
]

ERC1155_ABI = COLLECTION_ABI + [
    _function(
        "setup",
        [
            _param("string", "uri"),
            _param("uint256[]", "maxMintableSupply"),
            _param("uint256[]", "globalWalletLimit"),
            _param("address", "mintCurrency"),
            _param("address", "fundReceiver"),
            _param("tuple[]", "initialStages", STAGE_COMPONENTS_1155),
            _param("address", "royaltyReceiver"),
            _param("uint96", "royaltyFeeNumerator"),
        ],
    ),
    _function("setStages", [_param("tuple[]", "newStages", STAGE_COMPONENTS_1155)]),
    _function("setURI", [_param("string", "newURI")]),
    _function("setGlobalWalletLimit", [_param("uint256", "tokenId"), _param("uint256", "globalWalletLimit")]),
    _function("setMaxMintableSupply", [_param("uint256", "tokenId"), _param("uint256", "maxMintableSupply")]),
    _function("ownerMint", [_param("address", "to"), _param("uint256", "id"), _param("uint32", "qty")]),
]


def event_topic(signature: str) -> str:
    """keccak256 selector of an event signature as a 0x-prefixed hex string"""
    return "0x" + bytes(Web3.keccak(text=signature)).hex()


def collection_abi(is_multi_token: bool) -> List[Dict[str, Any]]:
    return ERC1155_ABI if is_multi_token else ERC721_ABI


NEW_CONTRACT_INITIALIZED_SIGNATURE = "NewContractInitialized(address,address,uint32,uint8,string,string)"
NEW_CONTRACT_INITIALIZED_TOPIC = event_topic(NEW_CONTRACT_INITIALIZED_SIGNATURE)

# ERC165 id of ICreatorToken, advertised by transfer-policy aware collections
ICREATOR_TOKEN_INTERFACE_ID = "0xad0d7f6c"
