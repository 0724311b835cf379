"""
Allowlist Merkle compiler.

Turns address lists (optionally with per-address mint limits) into the
Merkle root the collection contracts verify mint proofs against. Leaves are
``keccak256(abi.encodePacked(address, uint32 limit))`` and every internal
node hashes its two children in sorted order, so proofs verify with
OpenZeppelin's ``MerkleProof``.
"""
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from web3 import Web3

from .exceptions import ConfigValidationError, StoreIOError
from .models import ZERO_MERKLE_ROOT

logger = logging.getLogger(__name__)

MAX_WALLET_LIMIT = 2**32 - 1
DUPLICATE_MARKER = "(duplicate)"


class AllowlistMode(str, Enum):
    PRESENCE_ONLY = "presence-only"
    VARIABLE_LIMIT = "variable-limit"


class AllowlistEntry(BaseModel):
    """A checksummed address and, in variable-limit mode, its mint limit"""
    model_config = ConfigDict(frozen=True)

    address: str
    limit: Optional[int] = None

    def to_line(self) -> str:
        return self.address if self.limit is None else f"{self.address},{self.limit}"


class CleanedAllowlist(BaseModel):
    mode: AllowlistMode
    entries: List[AllowlistEntry] = Field(default_factory=list)
    invalid: List[str] = Field(default_factory=list)


class MerkleCommitment(BaseModel):
    """Root of a compiled allowlist plus what went into it"""
    root: str
    mode: AllowlistMode
    leaf_count: int
    invalid: List[str] = Field(default_factory=list)


def allowlist_leaf(address: str, limit: int = 0) -> bytes:
    """Packed leaf hash: 20-byte address followed by a 4-byte big-endian limit"""
    return bytes(Web3.solidity_keccak(["address", "uint32"], [Web3.to_checksum_address(address), limit]))


def detect_mode(lines: Sequence[str]) -> AllowlistMode:
    """The first entry decides: ``address,limit`` selects variable-limit mode"""
    if lines and "," in lines[0]:
        return AllowlistMode.VARIABLE_LIMIT
    return AllowlistMode.PRESENCE_ONLY


def _is_valid_address(address: str) -> bool:
    return address.startswith("0x") and Web3.is_address(address)


def clean_entries(lines: Iterable[str], mode: Optional[AllowlistMode] = None) -> CleanedAllowlist:
    """
    Validate and deduplicate raw allowlist lines.

    Invalid lines are collected rather than raised. For duplicate addresses the
    first valid occurrence wins and later ones are reported with a
    ``(duplicate)`` marker.
    """
    lines = [line.strip() for line in lines if line and line.strip()]
    if mode is None:
        mode = detect_mode(lines)
    expected_parts = 2 if mode is AllowlistMode.VARIABLE_LIMIT else 1

    seen = set()
    entries: List[AllowlistEntry] = []
    invalid: List[str] = []

    for line in lines:
        parts = [part.strip() for part in line.split(",")]
        address = parts[0]

        if address.lower() in seen:
            invalid.append(f"{line} {DUPLICATE_MARKER}")
            continue
        if len(parts) != expected_parts or not _is_valid_address(address):
            invalid.append(line)
            continue

        limit = None
        if mode is AllowlistMode.VARIABLE_LIMIT:
            try:
                limit = int(parts[1])
            except ValueError:
                invalid.append(line)
                continue
            if not 0 <= limit <= MAX_WALLET_LIMIT:
                invalid.append(line)
                continue

        seen.add(address.lower())
        entries.append(AllowlistEntry(address=Web3.to_checksum_address(address), limit=limit))

    if invalid:
        logger.warning(f"Dropped {len(invalid)} invalid allowlist entries")
    return CleanedAllowlist(mode=mode, entries=entries, invalid=invalid)


def read_allowlist(path: Union[str, Path]) -> List[str]:
    """
    Read raw allowlist lines.

    Plain text files hold one entry per line with ``#`` comments and blank
    lines ignored. A file whose content starts with ``[`` is read as a JSON
    array of strings.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise StoreIOError(f"Failed to read allowlist {path}: {e}") from e

    if text.lstrip().startswith("["):
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigValidationError([f"allowlist {path}: invalid JSON ({e})"]) from e
        if not isinstance(data, list):
            raise ConfigValidationError([f"allowlist {path}: JSON content must be an array"])
        return [str(item).strip() for item in data if str(item).strip()]

    lines = []
    for line in text.splitlines():
        line = line.split("#", 1)[0].strip()
        if line:
            lines.append(line)
    return lines


class MerkleTree:
    """Merkle tree over sorted leaves with sorted-pair hashing"""

    def __init__(self, leaves: Iterable[bytes]):
        self.leaves: List[bytes] = sorted(bytes(leaf) for leaf in leaves)
        self.levels: List[List[bytes]] = [self.leaves]
        while len(self.levels[-1]) > 1:
            current = self.levels[-1]
            parents = []
            for i in range(0, len(current), 2):
                if i + 1 < len(current):
                    parents.append(self.hash_pair(current[i], current[i + 1]))
                else:
                    # odd node is promoted unchanged
                    parents.append(current[i])
            self.levels.append(parents)

    @staticmethod
    def hash_pair(a: bytes, b: bytes) -> bytes:
        return bytes(Web3.keccak(min(a, b) + max(a, b)))

    @property
    def root(self) -> bytes:
        if not self.leaves:
            return bytes(32)
        return self.levels[-1][0]

    @property
    def hex_root(self) -> str:
        return "0x" + self.root.hex()

    def proof(self, leaf: bytes) -> List[bytes]:
        """
        Sibling path from ``leaf`` to the root.

        Raises:
            ValueError: If the leaf is not in the tree
        """
        index = self.leaves.index(bytes(leaf))
        path = []
        for level in self.levels[:-1]:
            sibling = index ^ 1
            if sibling < len(level):
                path.append(level[sibling])
            index //= 2
        return path

    @classmethod
    def verify(cls, proof: Sequence[bytes], leaf: bytes, root: bytes) -> bool:
        computed = bytes(leaf)
        for node in proof:
            computed = cls.hash_pair(computed, bytes(node))
        return computed == bytes(root)


class AllowlistCompiler:
    """Compiles allowlists into Merkle commitments"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def build(
        self, lines: Iterable[str], mode: Optional[AllowlistMode] = None
    ) -> Tuple[MerkleTree, CleanedAllowlist]:
        cleaned = clean_entries(lines, mode)
        leaves = [allowlist_leaf(entry.address, entry.limit or 0) for entry in cleaned.entries]
        return MerkleTree(leaves), cleaned

    def compile(self, entries: Iterable[str], mode: Optional[AllowlistMode] = None) -> MerkleCommitment:
        """
        Compile raw entries into a Merkle commitment.

        An empty (or fully invalid) list yields the all-zero root, meaning no
        allowlist restriction.
        """
        tree, cleaned = self.build(entries, mode)
        root = tree.hex_root if cleaned.entries else ZERO_MERKLE_ROOT
        self.logger.debug(f"Compiled allowlist: {len(cleaned.entries)} leaves, root {root}")
        return MerkleCommitment(
            root=root,
            mode=cleaned.mode,
            leaf_count=len(cleaned.entries),
            invalid=cleaned.invalid,
        )

    def compile_file(
        self,
        path: Union[str, Path],
        mode: Optional[AllowlistMode] = None,
        cleaned_path: Optional[Union[str, Path]] = None,
        invalid_path: Optional[Union[str, Path]] = None,
    ) -> MerkleCommitment:
        """
        Compile an allowlist file, writing the cleaned list and the rejected
        lines to the given side files.
        """
        raw_lines = read_allowlist(path)
        tree, cleaned = self.build(raw_lines, mode)

        try:
            if cleaned_path is not None:
                Path(cleaned_path).write_text(
                    "".join(f"{entry.to_line()}\n" for entry in cleaned.entries), encoding="utf-8"
                )
            if invalid_path is not None and cleaned.invalid:
                Path(invalid_path).write_text("\n".join(cleaned.invalid) + "\n", encoding="utf-8")
                self.logger.warning(f"Invalid allowlist entries written to {invalid_path}")
        except OSError as e:
            raise StoreIOError(f"Failed to write allowlist side files for {path}: {e}") from e

        self.logger.info(f"Processed allowlist {path} with {len(cleaned.entries)} entries")
        return MerkleCommitment(
            root=tree.hex_root if cleaned.entries else ZERO_MERKLE_ROOT,
            mode=cleaned.mode,
            leaf_count=len(cleaned.entries),
            invalid=cleaned.invalid,
        )

    def proof(
        self,
        entries: Iterable[str],
        address: str,
        limit: Optional[int] = None,
        mode: Optional[AllowlistMode] = None,
    ) -> List[str]:
        """
        Proof for ``address`` (and ``limit`` in variable-limit mode) as hex strings.

        Raises:
            ValueError: If the address/limit pair is not in the allowlist
        """
        tree, _ = self.build(entries, mode)
        leaf = allowlist_leaf(address, limit or 0)
        try:
            return ["0x" + node.hex() for node in tree.proof(leaf)]
        except ValueError:
            raise ValueError(f"{address} (limit {limit or 0}) is not in the allowlist")
