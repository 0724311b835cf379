"""
Signer capability used to authorize transactions.
"""
from typing import Any, Dict, Protocol


class Signer(Protocol):
    """Protocol for transaction signers (local key, custody service, hardware wallet)"""
    address: str

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        """Sign transaction and return signed tx object exposing ``raw_transaction``"""
        ...


__all__ = ["Signer"]
