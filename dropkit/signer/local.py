"""
Signer backed by a private key held in process memory.
"""
from typing import Any, Dict

from eth_account import Account


class LocalSigner:
    """Signs with an in-memory key; the key itself is never logged or persisted"""

    def __init__(self, private_key: str):
        if not private_key:
            raise ValueError("private_key must be provided")
        self._account = Account.from_key(private_key)
        self.address = self._account.address

    def sign_transaction(self, transaction_dict: Dict[str, Any]) -> Any:
        return self._account.sign_transaction(transaction_dict)

    def __repr__(self) -> str:
        return f"LocalSigner(address={self.address})"
