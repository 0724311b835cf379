#!/usr/bin/env python3
"""
Example of deploying and configuring a collection from Python.
"""
import logging
import os

from dropkit import (
    ChainRegistry,
    CollectionConfig,
    ContractClient,
    DeploymentOrchestrator,
    ProjectStore,
    SetupOption,
    WorkflowContext,
)
from dropkit.signer.local import LocalSigner


class AlwaysYes:
    """Confirmer that approves every prompt; prints the summaries it is shown"""

    def confirm(self, message, summary=None, default=False):
        if summary:
            print(summary)
        print(f"{message} [auto-approved]")
        return True


def main():
    """
    Demonstrate the deploy workflow on Sepolia.

    This example shows how to:
    1. Create a project for an ERC721 collection with one allowlisted stage
    2. Deploy it through the factory
    3. Wire the transfer policy and run the one-time setup
    """
    logging.basicConfig(level=logging.INFO)

    private_key = os.environ.get("DROPKIT_PRIVATE_KEY")
    if not private_key:
        print("ERROR: DROPKIT_PRIVATE_KEY environment variable is required")
        return

    signer = LocalSigner(private_key)
    print(f"Signer address: {signer.address}")

    chain = ChainRegistry.get_by_name("sepolia")
    client = ContractClient(chain, signer=signer)
    client.assert_chain_id()

    store = ProjectStore("EXMPL")
    if not store.exists():
        store.create(
            CollectionConfig.model_validate(
                {
                    "name": "Example Drop",
                    "symbol": "EXMPL",
                    "chainId": chain.chain_id,
                    "tokenStandard": "ERC721",
                    "maxMintableSupply": 500,
                    "globalWalletLimit": 0,
                    "royaltyReceiver": signer.address,
                    "royaltyFee": 500,
                    "uri": "ipfs://example/",
                    "stages": [
                        {
                            "price": "0",
                            "walletLimit": 0,
                            "whitelistPath": "allowlist.txt",
                            "startTime": "2030-01-01T00:00:00Z",
                            "endTime": "2030-01-02T00:00:00Z",
                        },
                        {
                            "price": "0.01",
                            "walletLimit": 5,
                            "startTime": "2030-01-02T00:05:00Z",
                            "endTime": "2030-01-09T00:00:00Z",
                        },
                    ],
                }
            )
        )
        (store.project_dir / "allowlist.txt").write_text(f"{signer.address},2\n")

    orchestrator = DeploymentOrchestrator(client, store, AlwaysYes())
    result = orchestrator.deploy(WorkflowContext(setup=SetupOption.YES, freeze=False))

    print(f"Contract: {result.contract_address}")
    print(f"Reached state: {result.state.value}")
    for outcome in result.transactions:
        print(f"  {outcome.explorer_url}")


if __name__ == "__main__":
    main()
