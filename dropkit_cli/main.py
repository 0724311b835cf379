"""
dropkit command line interface.
"""
import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple

import typer
from pydantic import ValidationError
from web3 import Web3

from dropkit.client import ContractClient
from dropkit.config import ChainRegistry
from dropkit.display import format_summary, show_error, show_success, show_text, show_warning
from dropkit.exceptions import ConfigValidationError, DropkitError, TransactionPending
from dropkit.manage import CollectionManager
from dropkit.models import CollectionConfig, TokenStandard
from dropkit.orchestrator import DeploymentOrchestrator, SetupOption, WorkflowContext
from dropkit.signer.local import LocalSigner
from dropkit.store import ProjectStore, format_validation_error
from dropkit.validation import validate_config
from dropkit.version import __version__

app = typer.Typer(help="Deploy and configure NFT collections across EVM chains.", no_args_is_help=True)

logger = logging.getLogger("dropkit_cli")

ENV_OPTION = typer.Option(..., "--env", "-e", help="Chain to operate on, e.g. base or sepolia")
RPC_OPTION = typer.Option(None, "--rpc-url", help="Override the chain's RPC endpoint")
YES_OPTION = typer.Option(False, "--yes", "-y", help="Approve confirmations without prompting")


class TyperConfirmer:
    """Confirmation prompts on the terminal"""

    def confirm(self, message: str, summary: Optional[str] = None, default: bool = False) -> bool:
        if summary:
            typer.echo(summary)
        return typer.confirm(message, default=default)


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Map dropkit errors to a short message and exit code 1"""
    try:
        yield
    except TransactionPending as e:
        show_warning(str(e))
        raise typer.Exit(code=1)
    except ConfigValidationError as e:
        show_error("invalid configuration")
        for error in e.errors:
            typer.echo(f"  - {error}", err=True)
        raise typer.Exit(code=1)
    except (DropkitError, ValueError) as e:
        show_error(str(e))
        raise typer.Exit(code=1)


def load_signer() -> LocalSigner:
    private_key = os.environ.get("DROPKIT_PRIVATE_KEY")
    if not private_key:
        raise DropkitError("DROPKIT_PRIVATE_KEY is not set")
    return LocalSigner(private_key)


def build_client(chain_id: int, rpc_url: Optional[str] = None) -> ContractClient:
    return ContractClient.from_chain_id(chain_id, signer=load_signer(), rpc_url=rpc_url)


def open_project(symbol: str, env: str, rpc_url: Optional[str]) -> Tuple[ProjectStore, ContractClient]:
    """Load the project and a client for its chain, checking ``env`` matches the stored chain"""
    store = ProjectStore(symbol)
    config = store.read()
    chain_id = ChainRegistry.get_chain_id(env)
    if chain_id != config.chain_id:
        raise ConfigValidationError(
            [f"--env {env} is chain {chain_id} but {symbol} is configured for chain {config.chain_id}"]
        )
    return store, build_client(chain_id, rpc_url)


def orchestrator_for(symbol: str, env: str, rpc_url: Optional[str]) -> DeploymentOrchestrator:
    store, client = open_project(symbol, env, rpc_url)
    return DeploymentOrchestrator(client, store, TyperConfirmer())


def manager_for(symbol: str, env: str, rpc_url: Optional[str]) -> CollectionManager:
    store, client = open_project(symbol, env, rpc_url)
    return CollectionManager(client, store, TyperConfirmer())


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"dropkit {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version and exit"
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def new(
    symbol: str = typer.Argument(..., help="Collection symbol, also the project key"),
    name: str = typer.Option(..., "--name", "-n", help="Collection name"),
    env: str = ENV_OPTION,
    standard: TokenStandard = typer.Option(TokenStandard.ERC721, "--standard", "-s"),
    total_tokens: Optional[int] = typer.Option(None, "--total-tokens", help="Token id count (ERC1155)"),
    use_erc721c: bool = typer.Option(False, "--use-erc721c", help="Deploy the ERC721C implementation"),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", exists=True, dir_okay=False, help="JSON file with further collection fields"
    ),
) -> None:
    """Create a new collection project."""
    with reporting_errors():
        data = {}
        if config_file is not None:
            data = json.loads(config_file.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ConfigValidationError([f"{config_file}: expected a JSON object"])
        data.update(
            {
                "name": name,
                "symbol": symbol,
                "chainId": ChainRegistry.get_chain_id(env),
                "tokenStandard": standard.value,
                "useERC721C": use_erc721c,
            }
        )
        if total_tokens is not None:
            data["totalTokens"] = total_tokens
        try:
            config = CollectionConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(format_validation_error(e)) from e
        validate_config(config)

        store = ProjectStore(symbol)
        store.create(config)
        show_success(f"Created project {symbol} at {store.path}")


@app.command("list")
def list_projects() -> None:
    """List stored projects."""
    with reporting_errors():
        symbols = ProjectStore.list_projects()
        if not symbols:
            show_text("No projects found.")
            return
        for symbol in symbols:
            config = ProjectStore(symbol).read()
            status = config.contract_address or "not deployed"
            show_text(f"{config.symbol:<12} {config.token_standard.value:<8} chain {config.chain_id:<10} {status}")


@app.command()
def show(symbol: str = typer.Argument(...)) -> None:
    """Print a project's stored configuration."""
    with reporting_errors():
        config = ProjectStore(symbol).read()
        typer.echo(json.dumps(config.to_json_dict(), indent=2))


@app.command()
def deploy(
    symbol: str = typer.Argument(...),
    env: str = ENV_OPTION,
    setup: SetupOption = typer.Option(SetupOption.DEFERRED, "--setup", help="Run the setup after deploying"),
    freeze: Optional[bool] = typer.Option(None, "--freeze/--no-freeze", help="Freeze transfers after deploy"),
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Deploy the collection contract and wire its transfer policy."""
    with reporting_errors():
        orchestrator = orchestrator_for(symbol, env, rpc_url)
        result = orchestrator.deploy(WorkflowContext(setup=setup, freeze=freeze, assume_yes=yes))
        show_success(f"{symbol} deployed at {result.contract_address} ({result.state.value})")


def init_contract(
    symbol: str = typer.Argument(...),
    env: str = ENV_OPTION,
    fund_receiver: Optional[str] = typer.Option(None, "--fund-receiver", help="Defaults to the signer"),
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Run the one-time setup of a deployed collection."""
    with reporting_errors():
        orchestrator = orchestrator_for(symbol, env, rpc_url)
        orchestrator.setup_contract(WorkflowContext(assume_yes=yes, fund_receiver=fund_receiver))


app.command("init-contract")(init_contract)
app.command("setup", hidden=True)(init_contract)


@app.command("set-stages")
def set_stages(
    symbol: str = typer.Argument(...),
    env: str = ENV_OPTION,
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Replace the on-chain mint stages with the stored ones."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).set_stages(WorkflowContext(assume_yes=yes))


@app.command("set-transfer-validator")
def set_transfer_validator(
    symbol: str = typer.Argument(...),
    env: str = ENV_OPTION,
    validator: Optional[str] = typer.Option(None, "--validator", help="Defaults to the chain's validator"),
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Set the collection's transfer validator."""
    with reporting_errors():
        orchestrator_for(symbol, env, rpc_url).set_transfer_validator(
            validator=validator, context=WorkflowContext(assume_yes=yes)
        )


@app.command("set-transfer-list")
def set_transfer_list(
    symbol: str = typer.Argument(...),
    env: str = ENV_OPTION,
    list_id: Optional[int] = typer.Option(None, "--list-id", help="Defaults to the chain's list id"),
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Apply a transfer list to the collection."""
    with reporting_errors():
        orchestrator_for(symbol, env, rpc_url).apply_transfer_list(
            list_id=list_id, context=WorkflowContext(assume_yes=yes)
        )


@app.command()
def freeze(
    symbol: str = typer.Argument(...),
    env: str = ENV_OPTION,
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Disable token transfers."""
    with reporting_errors():
        orchestrator_for(symbol, env, rpc_url).freeze(frozen=True, context=WorkflowContext(assume_yes=yes))


@app.command()
def thaw(
    symbol: str = typer.Argument(...),
    env: str = ENV_OPTION,
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Re-enable token transfers."""
    with reporting_errors():
        orchestrator_for(symbol, env, rpc_url).freeze(frozen=False, context=WorkflowContext(assume_yes=yes))


@app.command("set-cosigner")
def set_cosigner(
    symbol: str = typer.Argument(...),
    cosigner: str = typer.Argument(...),
    env: str = ENV_OPTION,
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Set the mint cosigner (ERC721)."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).set_cosigner(cosigner, WorkflowContext(assume_yes=yes))


@app.command("set-mintable")
def set_mintable(
    symbol: str = typer.Argument(...),
    mintable: bool = typer.Argument(...),
    env: str = ENV_OPTION,
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Enable or disable minting."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).set_mintable(mintable, WorkflowContext(assume_yes=yes))


@app.command("set-uri")
def set_uri(
    symbol: str = typer.Argument(...),
    uri: str = typer.Argument(...),
    env: str = ENV_OPTION,
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Set the base URI (ERC721) or token URI (ERC1155)."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).set_uri(uri, WorkflowContext(assume_yes=yes))


@app.command("set-token-uri-suffix")
def set_token_uri_suffix(
    symbol: str = typer.Argument(...),
    suffix: str = typer.Argument(...),
    env: str = ENV_OPTION,
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Set the token URI suffix (ERC721)."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).set_token_uri_suffix(suffix, WorkflowContext(assume_yes=yes))


@app.command("set-global-wallet-limit")
def set_global_wallet_limit(
    symbol: str = typer.Argument(...),
    limit: int = typer.Argument(...),
    env: str = ENV_OPTION,
    token_id: Optional[int] = typer.Option(None, "--token-id", help="Required for ERC1155"),
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Set the per-wallet mint limit across all stages."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).set_global_wallet_limit(limit, token_id, WorkflowContext(assume_yes=yes))


@app.command("set-max-mintable-supply")
def set_max_mintable_supply(
    symbol: str = typer.Argument(...),
    supply: int = typer.Argument(...),
    env: str = ENV_OPTION,
    token_id: Optional[int] = typer.Option(None, "--token-id", help="Required for ERC1155"),
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Set the maximum mintable supply."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).set_max_mintable_supply(supply, token_id, WorkflowContext(assume_yes=yes))


@app.command("transfer-ownership")
def transfer_ownership(
    symbol: str = typer.Argument(...),
    new_owner: str = typer.Argument(...),
    env: str = ENV_OPTION,
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Transfer contract ownership."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).transfer_ownership(new_owner, WorkflowContext(assume_yes=yes))


@app.command("set-royalties")
def set_royalties(
    symbol: str = typer.Argument(...),
    receiver: str = typer.Argument(...),
    fee: int = typer.Argument(..., help="Royalty in basis points, 500 = 5%"),
    env: str = ENV_OPTION,
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Set the default royalty receiver and fee."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).set_royalties(receiver, fee, WorkflowContext(assume_yes=yes))


@app.command()
def withdraw(
    symbol: str = typer.Argument(...),
    env: str = ENV_OPTION,
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Withdraw the contract balance to its owner."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).withdraw_balance(WorkflowContext(assume_yes=yes))


@app.command("owner-mint")
def owner_mint(
    symbol: str = typer.Argument(...),
    receiver: str = typer.Argument(...),
    quantity: int = typer.Argument(...),
    env: str = ENV_OPTION,
    token_id: Optional[int] = typer.Option(None, "--token-id", help="Required for ERC1155"),
    yes: bool = YES_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Mint tokens as the contract owner."""
    with reporting_errors():
        manager_for(symbol, env, rpc_url).owner_mint(receiver, quantity, token_id, WorkflowContext(assume_yes=yes))


@app.command()
def balance(
    env: str = ENV_OPTION,
    rpc_url: Optional[str] = RPC_OPTION,
) -> None:
    """Show the signer's native balance on a chain."""
    with reporting_errors():
        client = build_client(ChainRegistry.get_chain_id(env), rpc_url)
        wei = client.get_balance()
        typer.echo(
            format_summary(
                "Signer",
                [
                    ("Address", client.address),
                    ("Balance", f"{Web3.from_wei(wei, 'ether')} {client.chain.native_symbol}"),
                    ("Explorer", client.address_url(client.address)),
                ],
            )
        )


if __name__ == "__main__":
    app()
