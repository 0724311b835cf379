"""
Operator-facing output: confirmation summaries and transaction links.
"""
import os
import sys
from typing import Any, Iterable, List, Optional, Tuple

import typer

SUMMARY_WIDTH = 60
LABEL_WIDTH = 30


def should_use_color() -> bool:
    """Colors only on an interactive terminal, and never with NO_COLOR set"""
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


def _style(text: str, **kwargs: Any) -> str:
    return typer.style(text, **kwargs) if should_use_color() else text


def collapse_address(address: str) -> str:
    """0x1234...abcd"""
    if not address or len(address) < 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


def format_value(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    return str(value)


def format_summary(title: str, rows: Iterable[Tuple[str, Any]]) -> str:
    """Boxed label/value table shown before a confirmation prompt"""
    header = f" {title.upper()} "
    lines: List[str] = ["", header.center(SUMMARY_WIDTH, "=")]
    for label, value in rows:
        lines.append(f"{(label + ':').ljust(LABEL_WIDTH)}{_style(format_value(value), fg=typer.colors.CYAN)}")
    lines.append("=" * SUMMARY_WIDTH)
    return "\n".join(lines)


def show_text(message: str) -> None:
    typer.echo(message)


def show_success(message: str) -> None:
    typer.echo(_style(message, fg=typer.colors.GREEN))


def show_warning(message: str) -> None:
    typer.echo(_style(message, fg=typer.colors.YELLOW), err=True)


def show_error(message: str) -> None:
    typer.echo(_style(f"Error: {message}", fg=typer.colors.RED), err=True)


def print_transaction(explorer_url: Optional[str], tx_hash: str, label: str = "Transaction successful.") -> None:
    typer.echo("")
    typer.echo(label)
    typer.echo(explorer_url or tx_hash)
    typer.echo("")
