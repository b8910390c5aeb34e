"""
Terminal presentation helpers.

Status and progress go to stderr through a rich console; the review itself is
printed to stdout so it can be piped.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape


console = Console(stderr=True, highlight=False)
output = Console(highlight=False)


def format_success(message: str) -> str:
    return f"[green]✓ {escape(message)}[/green]"


def format_error(message: str) -> str:
    return f"[red]✗ {escape(message)}[/red]"


def format_warning(message: str) -> str:
    return f"[yellow]⚠ {escape(message)}[/yellow]"


def format_info(message: str) -> str:
    return f"[blue]ℹ {escape(message)}[/blue]"


def format_dry_run(message: str) -> str:
    return f"[cyan]\\[DRY RUN] {escape(message)}[/cyan]"


def format_header(message: str) -> str:
    return f"[bold underline]{escape(message)}[/bold underline]"


def format_key_value(key: str, value: Optional[str]) -> str:
    return f"[bold]{escape(key)}[/bold]: {escape(str(value))}"


def print_review(review: str, width: int = 50) -> None:
    """Echo the review between horizontal rules on stdout."""
    rule = "=" * width
    output.print(rule, markup=False)
    output.print(review, markup=False, soft_wrap=True)
    output.print(rule, markup=False)
