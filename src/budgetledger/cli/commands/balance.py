"""Balance commands: adjust, pay the loan, undo."""

import click
from budgetledger.cli.error_handling import handle_domain_error
from budgetledger.cli.services import category_service, format_amount
from budgetledger.domain.entities import ChangeType
from budgetledger.domain.errors import DomainError
from budgetledger.utils.amount_parser import parse_amount


@click.command("adjust")
@click.argument("name")
@click.argument("amount")
@click.option(
    "--type",
    "change_type",
    type=click.Choice([t.value for t in ChangeType], case_sensitive=False),
    required=True,
    help="Add to or subtract from the balance",
)
@click.pass_context
def adjust_category(ctx, name: str, amount: str, change_type: str):
    """Add to or subtract from one category.

    The change can be undone with 'revert' for 48 hours.

    Examples:
        budgetledger adjust groceries 30 --type subtract
        budgetledger adjust fuel 15.50 --type add
    """
    service = category_service(ctx)
    try:
        category = service.adjust_category(name, parse_amount(amount), change_type.lower())
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f'Category "{category.name}" updated successfully.')
    click.echo(f"  New amount: {format_amount(category.amount)}")


@click.command("pay-loan")
@click.argument("name")
@click.argument("amount")
@click.pass_context
def pay_loan(ctx, name: str, amount: str):
    """Pay AMOUNT off the loan out of category NAME.

    Example:
        budgetledger pay-loan savings 500
    """
    service = category_service(ctx)
    try:
        paid = parse_amount(amount)
        category, loan = service.pay_loan(name, paid)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f'Paid {format_amount(paid)} from "{category.name}" and "{loan.name}" successfully.')
    click.echo(f"  {category.name}: {format_amount(category.amount)}")
    click.echo(f"  {loan.name}: {format_amount(loan.amount)}")


@click.command("revert")
@click.pass_context
def revert_latest(ctx):
    """Undo the most recent adjustment."""
    service = category_service(ctx)
    try:
        category = service.revert_latest_transaction()
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f'Reverted latest transaction on "{category.name}".')
    click.echo(f"  Restored amount: {format_amount(category.amount)}")


@click.command("history")
@click.pass_context
def history(ctx):
    """Show adjustments that can still be reverted, newest first."""
    service = category_service(ctx)
    entries = service.list_transaction_log()
    if not entries:
        click.echo("No revertible transactions.")
        return

    click.echo("\nRevertible transactions:")
    click.echo("-" * 70)
    for entry in entries:
        click.echo(
            f"{entry.created_at:%Y-%m-%d %H:%M} | {entry.category_name:20s} | "
            f"{entry.change_type.value:8s} {format_amount(entry.change_amount):>12s} | "
            f"{format_amount(entry.previous_amount)} -> {format_amount(entry.new_amount)}"
        )


def register_commands(cli):
    """Register balance commands with main CLI."""
    cli.add_command(adjust_category)
    cli.add_command(pay_loan)
    cli.add_command(revert_latest)
    cli.add_command(history)
