"""Category management commands."""

import click
from budgetledger.cli.error_handling import handle_domain_error
from budgetledger.cli.services import category_service, format_amount
from budgetledger.domain.entities import UpdateMode
from budgetledger.domain.errors import DomainError
from budgetledger.utils.category_parser import parse_category_specs


@click.command("init")
@click.argument("categories", nargs=-1, required=True, metavar="NAME=AMOUNT...")
@click.pass_context
def init_categories(ctx, categories: tuple[str, ...]):
    """Initialize the ledger, replacing every existing category.

    Every category except "loan" also becomes a recurring template.

    Examples:
        budgetledger init loan=50000 savings=0 groceries=100
    """
    service = category_service(ctx)
    try:
        count = service.initialize_categories(parse_category_specs(categories))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Categories initialized successfully ({count} categories).")


@click.command("add")
@click.argument("categories", nargs=-1, required=True, metavar="NAME=AMOUNT...")
@click.option("--once", is_flag=True, help="Do not re-apply the amount on every rollover")
@click.option(
    "--exclude-from-savings",
    is_flag=True,
    help="Do not sweep the leftover balance into savings on rollover",
)
@click.pass_context
def add_categories(ctx, categories: tuple[str, ...], once: bool, exclude_from_savings: bool):
    """Add categories to an initialized ledger.

    Examples:
        budgetledger add fuel=40 fun=20
        budgetledger add gift=200 --once
    """
    service = category_service(ctx)
    try:
        inputs = parse_category_specs(
            categories, is_repeat=not once, is_add_to_savings=not exclude_from_savings
        )
        count = service.add_categories(inputs)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"New categories added successfully ({count} categories).")


@click.command("update")
@click.argument("categories", nargs=-1, required=True, metavar="NAME=AMOUNT...")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in UpdateMode], case_sensitive=False),
    required=True,
    help="permanent updates recurring templates, temporary updates current balances",
)
@click.option("--strict", is_flag=True, help="Apply nothing if any name is unknown")
@click.pass_context
def update_categories(ctx, categories: tuple[str, ...], mode: str, strict: bool):
    """Overwrite amounts of several categories at once.

    Examples:
        budgetledger update --mode temporary groceries=80 fuel=30
        budgetledger update --mode permanent groceries=150
    """
    service = category_service(ctx)
    try:
        count = service.update_categories(mode.lower(), parse_category_specs(categories), strict=strict)
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Categories updated successfully in {mode.lower()} mode ({count} updated).")


@click.command("list")
@click.option("--recurring", is_flag=True, help="List recurring templates instead of balances")
@click.pass_context
def list_categories(ctx, recurring: bool):
    """List categories and their balances."""
    service = category_service(ctx)
    categories = service.list_categories(recurring=recurring)
    if not categories:
        click.echo("No categories found. Run 'init' to set up the ledger.")
        return

    click.echo("\nRecurring categories:" if recurring else "\nCategories:")
    click.echo("-" * 50)
    for cat in categories:
        line = f"{cat.name:25s} {format_amount(cat.amount):>15s}"
        if not recurring and not cat.is_add_to_savings:
            line += "  (kept out of savings)"
        click.echo(line)


@click.command("delete")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def delete_categories(ctx, names: tuple[str, ...]):
    """Delete categories and their recurring templates.

    "loan" and "savings" cannot be deleted.
    """
    service = category_service(ctx)
    try:
        deleted = service.delete_categories(list(names))
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted {deleted} entries.")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(init_categories)
    cli.add_command(add_categories)
    cli.add_command(update_categories)
    cli.add_command(list_categories)
    cli.add_command(delete_categories)
