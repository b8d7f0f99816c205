"""CLI helpers for building services from the click context."""

import click

from budgetledger.domain.category import CategoryService
from budgetledger.domain.jobs import JobService


def category_service(ctx: click.Context) -> CategoryService:
    """CategoryService configured from the CLI settings."""
    settings = ctx.obj["settings"]
    return CategoryService(
        ctx.obj["db"],
        require_both_protected=settings.require_both_protected,
        max_retries=settings.max_retries,
    )


def job_service(ctx: click.Context) -> JobService:
    """JobService configured from the CLI settings."""
    return JobService(ctx.obj["db"], fixed_debit_amount=ctx.obj["settings"].fixed_debit_amount)


def format_amount(amount) -> str:
    """Render a balance the same way everywhere in the CLI."""
    return f"{amount:,.2f}"
