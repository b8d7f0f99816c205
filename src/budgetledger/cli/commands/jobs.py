"""Scheduled job commands: run a job now, or keep the scheduler running."""

import click
from budgetledger.cli.error_handling import handle_domain_error
from budgetledger.cli.services import job_service, format_amount
from budgetledger.domain.errors import DomainError
from budgetledger.scheduling import LedgerScheduler, debit_cycle_id, rollover_cycle_id
from budgetledger.utils.amount_parser import parse_amount
from budgetledger.utils.date_parser import parse_moment


@click.command("run-rollover")
@click.option(
    "--date",
    "run_date",
    help="Run as the rollover for this date's month; a month already rolled over is skipped",
)
@click.pass_context
def run_rollover(ctx, run_date: str | None):
    """Roll leftover balances into savings and re-apply recurring amounts.

    Without --date the rollover always runs.
    """
    service = job_service(ctx)
    try:
        cycle_id = rollover_cycle_id(parse_moment(run_date)) if run_date else None
        result = service.run_monthly_rollover(cycle_id=cycle_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if result.already_ran:
        click.echo(f"Rollover for {result.cycle_id} already ran. Nothing to do.")
        return

    click.echo(f'Transferred {format_amount(result.transferred)} to "savings".')
    click.echo(f"Reset {result.reset_count} categories.")
    if result.reseeded:
        click.echo(f"Re-applied recurring amounts: {', '.join(result.reseeded)}")
    for name in result.unmatched_templates:
        click.echo(f"Warning: No matching category for recurring '{name}'. Skipped.", err=True)
    for name in result.failed_templates:
        click.echo(f"Warning: Could not re-apply recurring '{name}'.", err=True)


@click.command("run-fixed-debit")
@click.option("--amount", help="Amount to debit (defaults to BUDGETLEDGER_FIXED_DEBIT_AMOUNT)")
@click.option("--date", "run_date", help="Run as the debit due on this date; repeats are skipped")
@click.pass_context
def run_fixed_debit(ctx, amount: str | None, run_date: str | None):
    """Debit the fixed EMI amount from "savings" and from "loan"."""
    service = job_service(ctx)
    try:
        debit = parse_amount(amount) if amount is not None else None
        cycle_id = debit_cycle_id(parse_moment(run_date)) if run_date else None
        result = service.run_periodic_fixed_debit(amount=debit, cycle_id=cycle_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    if result.already_ran:
        click.echo(f"Fixed debit for {result.cycle_id} already ran. Nothing to do.")
        return

    for name in result.debited:
        click.echo(f'Debited {format_amount(result.amount)} from "{name}".')
    for name in result.skipped:
        click.echo(f'Warning: Skipped "{name}" (missing or insufficient funds).', err=True)


@click.command("purge-logs")
@click.pass_context
def purge_logs(ctx):
    """Delete transaction log entries older than the retention window."""
    purged = job_service(ctx).run_log_purge()
    click.echo(f"Purged {purged} expired transaction log entries.")


@click.command("scheduler")
@click.pass_context
def scheduler(ctx):
    """Run the monthly rollover and the fixed debit on their schedule.

    Keeps running in the foreground until interrupted (Ctrl+C).
    """
    settings = ctx.obj["settings"]
    ledger_scheduler = LedgerScheduler.from_settings(job_service(ctx), settings)
    ledger_scheduler.start()
    for job, due in sorted(ledger_scheduler.next_runs.items()):
        click.echo(f"Next {job}: {due:%Y-%m-%d %H:%M}")
    try:
        ledger_scheduler.wait()
    except KeyboardInterrupt:
        click.echo("Stopping scheduler...")
    finally:
        ledger_scheduler.stop()


def register_commands(cli):
    """Register job commands with main CLI."""
    cli.add_command(run_rollover)
    cli.add_command(run_fixed_debit)
    cli.add_command(purge_logs)
    cli.add_command(scheduler)
