#!/usr/bin/env python3
"""
vestledger CLI - Vesting schedule inspection and simulation

Commands:
- schedule: Release calendar for the configured deployment
- status: Ledger view at a given timestamp
- simulate: End-to-end run against an in-memory token, driven by
  beneficiary claims or by a keeper polling check_due/perform_due
"""

from __future__ import annotations

import json
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vestledger.core.clock import ManualClock
from vestledger.core.config import ConfigurationError, VestingConfig
from vestledger.core.constants import SECONDS_PER_DAY
from vestledger.core.contracts.erc20 import ERC20Token
from vestledger.core.ledger_exceptions import LedgerError, NothingDue
from vestledger.core.structured_logger import configure_logging, correlation_id
from vestledger.core.units import format_amount
from vestledger.core.vesting.ledger import VestingLedger
from vestledger.core.vesting.schedule import ActivationMode, build_calendar
from vestledger.core.vesting.upkeep import UpkeepAgent

logger = logging.getLogger(__name__)

console = Console()

SIM_BENEFICIARY = "0x" + "b1" * 20
SIM_DEPOSITOR = "0x" + "d0" * 20
SIM_KEEPER = "0x" + "4e" * 20


def _cli_fail(exc: Exception, exit_code: int = 1) -> None:
    """Centralized CLI error handler for consistent messaging."""
    logger.error("CLI error: %s", exc, exc_info=True)
    console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def _iso(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _emit_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _deploy_simulation(config: VestingConfig, clock: ManualClock) -> VestingLedger:
    """Mint, approve, deploy and fund a ledger against an in-memory token."""
    token = ERC20Token(name="Vesting Token", symbol="VEST", owner=SIM_DEPOSITOR)
    token.mint(SIM_DEPOSITOR, SIM_DEPOSITOR, config.deposit_limit)
    ledger = VestingLedger.from_config(config, SIM_BENEFICIARY, token, time_provider=clock)
    token.approve(SIM_DEPOSITOR, ledger.address, config.deposit_limit)
    ledger.deposit(SIM_DEPOSITOR, config.deposit_limit)
    if config.activation_mode is ActivationMode.EXPLICIT:
        ledger.activate_schedule(SIM_BENEFICIARY)
    return ledger


# ============================================================================
# CLI Group
# ============================================================================

@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="VESTLEDGER_CONFIG",
    help="YAML deployment file.",
)
@click.option("--deposit-limit", type=int, help="Deposit limit in base units.")
@click.option("--schedule-start", type=int, help="First installment Unix timestamp.")
@click.option(
    "--activation-mode",
    type=click.Choice([m.value for m in ActivationMode]),
    help="Eager (deposit activates) or explicit (separate activation).",
)
@click.option("--json-output", is_flag=True, help="Output raw JSON")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.option("--log-json", is_flag=True, help="Emit logs as JSON lines.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    deposit_limit: Optional[int],
    schedule_start: Optional[int],
    activation_mode: Optional[str],
    json_output: bool,
    log_level: str,
    log_json: bool,
):
    """
    vestledger - twelve-installment token vesting ledger.
    """
    ctx.ensure_object(dict)
    configure_logging(level=log_level, json_output=log_json)
    run_token = correlation_id.set(uuid.uuid4().hex[:12])
    ctx.call_on_close(lambda: correlation_id.reset(run_token))
    try:
        config = VestingConfig.load(
            config_path,
            deposit_limit=deposit_limit,
            schedule_start=schedule_start,
            activation_mode=activation_mode,
        )
    except ConfigurationError as exc:
        _cli_fail(exc, exit_code=2)
    ctx.obj["config"] = config
    ctx.obj["json_output"] = json_output


@cli.command("schedule")
@click.pass_context
def schedule_cmd(ctx: click.Context):
    """Show the twelve unlock dates and installment amounts."""
    config: VestingConfig = ctx.obj["config"]
    calendar = build_calendar(config.deposit_limit, config.schedule_start)
    remainder = config.deposit_limit - sum(slot.amount for slot in calendar)

    if ctx.obj["json_output"]:
        _emit_json({
            "config": config.to_dict(),
            "installments": [
                {"index": s.index, "unlocks_at": s.unlocks_at, "amount": s.amount}
                for s in calendar
            ],
            "locked_remainder": remainder,
        })
        return

    table = Table(title="Vesting Schedule", box=box.ROUNDED)
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Unlocks At", style="green")
    table.add_column("Amount", justify="right")
    table.add_column("Cumulative", justify="right", style="yellow")
    cumulative = 0
    for slot in calendar:
        cumulative += slot.amount
        table.add_row(
            str(slot.index),
            _iso(slot.unlocks_at),
            format_amount(slot.amount, config.token_decimals),
            format_amount(cumulative, config.token_decimals),
        )
    console.print(table)
    if remainder:
        console.print(f"[dim]Locked rounding remainder: {remainder} base units[/]")


@cli.command("status")
@click.option("--at", "at_time", type=int, required=True, help="Unix timestamp to evaluate.")
@click.pass_context
def status_cmd(ctx: click.Context, at_time: int):
    """Show entitlement for a freshly funded deployment at a timestamp."""
    config: VestingConfig = ctx.obj["config"]
    try:
        ledger = _deploy_simulation(config, ManualClock(at_time))
        state = ledger.get_state()
    except LedgerError as exc:
        _cli_fail(exc)

    if ctx.obj["json_output"]:
        _emit_json(state)
        return

    table = Table(show_header=False, box=box.ROUNDED, title=f"Ledger at {_iso(at_time)}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    for key in (
        "schedule_state",
        "deposit_state",
        "entitled_installments",
        "claimed_installments",
        "amount_per_installment",
        "releasable_amount",
    ):
        table.add_row(key, str(state[key]))
    console.print(table)


@cli.command("simulate")
@click.option(
    "--driver",
    type=click.Choice(["claim", "keeper"]),
    default="claim",
    show_default=True,
    help="Who triggers releases: the beneficiary or a keeper agent.",
)
@click.option(
    "--step-days",
    type=click.IntRange(1, 400),
    default=30,
    show_default=True,
    help="Days between release attempts.",
)
@click.option(
    "--steps",
    type=click.IntRange(1, 1000),
    default=13,
    show_default=True,
    help="Number of release attempts, the first at schedule start.",
)
@click.pass_context
def simulate_cmd(ctx: click.Context, driver: str, step_days: int, steps: int):
    """Run the full lifecycle against an in-memory token."""
    config: VestingConfig = ctx.obj["config"]
    clock = ManualClock(config.schedule_start)
    try:
        ledger = _deploy_simulation(config, clock)
    except LedgerError as exc:
        _cli_fail(exc)
    agent = UpkeepAgent(ledger, agent_address=SIM_KEEPER)

    rows: List[Dict[str, Any]] = []
    for step in range(steps):
        if step:
            clock.advance(step_days * SECONDS_PER_DAY)
        released = 0
        if driver == "keeper":
            released = agent.run_once().amount
        else:
            try:
                released = ledger.claim(SIM_BENEFICIARY)
            except NothingDue:
                released = 0
        rows.append({
            "timestamp": clock.now(),
            "entitled": ledger.current_entitled_installments(),
            "claimed": ledger.claimed_installments,
            "released": released,
            "total_released": ledger.total_released,
        })

    summary = {
        "driver": driver,
        "total_released": ledger.total_released,
        "beneficiary_balance": ledger.token.balance_of(SIM_BENEFICIARY),
        "custody_balance": ledger.custody_balance,
        "locked_remainder": (
            ledger.total_deposited - ledger.TOTAL_INSTALLMENTS * ledger.amount_per_installment
        ),
        "fully_claimed": ledger.is_fully_claimed,
    }

    if ctx.obj["json_output"]:
        _emit_json({"steps": rows, "summary": summary})
        return

    table = Table(title=f"Simulation ({driver})", box=box.ROUNDED)
    table.add_column("Time", style="green")
    table.add_column("Entitled", justify="right")
    table.add_column("Claimed", justify="right", style="cyan")
    table.add_column("Released", justify="right")
    table.add_column("Total Released", justify="right", style="yellow")
    for row in rows:
        table.add_row(
            _iso(row["timestamp"]),
            str(row["entitled"]),
            str(row["claimed"]),
            format_amount(row["released"], config.token_decimals),
            format_amount(row["total_released"], config.token_decimals),
        )
    console.print(table)
    console.print(Panel.fit(
        f"Released {format_amount(summary['total_released'], config.token_decimals)} tokens; "
        f"{format_amount(summary['custody_balance'], config.token_decimals)} still in custody, "
        f"{summary['locked_remainder']} base units locked permanently.",
        title="Summary",
    ))


def main() -> int:
    """Console script entry point."""
    return cli(obj={})


if __name__ == "__main__":
    sys.exit(main() or 0)
