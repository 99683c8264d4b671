"""
Gavel CLI - Command Line Interface for the auction engine.

Main entry point for all CLI commands.
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from gavel import __version__
from gavel.core.auction import AuctionEngine
from gavel.core.config import EngineConfig, load_config
from gavel.core.events import EventLog
from gavel.core.funds import InMemoryFunds
from gavel.utils.logger import GavelLogger, get_logger, setup_logging

logger = get_logger("cli")


def _format_outcome(value, error) -> str:
    if error is not None:
        return f"✗ {error}"
    return f"✓ {value}"


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False),
              help="JSON config file")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, debug, config_path):
    """Gavel - single-item auction settlement engine"""
    config = load_config(config_path)

    level = logging.DEBUG if debug else getattr(logging, config.log_level)
    GavelLogger.reset()
    setup_logging(level=level, log_dir=str(config.log_dir), log_to_file=config.log_to_file)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config


# =============================================================================
# Demo Command
# =============================================================================


@cli.command("demo")
@click.option("--start", default=1_000, help="Auction start time")
@click.pass_context
def demo(ctx, start):
    """Run an open auction end to end with an in-memory funds backend"""
    config: EngineConfig = ctx.obj["config"]
    unit = config.currency_symbol

    funds = InMemoryFunds()
    journal = EventLog()
    engine = AuctionEngine("operator", funds, config=config, observers=[journal])

    click.echo("=" * 60)
    click.echo("  GAVEL - AUCTION DEMO")
    click.echo("=" * 60)
    click.echo()

    click.echo("🗓️  Operator schedules the auction...")
    schedule, err = engine.configure(100, start, 1000, now=start - 1, caller="operator")
    click.echo(f"  {_format_outcome(schedule, err)}")
    click.echo(f"  Phase at {start - 1}: {engine.phase(start - 1).name}")
    click.echo(f"  Phase at {start}: {engine.phase(start).name}")
    click.echo()

    click.echo("💰 Bidding opens...")
    for bidder, amount in (("alice", 50), ("bob", 40)):
        bid, err = engine.submit_bid(bidder, False, amount, amount, now=start)
        click.echo(f"  {bidder} bids {amount} {unit}: {_format_outcome(bid, err)}")
    click.echo(f"  Highest: {engine.highest_bid} {unit} by {engine.winning_bidder}")
    click.echo()

    click.echo("🏦 Carol deposits and takes part of it back...")
    balance, err = engine.deposit("carol", 30, now=start + 1)
    click.echo(f"  deposit 30: {_format_outcome(balance, err)}")
    amount, err = engine.refund_percentage("carol", 50)
    click.echo(f"  refund 50%: {_format_outcome(amount, err)}")
    amount, err = engine.withdraw_deposit("carol")
    click.echo(f"  withdraw: {_format_outcome(amount, err)}")
    click.echo()

    click.echo("⚖️  Ending the auction...")
    result, err = engine.end(now=start + 999, caller="operator")
    click.echo(f"  at {start + 999}: {_format_outcome(result, err)}")
    result, err = engine.end(now=start + 1000, caller="operator")
    click.echo(f"  at {start + 1000}: {_format_outcome(result, err)}")
    click.echo(f"  Operator received: {funds.paid_to('operator')} {unit}")
    click.echo()

    click.echo("📊 Final Statistics:")
    for key, value in engine.stats().items():
        click.echo(f"  {key}: {value}")
    click.echo(f"  events: {len(journal)}, digest: {journal.digest_hex[:18]}...")
    click.echo()
    click.echo("✅ Demo complete!")


# =============================================================================
# Replay Command
# =============================================================================


def run_step(engine: AuctionEngine, step: dict):
    """
    Apply one scripted operation to the engine.

    Returns:
        (value, error) as returned by the engine
    """
    op = step.get("op")

    if op == "configure":
        return engine.configure(
            step["initial_price"],
            step["start_time"],
            step["duration"],
            now=step["now"],
            caller=step.get("caller", engine.operator),
        )
    if op == "bid":
        amount = step["amount"]
        return engine.submit_bid(
            step["identity"],
            step.get("sealed", False),
            amount,
            step.get("attached", amount),
            now=step["now"],
        )
    if op == "deposit":
        return engine.deposit(step["identity"], step["amount"], now=step["now"])
    if op == "withdraw":
        return engine.withdraw_deposit(step["identity"])
    if op == "refund":
        return engine.refund_percentage(step["identity"], step["percentage"])
    if op == "end":
        return engine.end(now=step["now"], caller=step.get("caller", engine.operator))
    if op == "winner":
        return engine.get_winner()

    raise click.BadParameter(f"unknown operation {op!r}", param_hint="SCRIPT")


@cli.command("replay")
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@click.option("--strict", is_flag=True, help="Exit non-zero if any step is rejected")
@click.option("--fail-transfers-to", multiple=True, help="Recipients whose transfers fail")
@click.pass_context
def replay(ctx, script, strict, fail_transfers_to):
    """Replay a JSON script of operations against a fresh engine"""
    data = json.loads(Path(script).read_text())
    operator: Optional[str] = data.get("operator", "operator")

    funds = InMemoryFunds()
    funds.failing_recipients.update(fail_transfers_to)
    journal = EventLog()
    engine = AuctionEngine(operator, funds, config=ctx.obj["config"], observers=[journal])

    rejected = 0
    for i, step in enumerate(data.get("steps", [])):
        try:
            value, error = run_step(engine, step)
        except KeyError as e:
            raise click.BadParameter(f"step {i} is missing {e.args[0]!r}", param_hint="SCRIPT")
        if error is not None:
            rejected += 1
        click.echo(f"[{i}] {step.get('op')}: {_format_outcome(value, error)}")

    click.echo(json.dumps(engine.stats(), indent=2, default=str))
    click.echo(f"digest: {journal.digest_hex}")
    logger.debug(f"Replayed {script}: {rejected} rejected step(s)")

    if strict and rejected:
        ctx.exit(1)


# =============================================================================
# Stats Command
# =============================================================================


@cli.command("stats")
def stats():
    """Show system information"""
    click.echo("Gavel System Information")
    click.echo("-" * 40)
    click.echo(f"  Version: {__version__}")
    click.echo("  Modules: Ledger, Admission, State Machine, Settlement")
    click.echo("  Phases: UNCONFIGURED -> SCHEDULED -> OPEN -> ENDED")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
