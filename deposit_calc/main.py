"""Command‑line interface for the deposit calculator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can compute the full interest ledger, view summaries, look
at the day-by-day breakdown or compare deposit scenarios. Results can be
printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import json
import csv
import logging
import shlex
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .data_models import CalculationResult, DepositConfig
from .engine import APPLY_TYPES, INTEREST_TYPES, build_config, compute_interest, serialize_config, serialize_result
from .errors import DepositCalcError, InvalidAmountError
from .formatter import print_comparison, print_daily, print_ledger, print_summary, print_tier_results
from .logging_config import setup_logging
from .tiers import DEFAULT_TIERS
from .utils import DEFAULT_PRECISION, decimal_from_str, make_context

logger = logging.getLogger(__name__)

MAX_SCENARIOS = 5


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000", "1,000,000.00") and shorthand with
    ``k``/``m`` suffixes (e.g., "500k" meaning 500_000).
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_tier_strings(values: Tuple[str, ...]) -> List[Dict[str, str]]:
    """Parse ``MIN:MAX:RATE`` tier options. ``MAX`` may be empty for the
    open top tier."""
    tiers: List[Dict[str, str]] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 3:
            raise click.BadParameter(f"Tier must be in MIN:MAX:RATE format; got {item}")
        min_str, max_str, rate_str = (p.strip() for p in parts)
        rate_str = rate_str.rstrip("%")
        tiers.append({"min": min_str, "max": max_str, "rate": rate_str})
    return tiers


def build_config_from_options(
    principal: str,
    start_date: str,
    end_date: str,
    tier: Tuple[str, ...],
    interest_type: str = "simple",
    apply_type: str = "daily",
) -> DepositConfig:
    tiers: List[Any] = parse_tier_strings(tier) if tier else list(DEFAULT_TIERS)
    try:
        principal_value = parse_amount(principal)
    except click.BadParameter as exc:
        raise InvalidAmountError(exc.message) from exc
    return build_config(principal_value, start_date, end_date, tiers, interest_type, apply_type)


def export_to_json(path: Path, config: DepositConfig, result: CalculationResult) -> None:
    """Export the request and the full result to a JSON file."""
    data = {"request": serialize_config(config), "result": serialize_result(result)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, result: CalculationResult) -> None:
    """Export the monthly ledger to a CSV file."""
    header = [
        "Period",
        "Month",
        "Start_Date",
        "End_Date",
        "Days",
        "Balance",
        "Interest",
        "Cumulative",
        "Accrued",
        "Applied",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in result.breakdown:
            writer.writerow(
                [
                    e.period,
                    e.label,
                    e.start_date.isoformat(),
                    e.end_date.isoformat(),
                    e.days,
                    str(e.balance),
                    str(e.interest),
                    str(e.cumulative),
                    str(e.accrued),
                    e.applied,
                ]
            )


def _run(ctx: click.Context, config: DepositConfig, include_daily: bool = False) -> CalculationResult:
    try:
        return compute_interest(config, context=ctx.obj["context"], include_daily=include_daily)
    except DepositCalcError as exc:
        logger.warning("Calculation rejected", extra={"extra": {"error": str(exc)}})
        raise click.ClickException(str(exc))


def _config_or_fail(*args) -> DepositConfig:
    try:
        return build_config_from_options(*args)
    except DepositCalcError as exc:
        raise click.BadParameter(str(exc))


def calculation_options(func):
    """Attach the options every calculation command shares."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Deposit amount"),
        click.option("--start-date", "-s", "start_date", required=True, help="First day of the deposit (YYYY-MM-DD)"),
        click.option("--end-date", "-e", "end_date", required=True, help="Last day of the deposit (YYYY-MM-DD)"),
        click.option("--tier", "tier", multiple=True, help="Interest tier in MIN:MAX:RATE format; leave MAX empty for the top tier"),
        click.option("--interest-type", "interest_type", type=click.Choice(INTEREST_TYPES), default="simple", help="Simple or compound interest"),
        click.option("--apply", "apply_type", type=click.Choice(APPLY_TYPES), default="daily", help="How often interest is added to the balance"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--precision", type=int, default=DEFAULT_PRECISION, show_default=True, help="Significant digits for decimal arithmetic")
@click.option("--log-level", default="WARNING", show_default=True, help="Log level (DEBUG, INFO, WARNING, ...)")
@click.pass_context
def cli(ctx: click.Context, precision: int, log_level: str) -> None:
    """A command‑line deposit interest calculator with tiered rates."""
    try:
        setup_logging(log_level)
        decimal_context = make_context(precision)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    ctx.ensure_object(dict)
    ctx.obj["context"] = decimal_context


@cli.command()
@calculation_options
@click.option("--daily", "daily", is_flag=True, help="Also print the day-by-day breakdown")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.pass_context
def schedule(
    ctx: click.Context,
    principal: str,
    start_date: str,
    end_date: str,
    tier: Tuple[str, ...],
    interest_type: str,
    apply_type: str,
    daily: bool,
    output: Optional[str],
) -> None:
    """Compute and print the full monthly interest ledger."""
    config = _config_or_fail(principal, start_date, end_date, tier, interest_type, apply_type)
    result = _run(ctx, config, include_daily=daily)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, config, result)
            click.echo(f"Ledger exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
            click.echo(f"Ledger exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        return
    print_summary(config.principal, result, interest_type, apply_type)
    print_tier_results(result.tier_results)
    print()
    print_ledger(result.breakdown)
    if daily:
        print_daily(result.daily, result.breakdown)


@cli.command()
@calculation_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
@click.pass_context
def summary(
    ctx: click.Context,
    principal: str,
    start_date: str,
    end_date: str,
    tier: Tuple[str, ...],
    interest_type: str,
    apply_type: str,
    output: Optional[str],
) -> None:
    """Compute and print only the totals and tier breakdown."""
    config = _config_or_fail(principal, start_date, end_date, tier, interest_type, apply_type)
    result = _run(ctx, config)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        data = serialize_result(result)
        data.pop("breakdown")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"request": serialize_config(config), "summary": data}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(config.principal, result, interest_type, apply_type)
        print_tier_results(result.tier_results)


@cli.command()
@calculation_options
@click.pass_context
def daily(
    ctx: click.Context,
    principal: str,
    start_date: str,
    end_date: str,
    tier: Tuple[str, ...],
    interest_type: str,
    apply_type: str,
) -> None:
    """Print interest earned on each day, split by tier."""
    config = _config_or_fail(principal, start_date, end_date, tier, interest_type, apply_type)
    result = _run(ctx, config, include_daily=True)
    print_daily(result.daily, result.breakdown)


def parse_scenario_opts(opts: str, index: int) -> Dict[str, Any]:
    """Turn a quoted scenario option string into keyword arguments."""
    tokens = shlex.split(opts)
    params: Dict[str, Any] = {
        "name": f"Scenario {index}",
        "principal": None,
        "interest_type": "simple",
        "apply_type": "daily",
    }
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if i + 1 >= len(tokens):
            raise click.BadParameter(f"Option {token} in scenario needs a value")
        value = tokens[i + 1]
        if token in ("-p", "--principal"):
            params["principal"] = value
        elif token == "--interest-type":
            params["interest_type"] = value.lower()
        elif token == "--apply":
            params["apply_type"] = value.lower()
        elif token in ("-n", "--name"):
            params["name"] = value
        else:
            raise click.BadParameter(f"Unknown option in scenario: {token}")
        i += 2
    if params["principal"] is None:
        raise click.BadParameter(f"Scenario {index} is missing --principal")
    return params


@cli.command()
@click.option("--scenario", "scenario", multiple=True, required=True, help="Scenario options as a quoted string")
@click.option("--start-date", "-s", "start_date", required=True, help="First day of the deposit (YYYY-MM-DD)")
@click.option("--end-date", "-e", "end_date", required=True, help="Last day of the deposit (YYYY-MM-DD)")
@click.option("--tier", "tier", multiple=True, help="Interest tier in MIN:MAX:RATE format")
@click.pass_context
def compare(
    ctx: click.Context,
    scenario: Tuple[str, ...],
    start_date: str,
    end_date: str,
    tier: Tuple[str, ...],
) -> None:
    """Compare up to five deposit scenarios over the same dates and tiers.

    Scenarios are provided as quoted option strings, for example:

        deposit-calc compare -s 2024-01-01 -e 2024-12-31 \\
            --scenario "-p 500k --interest-type simple" \\
            --scenario "-p 500k --interest-type compound --apply monthly"
    """
    if len(scenario) > MAX_SCENARIOS:
        raise click.BadParameter(f"At most {MAX_SCENARIOS} scenarios can be compared")
    rows = []
    for index, opts in enumerate(scenario, start=1):
        params = parse_scenario_opts(opts, index)
        if params["interest_type"] not in INTEREST_TYPES or params["apply_type"] not in APPLY_TYPES:
            raise click.BadParameter(f"Scenario {index} has an unknown interest or apply type")
        config = _config_or_fail(
            params["principal"], start_date, end_date, tier, params["interest_type"], params["apply_type"]
        )
        rows.append((params["name"], config.principal, _run(ctx, config)))
    print_comparison(rows)


if __name__ == "__main__":
    cli()
