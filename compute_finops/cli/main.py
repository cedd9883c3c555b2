"""
CLI interface for Compute FinOps.

Renders the engine's financial views as console tables.
"""

import logging
import sys
from datetime import date
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from compute_finops.config.loader import (
    FinanceConfig,
    ResaleParams,
    ScenarioParams,
    load_finance_config,
    load_scenario_params,
)
from compute_finops.core.baseline import compute_baseline, daily_revenue_and_cogs
from compute_finops.core.benchmark import benchmark_feed
from compute_finops.core.guardrails import GuardrailStatus, build_customer_economics
from compute_finops.core.insights import build_insights
from compute_finops.core.money import round_money, round_rate
from compute_finops.core.reconciliation import reconcile_budget_vs_billing
from compute_finops.core.resale import build_resale_model
from compute_finops.core.simulation import run_scenario
from compute_finops.core.spend import spend_by_department, spend_by_department_project, top_customers
from compute_finops.ledger.generator import generate_usage_records
from compute_finops.ledger.models import UsageRecord
from compute_finops.ledger.reader import load_usage_records
from compute_finops.ledger.window import records_in_window

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _format_currency(amount: float) -> str:
    """Format currency with sign and thousands separators."""
    value = round_money(amount)
    return f"{'-' if value < 0 else ''}${abs(value):,.2f}"


def _format_rate(value: float) -> str:
    return f"${round_rate(value):.4f}"


def _format_pct(value: float) -> str:
    return f"{value:,.2f}%"


def _format_units(value: float) -> str:
    return f"{value:,.0f}"


def _status_style(name: str) -> str:
    return {"OK": "green", "WARN": "yellow", "FAIL": "red"}.get(name, "white")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    days: int = typer.Option(30, "--days", "-d", help="Days of synthetic ledger to generate"),
    seed: int = typer.Option(1337, "--seed", "-s", help="Seed for the synthetic ledger"),
    end_date: Optional[str] = typer.Option(None, "--end-date", help="Last ledger day (YYYY-MM-DD), defaults to today"),
    ledger: Optional[str] = typer.Option(None, "--ledger", "-l", help="Read usage records from a CSV ledger instead"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML finance configuration"),
    last_days: Optional[int] = typer.Option(None, "--last-days", help="Keep only the trailing N days of the ledger"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Compute FinOps CLI."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = {
        "days": days,
        "seed": seed,
        "end_date": end_date,
        "ledger": ledger,
        "config": config,
        "last_days": last_days,
    }
    if ctx.invoked_subcommand is None:
        console.print("Compute FinOps - Use --help to see available commands")


def _load_records(options: dict) -> List[UsageRecord]:
    if options["ledger"]:
        records = load_usage_records(options["ledger"])
    else:
        end = date.fromisoformat(options["end_date"]) if options["end_date"] else None
        records = generate_usage_records(options["days"], options["seed"], end)
    if options["last_days"] is not None:
        records = records_in_window(records, last_days=options["last_days"])
    return records


def _load_config(options: dict) -> FinanceConfig:
    return load_finance_config(options["config"]) if options["config"] else FinanceConfig()


def _fail(error: Exception) -> None:
    console.print(f"[red]Error:[/] {str(error)}")
    sys.exit(EXIT_CODE_FAIL)


@app.command()
def overview(ctx: typer.Context):
    """P&L snapshot: revenue, compute COGS, gross margin and daily trend."""
    try:
        records = _load_records(ctx.obj)
        kpis = compute_baseline(records)

        console.print("\n[bold]Financial Overview - P&L Snapshot[/bold]")
        console.print("-" * 40)
        console.print(f"Revenue: {_format_currency(kpis.revenue)}")
        console.print(f"Compute COGS: {_format_currency(kpis.cogs)}")
        console.print(f"  Fixed: {_format_currency(kpis.fixed)}")
        console.print(f"  Variable: {_format_currency(kpis.variable)}")
        console.print(f"Gross profit: {_format_currency(kpis.gross_profit)}")
        console.print(f"Gross margin: {_format_pct(kpis.gross_margin_pct)}")

        table = Table(title="Revenue vs Compute COGS (Daily)")
        table.add_column("Date")
        table.add_column("Revenue", justify="right")
        table.add_column("COGS", justify="right")
        for day in daily_revenue_and_cogs(records):
            table.add_row(day.date, _format_currency(day.revenue), _format_currency(day.cogs))
        console.print(table)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        _fail(e)


@app.command()
def spend(ctx: typer.Context):
    """Compute spend by department and project, split fixed vs variable."""
    try:
        records = _load_records(ctx.obj)

        dept_table = Table(title="Spend by Department")
        for column in ("Department", "NCC", "Fixed", "Variable", "Total"):
            dept_table.add_column(column, justify="left" if column == "Department" else "right")
        for d in spend_by_department(records):
            dept_table.add_row(
                d.department, _format_units(d.units),
                _format_currency(d.fixed), _format_currency(d.variable), _format_currency(d.cost),
            )
        console.print(dept_table)

        table = Table(title="Spend by Department / Project")
        for column in ("Department", "Project", "NCC", "Fixed", "Variable", "Total"):
            table.add_column(column, justify="left" if column in ("Department", "Project") else "right")
        for p in spend_by_department_project(records):
            table.add_row(
                p.department, p.project, _format_units(p.units),
                _format_currency(p.fixed), _format_currency(p.variable), _format_currency(p.cost),
            )
        console.print(table)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        _fail(e)


@app.command()
def customers(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", help="Number of customers to show"),
):
    """Top external customers by compute cost, with provider mix."""
    try:
        records = _load_records(ctx.obj)
        rows = top_customers(records, limit=limit)
        if not rows:
            console.print("\n[bold yellow]No customer-attributed usage found[/]")
            sys.exit(EXIT_CODE_PASS)

        table = Table(title="Top Customers by Compute Cost")
        table.add_column("Customer")
        for column in ("Projects", "NCC", "Fixed", "Variable", "Total", "Mix"):
            table.add_column(column, justify="right")
        for c in rows:
            mix = ", ".join(
                f"{vendor.value} {_format_currency(cost)}"
                for vendor, cost in c.cost_by_vendor.items() if cost
            )
            table.add_row(
                c.customer, str(c.project_count), _format_units(c.units),
                _format_currency(c.fixed), _format_currency(c.variable), _format_currency(c.cost), mix,
            )
        console.print(table)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        _fail(e)


@app.command()
def guardrails(
    ctx: typer.Context,
    enforced: bool = typer.Option(False, "--enforced", "-e", help="Exit with error code if any customer is below floor"),
):
    """Customer margin guardrails and pricing recommendations."""
    try:
        records = _load_records(ctx.obj)
        config = _load_config(ctx.obj)
        economics = build_customer_economics(records, config.thresholds)

        console.print(
            f"\n[bold]Customer Margin Guardrails[/bold] "
            f"(target {config.thresholds.target_gm * 100:.0f}%, floor {config.thresholds.floor_gm * 100:.0f}%)"
        )
        table = Table()
        table.add_column("Customer")
        for column in ("Revenue", "COGS", "GM %", "$/NCC", "Min $/NCC (Floor)", "Min $/NCC (Target)"):
            table.add_column(column, justify="right")
        table.add_column("Status")
        table.add_column("Recommendation")
        for e in economics:
            style = _status_style(e.status.value)
            table.add_row(
                e.customer, _format_currency(e.revenue), _format_currency(e.cost),
                _format_pct(e.gross_margin_pct * 100), _format_rate(e.price_per_unit),
                _format_rate(e.min_price_at_floor), _format_rate(e.min_price_at_target),
                f"[{style}]{e.status.value}[/]", e.recommendation,
            )
        console.print(table)

        if enforced and any(e.status == GuardrailStatus.FAIL for e in economics):
            sys.exit(EXIT_CODE_FAIL)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        _fail(e)


@app.command()
def reconcile(
    ctx: typer.Context,
    enforced: bool = typer.Option(False, "--enforced", "-e", help="Exit with error code if any day fails"),
):
    """Budget vs provider billing, with variance allocated to departments."""
    try:
        records = _load_records(ctx.obj)
        config = _load_config(ctx.obj)
        result = reconcile_budget_vs_billing(records, config)

        vendor = config.reconciliation_vendor.value
        console.print(f"\n[bold]Budget vs {vendor} Billing[/bold]")
        console.print(f"Budget: {_format_currency(result.totals.budget)}")
        console.print(f"{vendor} billed: {_format_currency(result.totals.billed)}")
        console.print(f"Difference (billed - budget): {_format_currency(result.totals.variance)}")

        table = Table(title="Daily Reconciliation")
        table.add_column("Date")
        for column in ("Budget", "Billed", "Difference", "Diff %"):
            table.add_column(column, justify="right")
        table.add_column("Status")
        for row in result.rows:
            style = _status_style(row.status.value)
            table.add_row(
                row.date, _format_currency(row.budget), _format_currency(row.billed),
                _format_currency(row.variance), _format_pct(row.variance_pct),
                f"[{style}]{row.status.value}[/]",
            )
        console.print(table)

        allocation = Table(title="Variance Allocation by Department")
        allocation.add_column("Department")
        for column in (f"{vendor} Actual", "Share %", "Allocated Difference"):
            allocation.add_column(column, justify="right")
        for a in result.allocations:
            allocation.add_row(
                a.department, _format_currency(a.actual_usage),
                _format_pct(a.share_pct), _format_currency(a.allocated_variance),
            )
        console.print(allocation)

        if enforced and result.has_failures:
            sys.exit(EXIT_CODE_FAIL)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        _fail(e)


@app.command()
def benchmark(
    ctx: typer.Context,
    shock: float = typer.Option(0.0, "--shock", help="Market shock as a fraction, e.g. -0.1"),
):
    """Benchmark GPU price feed per unit and per rig-day."""
    try:
        config = _load_config(ctx.obj)
        table = Table(title=f"Benchmark Feed (shock {shock * 100:+.0f}%)")
        table.add_column("GPU")
        for column in ("Spot $/NCC", "7d Avg $/NCC", "Spread %", "7d Vol %", "$/Rig-Day"):
            table.add_column(column, justify="right")
        for row in benchmark_feed(config.onprem_capacity, shock):
            q = row.quote
            table.add_row(
                q.gpu_class, _format_rate(q.spot), _format_rate(q.avg_7d),
                _format_pct(q.spread_pct * 100), _format_pct(q.volatility_7d_pct * 100),
                _format_currency(row.price_per_rig_day),
            )
        console.print(table)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        _fail(e)


@app.command()
def resale(
    ctx: typer.Context,
    sell_through: float = typer.Option(0.6, "--sell-through", help="Fraction of idle capacity sold"),
    price_pct: float = typer.Option(0.9, "--price-pct", help="Price as a fraction of benchmark spot"),
    incremental_cost: float = typer.Option(0.003, "--incremental-cost", help="Incremental cost per NCC sold"),
    fee_pct: float = typer.Option(0.05, "--fee-pct", help="Marketplace fee fraction"),
    shock: float = typer.Option(0.0, "--shock", help="Market shock as a fraction"),
):
    """Idle on-prem capacity resale model."""
    try:
        records = _load_records(ctx.obj)
        config = _load_config(ctx.obj)
        params = ResaleParams(sell_through, price_pct, incremental_cost, fee_pct)
        model = build_resale_model(records, params, shock, config)

        table = Table(title="Idle Capacity Resale")
        table.add_column("GPU")
        for column in ("Idle NCC", "Resale NCC", "Price $/NCC", "Revenue", "Incr. Cost", "Fees", "Contribution"):
            table.add_column(column, justify="right")
        for row in model.rows + [model.totals]:
            table.add_row(
                row.gpu_class, _format_units(row.idle_units), _format_units(row.resale_units),
                _format_rate(row.price) if row.price is not None else "",
                _format_currency(row.revenue), _format_currency(row.incremental_cost),
                _format_currency(row.fees), _format_currency(row.contribution),
            )
        console.print(table)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        _fail(e)


@app.command()
def simulate(
    ctx: typer.Context,
    scenario: Optional[str] = typer.Option(
        None, "--scenario", help="YAML file with scenario levers (defaults to the stock studio settings)"
    ),
    neutral: bool = typer.Option(False, "--neutral", help="Run the no-change scenario"),
    enforced: bool = typer.Option(
        False, "--enforced", "-e", help="Exit with error code if the scenario lowers gross profit"
    ),
):
    """
    Simulate a what-if scenario against the baseline P&L.

    Levers: price uplift for WARN/FAIL customers, reserved capacity
    discounts, vendor cost shift, and idle capacity resale under a
    market shock.
    """
    try:
        records = _load_records(ctx.obj)
        config = _load_config(ctx.obj)
        if scenario:
            params = load_scenario_params(scenario)
        elif neutral:
            params = ScenarioParams.neutral()
        else:
            params = ScenarioParams.default()

        result = run_scenario(records, params, config)
        shown = result.rounded()

        console.print("\n[bold]Scenario Simulation Result[/bold]")
        console.print("-" * 40)
        table = Table()
        table.add_column("KPI")
        for column in ("Baseline", "Scenario", "Delta"):
            table.add_column(column, justify="right")
        labels = {
            "revenue": "Revenue",
            "cogs": "COGS",
            "gross_profit": "Gross Profit",
            "fixed": "Fixed",
            "variable": "Variable",
        }
        baseline_kpis = shown.baseline.as_dict()
        scenario_kpis = shown.scenario.as_dict()
        delta_kpis = shown.deltas.as_dict()
        for key, label in labels.items():
            table.add_row(
                label,
                _format_currency(baseline_kpis[key]),
                _format_currency(scenario_kpis[key]),
                _format_currency(delta_kpis[key]),
            )
        table.add_row(
            "GM %",
            _format_pct(shown.baseline.gross_margin_pct),
            _format_pct(shown.scenario.gross_margin_pct),
            _format_pct(shown.deltas.gross_margin_pct),
        )
        console.print(table)

        if result.detail.resale_totals is not None:
            totals = result.detail.resale_totals
            console.print(
                f"Resale: revenue {_format_currency(totals.revenue)}, "
                f"contribution {_format_currency(totals.contribution)}"
            )

        if enforced and shown.deltas.gross_profit < 0:
            sys.exit(EXIT_CODE_FAIL)
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        _fail(e)


@app.command()
def insights(ctx: typer.Context):
    """Misallocation and customer-margin insights."""
    try:
        records = _load_records(ctx.obj)
        config = _load_config(ctx.obj)
        report = build_insights(records, config)

        console.print("\n[bold]Variable-heavy departments (>= 70% variable)[/bold]")
        if not report.variable_heavy_departments:
            console.print("[dim]No departments exceed the 70% variable threshold.[/]")
        for d in report.variable_heavy_departments:
            console.print(f"- {d.department}: {d.variable_share * 100:.0f}% variable on {_format_currency(d.cost)}")

        console.print("\n[bold]Projects with highest $/NCC[/bold]")
        if not report.costly_projects:
            console.print("[dim]No projects stand out on $/NCC.[/]")
        for p in report.costly_projects:
            console.print(f"- {p.department} / {p.project}: ${p.cost_per_unit:.3f}/NCC on {_format_currency(p.cost)}")

        console.print("\n[bold]Customers below margin floor[/bold]")
        if not report.customers_below_floor:
            console.print("[dim]No customers are below the floor.[/]")
        for e in report.customers_below_floor:
            console.print(f"- {e.customer}: GM {e.gross_margin_pct * 100:.1f}%")

        console.print("\n[bold]Customers below target (but above floor)[/bold]")
        if not report.customers_below_target:
            console.print("[dim]All customers are at or above target.[/]")
        for e in report.customers_below_target:
            console.print(f"- {e.customer}: GM {e.gross_margin_pct * 100:.1f}%")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        _fail(e)


if __name__ == "__main__":
    app()
