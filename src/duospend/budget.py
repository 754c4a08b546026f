"""Budget aggregation and yearly summaries."""

from collections.abc import Iterable
from datetime import UTC, tzinfo

from .ledger import in_window
from .models import (
    BudgetMap,
    BudgetReport,
    CategoryDefinition,
    CategorySpend,
    CategoryYearRow,
    PartnerRole,
    SplitRatio,
    Transaction,
    Window,
    YearlySummary,
)
from .money import ZERO, sum_amounts, to_cents


def aggregate_budget(
    transactions: Iterable[Transaction],
    budgets: BudgetMap,
    categories: list[CategoryDefinition],
    window: Window,
) -> BudgetReport:
    """
    Compute spend against limit per category for a window.

    Every registered category starts at zero. Splits in unregistered
    categories are dropped silently since the registry may evolve. A category
    without a configured limit has limit zero, and a zero limit counts as
    unset: it is never reported as over budget.

    Args:
        transactions: Transactions to aggregate
        budgets: Monthly limit per category name
        categories: Category registry
        window: Half-open window to filter on

    Returns:
        Budget report with per-category rows in registry order
    """
    totals = {category.name: ZERO for category in categories}

    for transaction in in_window(transactions, window):
        for split in transaction.splits:
            if split.category in totals:
                totals[split.category] += split.amount

    rows = []
    for name, spent in totals.items():
        limit = budgets.get(name, ZERO)
        rows.append(
            CategorySpend(
                category=name,
                spent=spent,
                limit=limit,
                over_budget=spent > limit and limit > 0,
            )
        )

    total_spent = sum_amounts(row.spent for row in rows)
    total_limit = sum_amounts(row.limit for row in rows)

    return BudgetReport(
        categories=rows,
        total_spent=total_spent,
        total_limit=total_limit,
        remaining=total_limit - total_spent,
    )


def summarize_year(
    transactions: Iterable[Transaction],
    year: int,
    ratio: SplitRatio | None = None,
    share_partner: PartnerRole = PartnerRole.PARTNER_1,
    tz: tzinfo = UTC,
) -> YearlySummary:
    """
    Build a month-by-category spending table for one year.

    Unlike the budget report this covers every category that appears in the
    splits, sorted by name, and adds a row with one partner's share of each
    month's grand total.

    Args:
        transactions: Transactions to summarize
        year: Calendar year
        ratio: Split ratio used for the share row (defaults to 50/50)
        share_partner: Partner whose share is reported
        tz: Timezone used to bucket transactions into months

    Returns:
        Yearly summary with twelve columns per row
    """
    ratio = ratio or SplitRatio()
    by_category: dict[str, list] = {}

    for transaction in in_window(transactions, Window.for_year(year, tz)):
        month_index = transaction.date.astimezone(tz).month - 1
        for split in transaction.splits:
            months = by_category.setdefault(split.category, [ZERO] * 12)
            months[month_index] += split.amount

    rows = [
        CategoryYearRow(category=name, months=by_category[name])
        for name in sorted(by_category)
    ]
    grand_totals = [
        sum_amounts(row.months[month] for row in rows) for month in range(12)
    ]
    share_ratio = ratio.share_of(share_partner)

    return YearlySummary(
        year=year,
        rows=rows,
        grand_totals=grand_totals,
        share_partner=share_partner,
        share_ratio=share_ratio,
        share_totals=[to_cents(total * share_ratio) for total in grand_totals],
    )
