from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

import xlsxwriter
from sqlalchemy import select
from sqlalchemy.orm import Session

from moneyflow.core.errors import InvalidInput
from moneyflow.models.account import FinancialAccount
from moneyflow.models.bank_account import BankAccount
from moneyflow.models.savings_goal import SavingsGoal
from moneyflow.models.transaction import Transaction
from moneyflow.models.wallet import DigitalWallet
from moneyflow.utils.timezone import utcnow

PERIODS = ("today", "week", "month", "all")


def transaction_stats(rows: Iterable[Transaction]) -> dict:
    """Totals for rows of a single currency."""
    totals: dict[str, Decimal] = defaultdict(Decimal)
    count = 0
    for t in rows:
        totals[t.type] += Decimal(str(t.amount))
        count += 1
    income = totals["income"]
    expenses = totals["expense"]
    return {
        "total_income": income,
        "total_expenses": expenses,
        "total_savings": totals["saving"],
        "balance": income - expenses,
        "count": count,
    }


def stats_by_currency(rows: Iterable[Transaction]) -> dict[str, dict]:
    """``transaction_stats`` per currency; amounts in different currencies never add up."""
    groups: dict[str, list[Transaction]] = defaultdict(list)
    for t in rows:
        groups[t.currency].append(t)
    return {currency: transaction_stats(groups[currency]) for currency in sorted(groups)}


def period_start(period: str, now: datetime | None = None) -> datetime | None:
    now = now or utcnow()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "today":
        return midnight
    if period == "week":
        return midnight - timedelta(days=6)
    if period == "month":
        return midnight.replace(day=1)
    if period == "all":
        return None
    raise InvalidInput(f"unknown period {period}", field="period")


def balances_by_currency(s: Session, user_id: str) -> dict[str, Decimal]:
    out: dict[str, Decimal] = defaultdict(Decimal)
    for model in (FinancialAccount, BankAccount, DigitalWallet):
        for currency, balance in s.execute(
            select(model.currency, model.balance).where(model.user_id == user_id)
        ).all():
            out[currency] += Decimal(str(balance))
    return dict(out)


def dashboard_summary(s: Session, user_id: str, period: str = "month", now: datetime | None = None) -> dict:
    start = period_start(period, now)
    q = select(Transaction).where(Transaction.user_id == user_id)
    if start is not None:
        q = q.where(Transaction.date >= start)
    rows = s.execute(q).scalars().all()

    goals = s.execute(
        select(SavingsGoal)
        .where(SavingsGoal.user_id == user_id, SavingsGoal.status == "active")
        .order_by(SavingsGoal.created_at.asc())
    ).scalars().all()

    return {
        "period": period,
        "stats": stats_by_currency(rows),
        "balances_by_currency": balances_by_currency(s, user_id),
        "goals": [
            {
                "id": g.id,
                "name": g.name,
                "target_amount": g.target_amount,
                "current_amount": g.current_amount,
                "percent": round(float(g.current_amount) / float(g.target_amount) * 100, 2) if g.target_amount else 0.0,
            }
            for g in goals
        ],
    }


def build_transactions_report(s: Session, user_id: str, start: datetime, end: datetime, out_file) -> None:
    txs = (
        s.execute(
            select(Transaction)
            .where(
                Transaction.user_id == user_id,
                Transaction.date >= start,
                Transaction.date <= end,
            )
            .order_by(Transaction.date.asc(), Transaction.id.asc())
        )
        .scalars()
        .all()
    )
    by_currency = stats_by_currency(txs)

    wb = xlsxwriter.Workbook(out_file, {"in_memory": True})
    base_font = "Calibri"

    meta_label = wb.add_format({"bold": True, "font_name": base_font, "font_size": 11, "font_color": "#334155"})
    subtle = wb.add_format({"font_name": base_font, "font_size": 10, "font_color": "#64748b"})
    title = wb.add_format({"bold": True, "font_name": base_font, "font_size": 14, "font_color": "#0f172a"})
    header = wb.add_format(
        {
            "bold": True,
            "font_name": base_font,
            "font_size": 11,
            "bg_color": "#F1F5F9",
            "border": 1,
            "align": "center",
            "valign": "vcenter",
        }
    )
    date_fmt = wb.add_format({"font_name": base_font, "font_size": 11, "num_format": "yyyy-mm-dd", "border": 1})
    money2 = wb.add_format(
        {"font_name": base_font, "font_size": 11, "num_format": "#,##0.00", "border": 1, "align": "right"}
    )
    text_cell = wb.add_format({"font_name": base_font, "font_size": 11, "border": 1, "align": "left"})
    total_label = wb.add_format(
        {"bold": True, "font_name": base_font, "font_size": 11, "bg_color": "#F8FAFC", "border": 1}
    )
    stripe_text = wb.add_format({"bg_color": "#FBFDFF", "align": "left"})
    stripe_money2 = wb.add_format({"bg_color": "#FBFDFF", "num_format": "#,##0.00", "align": "right"})
    for f in (stripe_text, stripe_money2):
        f.set_border(1)
        f.set_font_name(base_font)
        f.set_font_size(11)

    summary = wb.add_worksheet("Summary")
    summary.set_column(0, 0, 22)
    summary.set_column(1, 1, 30)
    summary.write(0, 0, "Transactions Summary", title)
    summary.write(2, 0, "Range", meta_label)
    summary.write(2, 1, f"{start:%Y-%m-%d} to {end:%Y-%m-%d}", subtle)
    summary.write(3, 0, "Generated", meta_label)
    summary.write(3, 1, utcnow().strftime("%Y-%m-%d %H:%M"), subtle)

    summary.set_column(2, 5, 16)
    summary_headers = ["Currency", "Total Income", "Total Expenses", "Total Savings", "Balance", "Transactions"]
    for c, h in enumerate(summary_headers):
        summary.write(5, c, h, header)
    for i, (currency, stats) in enumerate(by_currency.items(), start=6):
        summary.write(i, 0, currency, total_label)
        for c, k in enumerate(("total_income", "total_expenses", "total_savings", "balance"), start=1):
            summary.write_number(i, c, float(stats[k]), money2)
        summary.write_number(i, 5, stats["count"], text_cell)

    ws = wb.add_worksheet("Transactions")
    ws.set_column(0, 0, 12)  # Date
    ws.set_column(1, 2, 22)  # Type, Category
    ws.set_column(3, 3, 16)  # Amount
    ws.set_column(4, 4, 10)  # Currency
    ws.set_column(5, 5, 40)  # Description
    ws.set_column(6, 6, 12)  # State

    headers = ["Date", "Type", "Category", "Amount", "Currency", "Description", "State"]
    ws.set_row(0, 18)
    for c, h in enumerate(headers):
        ws.write(0, c, h, header)
    ws.freeze_panes(1, 1)

    r = 1
    for t in txs:
        ws.write_datetime(r, 0, t.date, date_fmt)
        ws.write(r, 1, t.type, text_cell)
        ws.write(r, 2, t.category, text_cell)
        ws.write_number(r, 3, float(t.amount), money2)
        ws.write(r, 4, t.currency, text_cell)
        ws.write(r, 5, t.description or "", text_cell)
        ws.write(r, 6, t.state, text_cell)
        r += 1

    last_row = r - 1
    if last_row >= 1:
        ws.autofilter(0, 0, last_row, len(headers) - 1)
        ws.conditional_format(
            1, 1, last_row, 2, {"type": "formula", "criteria": "=MOD(ROW(),2)=0", "format": stripe_text}
        )
        ws.conditional_format(
            1, 3, last_row, 3, {"type": "formula", "criteria": "=MOD(ROW(),2)=0", "format": stripe_money2}
        )

        ws.set_landscape()
        ws.fit_to_pages(1, 0)

    wb.close()
