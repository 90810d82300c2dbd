# rockmundo/finance.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from rockmundo.config import DAYS_PER_YEAR, LEDGER_MONTHS, MIN_HOLDING_YEARS
from rockmundo.errors import InsufficientFundsError, NotFoundError, ValidationError
from rockmundo.logger import get_logger
from rockmundo.models import (
    FinancialSummary,
    InvestmentPosition,
    LedgerMonth,
    PortfolioPerformance,
    PositionPerformance,
    Transaction,
)
from rockmundo.store import GameStore

logger = get_logger(__name__)

CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£"}


def format_currency(amount: float, currency: str = "USD") -> str:
    """$1,234 for whole amounts, $1,234.50 otherwise; unknown codes trail the number."""
    rounded = round(amount, 2)
    sign = "-" if rounded < 0 else ""
    value = abs(rounded)
    body = f"{value:,.0f}" if value == int(value) else f"{value:,.2f}"

    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    if symbol:
        return f"{sign}{symbol}{body}"
    return f"{sign}{body} {currency.upper()}"


def parse_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def filter_transactions(
    transactions: Iterable[Transaction],
    *,
    start: Union[str, date, None] = None,
    end: Union[str, date, None] = None,
    types: Union[str, Sequence[str], None] = None,
    limit: Optional[int] = None,
) -> List[Transaction]:
    """Newest first. Unparseable bounds are ignored."""
    allowed = [types] if isinstance(types, str) else types
    lo, hi = parse_date(start), parse_date(end)

    out = []
    for txn in sorted(transactions, key=lambda t: t.date, reverse=True):
        if allowed and txn.type not in allowed:
            continue
        if lo and txn.date < lo:
            continue
        if hi and txn.date > hi:
            continue
        out.append(txn)

    if limit and limit > 0:
        return out[:limit]
    return out


def annualized_return(roi: float, start: date, today: date) -> float:
    years = max((today - start).days / DAYS_PER_YEAR, MIN_HOLDING_YEARS)
    if 1 + roi <= 0:
        return -1.0
    return (1 + roi) ** (1 / years) - 1


def portfolio_performance(positions: Sequence[InvestmentPosition], today: date) -> PortfolioPerformance:
    if not positions:
        return PortfolioPerformance(0.0, 0.0, 0.0, 0.0, 0.0, [])

    performance = []
    for p in positions:
        roi = (p.current_value - p.invested_amount) / p.invested_amount if p.invested_amount else 0.0
        performance.append(PositionPerformance(
            position=p,
            roi=roi,
            annualized_roi=annualized_return(roi, p.start_date, today),
        ))

    invested = sum(p.invested_amount for p in positions)
    current = sum(p.current_value for p in positions)
    weighted = sum(pp.annualized_roi * pp.position.current_value for pp in performance)
    net = current - invested

    return PortfolioPerformance(
        total_invested=invested,
        total_current_value=current,
        net_gain=net,
        roi=net / invested if invested else 0.0,
        annualized_roi=weighted / current if current else 0.0,
        positions=performance,
    )


def _shift_month(d: date, months: int) -> date:
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def monthly_ledger(
    transactions: Iterable[Transaction],
    today: date,
    months: int = LEDGER_MONTHS,
) -> List[LedgerMonth]:
    """Income and expenses for the last `months` calendar months, oldest first."""
    first = _shift_month(today, -(months - 1))
    buckets: Dict[str, LedgerMonth] = {}
    for i in range(months):
        m = _shift_month(first, i)
        key = m.strftime("%Y-%m")
        buckets[key] = LedgerMonth(month=m.strftime("%b"), month_key=key, income=0.0, expenses=0.0)

    for txn in transactions:
        bucket = buckets.get(txn.date.strftime("%Y-%m"))
        if bucket is None:
            continue
        if txn.type == "income":
            bucket.income += txn.amount
        elif txn.type == "expense":
            bucket.expenses += txn.amount

    return list(buckets.values())


def earnings_by_source(transactions: Iterable[Transaction]) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for txn in transactions:
        if txn.type == "income":
            out[txn.category] = out.get(txn.category, 0.0) + txn.amount
    return out


def financial_summary(
    *,
    cash: float,
    positions: Sequence[InvestmentPosition],
    loans: Sequence[Mapping[str, Any]],
    transactions: Sequence[Transaction],
    ledger: Sequence[LedgerMonth],
    band_equity: float = 0.0,
) -> FinancialSummary:
    invested = sum(p.invested_amount for p in positions)
    value = sum(p.current_value for p in positions)
    total_loans = sum(
        (loan.get("remaining_balance") or 0) for loan in loans if loan.get("status") == "active"
    )

    return FinancialSummary(
        cash=cash,
        total_invested=invested,
        investment_value=value,
        total_loans=total_loans,
        net_worth=cash + value + band_equity - total_loans,
        total_earnings=sum(t.amount for t in transactions if t.type == "income"),
        total_expenses=sum(t.amount for t in transactions if t.type == "expense"),
        monthly_income=sum(m.income for m in ledger) / len(ledger) if ledger else 0.0,
        monthly_expenses=sum(m.expenses for m in ledger) / len(ledger) if ledger else 0.0,
    )


def earnings_to_transactions(rows: Iterable[Mapping[str, Any]]) -> List[Transaction]:
    """band_earnings rows carry signed amounts; negative ones are expenses."""
    out = []
    for row in rows:
        when = parse_date(row.get("created_at") or row.get("date"))
        if when is None:
            continue
        amount = float(row.get("amount") or 0)
        out.append(Transaction(
            id=str(row.get("id")),
            date=when,
            type="income" if amount >= 0 else "expense",
            category=row.get("source") or "other",
            amount=abs(amount),
            description=row.get("description") or "",
        ))
    return out


def band_finances(store: GameStore, band_id: str, today: date) -> Dict[str, Any]:
    band = store.get("bands", id=band_id)
    if not band:
        raise NotFoundError("Band not found")

    transactions = earnings_to_transactions(store.select("band_earnings", band_id=band_id))
    ledger = monthly_ledger(transactions, today)
    summary = financial_summary(
        cash=band.get("band_balance") or 0,
        positions=[],
        loans=[],
        transactions=transactions,
        ledger=ledger,
    )
    return {
        "band_id": band_id,
        "balance": format_currency(summary.cash),
        "summary": summary,
        "ledger": ledger,
        "earnings_by_source": earnings_by_source(transactions),
        "recent": filter_transactions(transactions, limit=10),
    }


def _require_positive(amount: float) -> None:
    if amount <= 0:
        raise ValidationError("Amount must be positive")


def transfer_to_company(store: GameStore, *, user_id: str, company_id: str, amount: float) -> Dict[str, Any]:
    _require_positive(amount)
    profile = store.get("profiles", user_id=user_id)
    if not profile:
        raise NotFoundError("Profile not found")
    company = store.get("companies", id=company_id)
    if not company:
        raise NotFoundError("Company not found")

    cash = profile.get("cash") or 0
    if cash < amount:
        raise InsufficientFundsError(amount, cash, "cash")

    store.update("profiles", {"cash": cash - amount}, user_id=user_id)
    balance = (company.get("balance") or 0) + amount
    store.update("companies", {"balance": balance}, id=company_id)
    txn = store.insert("company_transactions", {
        "company_id": company_id,
        "transaction_type": "deposit",
        "amount": amount,
        "description": f"Owner deposit of {format_currency(amount)}",
    })
    logger.info("Deposited %s into company %s", format_currency(amount), company_id)
    return {"company_balance": balance, "cash": cash - amount, "transaction_id": txn["id"]}


def withdraw_from_company(store: GameStore, *, user_id: str, company_id: str, amount: float) -> Dict[str, Any]:
    _require_positive(amount)
    company = store.get("companies", id=company_id)
    if not company:
        raise NotFoundError("Company not found")
    profile = store.get("profiles", user_id=user_id)
    if not profile:
        raise NotFoundError("Profile not found")

    balance = company.get("balance") or 0
    if balance < amount:
        raise InsufficientFundsError(amount, balance, "company balance")

    store.update("companies", {"balance": balance - amount}, id=company_id)
    cash = (profile.get("cash") or 0) + amount
    store.update("profiles", {"cash": cash}, user_id=user_id)
    txn = store.insert("company_transactions", {
        "company_id": company_id,
        "transaction_type": "withdrawal",
        "amount": -amount,
        "description": f"Owner withdrawal of {format_currency(amount)}",
    })
    logger.info("Withdrew %s from company %s", format_currency(amount), company_id)
    return {"company_balance": balance - amount, "cash": cash, "transaction_id": txn["id"]}
