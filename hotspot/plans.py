"""
Plan catalog: the three purchasable hotspot sessions.
Codes are what the router profiles use; aliases are what customer pages send.
"""
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class Plan:
    code: str
    alias: str
    amount: int
    duration: timedelta
    label: str


DAILY = Plan(code="24hr", alias="daily", amount=350, duration=timedelta(hours=24), label="24 hours")
WEEKLY = Plan(code="7d", alias="weekly", amount=2400, duration=timedelta(days=7), label="7 days")
MONTHLY = Plan(code="30d", alias="monthly", amount=7500, duration=timedelta(days=30), label="30 days")

PLANS: tuple[Plan, ...] = (DAILY, WEEKLY, MONTHLY)

_BY_CODE = {p.code: p for p in PLANS}
_BY_ALIAS = {p.alias: p for p in PLANS}
_BY_AMOUNT = {p.amount: p for p in PLANS}


def get_plan(value: str | None) -> Plan | None:
    """Resolve a plan by code (24hr/7d/30d) or alias (daily/weekly/monthly)."""
    if not value:
        return None
    key = str(value).strip()
    return _BY_CODE.get(key) or _BY_ALIAS.get(key.lower())


def plan_for_amount(amount) -> Plan | None:
    """Strict amount-to-plan mapping; fractional or unknown amounts map to nothing."""
    try:
        as_float = float(amount)
    except (TypeError, ValueError):
        return None
    if not as_float.is_integer():
        return None
    return _BY_AMOUNT.get(int(as_float))

