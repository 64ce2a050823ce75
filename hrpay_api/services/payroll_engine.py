# hrpay_api/services/payroll_engine.py
"""
Pure payroll computation over already-fetched data.

Nothing in here touches the session or the request: callers hydrate
``ComponentRule`` / ``AttendanceDay`` values first (see payroll_service) and
get back a ``PayslipResult`` that can be persisted as-is.

Money is Decimal end to end. Line items are rounded half-up to 2 dp only when
the payslip is finalized; percentage bases use the unrounded full-month amounts.
"""
from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from graphlib import CycleError, TopologicalSorter
from typing import Dict, Iterable, List, Optional, Tuple

from hrpay_api.common.errors import CircularDependencyError, ComputationError
from hrpay_api.models.attendance import PRESENT, ABSENT, ON_LEAVE, HOLIDAY, HALF_DAY
from hrpay_api.models.leave import UNPAID
from hrpay_api.models.payroll.components import EARNING, DEDUCTION, LOSS_OF_PAY, FIXED, PERCENTAGE

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
HALF = Decimal("0.5")
LOSS_OF_PAY_LINE = "Loss of Pay"


def round_money(x: Decimal) -> Decimal:
    return Decimal(x).quantize(CENT, rounding=ROUND_HALF_UP)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> Tuple[date, date]:
    return date(year, month, 1), date(year, month, days_in_month(year, month))


# ---------- inputs ----------

@dataclass(frozen=True)
class ComponentRule:
    component_id: int
    name: str
    category: str                 # Earning | Deduction
    is_pro_rata: bool
    calculation_type: str         # Fixed | Percentage
    value: Decimal
    percentage_of: Tuple[int, ...] = ()


@dataclass(frozen=True)
class AttendanceDay:
    day: date
    status: str
    leave_category: Optional[str] = None   # category stored on the linked leave request


# ---------- step 1: attendance ----------

@dataclass
class AttendanceSummary:
    total_days: int
    present: int = 0
    absent: int = 0
    paid_leave: int = 0
    unpaid_leave: int = 0
    half_day: int = 0
    holiday: int = 0
    unrecorded: int = 0

    @property
    def lop_days(self) -> Decimal:
        return Decimal(self.absent + self.unpaid_leave) + HALF * self.half_day

    @property
    def payable_days(self) -> Decimal:
        return Decimal(self.total_days) - self.lop_days

    def to_dict(self) -> dict:
        return {
            "total_days": self.total_days,
            "present": self.present,
            "absent": self.absent,
            "paid_leave": self.paid_leave,
            "unpaid_leave": self.unpaid_leave,
            "half_day": self.half_day,
            "holiday": self.holiday,
            "unrecorded": self.unrecorded,
            "lop_days": float(self.lop_days),
            "payable_days": float(self.payable_days),
        }


def summarize_attendance(records: Iterable[AttendanceDay], year: int, month: int) -> AttendanceSummary:
    """
    Classify each recorded day of the month. Days without a record are payable.
    An "On Leave" day is unpaid only when its leave request was Unpaid.
    """
    start, end = month_bounds(year, month)
    summary = AttendanceSummary(total_days=(end - start).days + 1)

    by_day: Dict[date, AttendanceDay] = {}
    for r in records:
        if start <= r.day <= end:
            by_day[r.day] = r

    for r in by_day.values():
        if r.status == PRESENT:
            summary.present += 1
        elif r.status == ABSENT:
            summary.absent += 1
        elif r.status == HALF_DAY:
            summary.half_day += 1
        elif r.status == HOLIDAY:
            summary.holiday += 1
        elif r.status == ON_LEAVE:
            if r.leave_category == UNPAID:
                summary.unpaid_leave += 1
            else:
                summary.paid_leave += 1
        else:
            raise ComputationError(f"Unknown attendance status {r.status!r} on {r.day.isoformat()}")

    summary.unrecorded = summary.total_days - len(by_day)
    return summary


# ---------- step 2: components ----------

@dataclass
class ResolvedComponent:
    rule: ComponentRule
    full_amount: Decimal      # before pro-rata
    amount: Decimal           # after pro-rata, unrounded


def _dependency_graph(rules: List[ComponentRule]) -> Dict[int, set]:
    by_id = {r.component_id: r for r in rules}
    graph: Dict[int, set] = {}
    for r in rules:
        if r.calculation_type == FIXED:
            graph[r.component_id] = set()
        elif r.calculation_type == PERCENTAGE:
            if not r.percentage_of:
                raise ComputationError(f"'{r.name}' is a percentage component with no base components")
            unknown = [cid for cid in r.percentage_of if cid not in by_id]
            if unknown:
                raise ComputationError(
                    f"'{r.name}' depends on components not assigned to this employee",
                    payload={"component": r.name, "missing_component_ids": unknown},
                )
            graph[r.component_id] = set(r.percentage_of)
        else:
            raise ComputationError(f"Unknown calculation type {r.calculation_type!r} for '{r.name}'")
    return graph


def resolve_components(
    rules: Iterable[ComponentRule],
    payable_days: Decimal,
    total_days: int,
) -> List[ResolvedComponent]:
    """
    Resolve every assigned component; result keeps the declared order.

    Percentage components are taken of the dependencies' full-month amounts and
    the result is then pro-rated on its own flag, so pro-rata is applied once
    per component.
    """
    rules = list(rules)
    by_id = {r.component_id: r for r in rules}
    if len(by_id) != len(rules):
        raise ComputationError("A salary component is assigned more than once")

    sorter = TopologicalSorter(_dependency_graph(rules))
    try:
        sorter.prepare()
    except CycleError as e:
        cycle = e.args[1] if len(e.args) > 1 else list(by_id)
        names = list(dict.fromkeys(by_id[cid].name for cid in cycle))
        raise CircularDependencyError(names)

    total = Decimal(total_days)
    payable = Decimal(payable_days)
    full: Dict[int, Decimal] = {}
    resolved: Dict[int, ResolvedComponent] = {}

    # each get_ready() batch is one pass: everything whose dependencies are resolved
    while sorter.is_active():
        for cid in sorter.get_ready():
            rule = by_id[cid]
            if rule.calculation_type == FIXED:
                amount = Decimal(rule.value)
            else:
                base = sum((full[dep] for dep in rule.percentage_of), Decimal("0"))
                amount = base * Decimal(rule.value) / HUNDRED
            full[cid] = amount
            final = amount * payable / total if rule.is_pro_rata else amount
            resolved[cid] = ResolvedComponent(rule=rule, full_amount=amount, amount=final)
            sorter.done(cid)

    return [resolved[r.component_id] for r in rules]


# ---------- step 3: payslip ----------

@dataclass
class PayslipLine:
    name: str
    category: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {"name": self.name, "category": self.category, "amount": float(self.amount)}


@dataclass
class PayslipResult:
    year: int
    month: int
    attendance: AttendanceSummary
    lines: List[PayslipLine] = field(default_factory=list)
    gross_earnings: Decimal = Decimal("0.00")
    total_deductions: Decimal = Decimal("0.00")
    net_salary: Decimal = Decimal("0.00")

    def snapshot(self) -> List[dict]:
        return [line.to_dict() for line in self.lines]


def _basic_component(resolved: List[ResolvedComponent]) -> Optional[ResolvedComponent]:
    for rc in resolved:
        if rc.rule.category == EARNING and "basic" in rc.rule.name.lower():
            return rc
    return None


def build_payslip(
    resolved: List[ResolvedComponent],
    attendance: AttendanceSummary,
    year: int,
    month: int,
) -> PayslipResult:
    result = PayslipResult(year=year, month=month, attendance=attendance)

    gross = Decimal("0.00")
    deductions = Decimal("0.00")
    for rc in resolved:
        amount = round_money(rc.amount)
        result.lines.append(PayslipLine(rc.rule.name, rc.rule.category, amount))
        if rc.rule.category == EARNING:
            gross += amount
        elif rc.rule.category == DEDUCTION:
            deductions += amount

    # display only, already reflected in the pro-rated lines
    lop_days = attendance.lop_days
    basic = _basic_component(resolved)
    if lop_days > 0 and basic is not None and basic.rule.is_pro_rata:
        per_day = basic.full_amount / Decimal(attendance.total_days)
        result.lines.append(PayslipLine(LOSS_OF_PAY_LINE, LOSS_OF_PAY, round_money(per_day * lop_days)))

    result.gross_earnings = round_money(gross)
    result.total_deductions = round_money(deductions)
    result.net_salary = round_money(result.gross_earnings - result.total_deductions)
    return result


def compute_payslip(
    rules: Iterable[ComponentRule],
    records: Iterable[AttendanceDay],
    year: int,
    month: int,
) -> PayslipResult:
    """Steps 1-3 for one employee and month."""
    rules = list(rules)
    if not rules:
        raise ComputationError("Salary profile has no components")
    attendance = summarize_attendance(records, year, month)
    resolved = resolve_components(rules, attendance.payable_days, attendance.total_days)
    return build_payslip(resolved, attendance, year, month)
