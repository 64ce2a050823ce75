# hrpay_api/services/leave_policy_service.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union
import logging

from hrpay_api.extensions import db
from hrpay_api.common.errors import NotFoundError, ValidationError
from hrpay_api.common.params import to_decimal
from hrpay_api.models.leave import LeavePolicy, PAID, UNPAID, YEARLY, MONTHLY

log = logging.getLogger(__name__)


# ---------- policy rules ----------

@dataclass(frozen=True)
class Unpaid:
    pass


@dataclass(frozen=True)
class PaidYearly:
    total_days_per_year: Decimal
    monthly_cap: Optional[Decimal] = None    # restricts usage per month, grants nothing


@dataclass(frozen=True)
class PaidMonthly:
    monthly_grant: Decimal


PolicyRule = Union[Unpaid, PaidYearly, PaidMonthly]


def build_rule(category, renewal_type=None, total_days_per_year=None, monthly_day_limit=None) -> PolicyRule:
    """
    Validate the category/cadence combination and return the matching rule.
    Raises ValidationError naming the first broken requirement.
    """
    if category not in (PAID, UNPAID):
        raise ValidationError("Leave category ('Paid' or 'Unpaid') is required.")
    if category == UNPAID:
        return Unpaid()

    if renewal_type not in (YEARLY, MONTHLY):
        raise ValidationError("A renewal type ('Yearly' or 'Monthly') is required for a Paid leave policy.")

    total = to_decimal(total_days_per_year, "total_days_per_year")
    limit = to_decimal(monthly_day_limit, "monthly_day_limit")

    if renewal_type == YEARLY:
        if total is None or total <= 0:
            raise ValidationError("Total days per year is required for a Yearly Paid leave policy and must be greater than 0.")
        if limit is not None and limit <= 0:
            raise ValidationError("The monthly day limit must be greater than 0 when given.")
        return PaidYearly(total_days_per_year=total, monthly_cap=limit)

    if total is not None:
        raise ValidationError("A Monthly Paid leave policy must not declare total days per year.")
    if limit is None or limit <= 0:
        raise ValidationError("A monthly day limit is required for a Monthly Paid leave policy and must be greater than 0.")
    return PaidMonthly(monthly_grant=limit)


def rule_of(p: LeavePolicy) -> PolicyRule:
    if p.category == UNPAID:
        return Unpaid()
    if p.renewal_type == MONTHLY:
        return PaidMonthly(monthly_grant=Decimal(p.monthly_day_limit))
    return PaidYearly(
        total_days_per_year=Decimal(p.total_days_per_year),
        monthly_cap=Decimal(p.monthly_day_limit) if p.monthly_day_limit is not None else None,
    )


def _apply_rule(p: LeavePolicy, rule: PolicyRule):
    if isinstance(rule, Unpaid):
        p.category, p.renewal_type = UNPAID, None
        p.total_days_per_year = p.monthly_day_limit = None
    elif isinstance(rule, PaidYearly):
        p.category, p.renewal_type = PAID, YEARLY
        p.total_days_per_year = rule.total_days_per_year
        p.monthly_day_limit = rule.monthly_cap
    else:
        p.category, p.renewal_type = PAID, MONTHLY
        p.total_days_per_year = None
        p.monthly_day_limit = rule.monthly_grant


# ---------- registry ----------

def _code(leave_type) -> str:
    code = (str(leave_type or "")).strip().upper()
    if not code:
        raise ValidationError("leave_type is required")
    if len(code) > 20:
        raise ValidationError("leave_type must be at most 20 characters")
    return code


def find_policy(leave_type: str) -> Optional[LeavePolicy]:
    return LeavePolicy.query.filter_by(leave_type=(leave_type or "").strip().upper()).first()


def get_policy(policy_id: int) -> LeavePolicy:
    p = db.session.get(LeavePolicy, policy_id)
    if not p:
        raise NotFoundError("Leave policy not found")
    return p


def list_policies(active_only: bool = False):
    q = LeavePolicy.query
    if active_only:
        q = q.filter(LeavePolicy.is_active.is_(True))
    return q.order_by(LeavePolicy.leave_type.asc()).all()


def active_paid_yearly_policies():
    return (LeavePolicy.query
            .filter_by(category=PAID, renewal_type=YEARLY, is_active=True)
            .order_by(LeavePolicy.leave_type.asc())
            .all())


def create_policy(d: dict, created_by: int | None = None) -> LeavePolicy:
    code = _code(d.get("leave_type"))
    rule = build_rule(d.get("category"), d.get("renewal_type"),
                      d.get("total_days_per_year"), d.get("monthly_day_limit"))

    if find_policy(code):
        raise ValidationError(f"A leave policy for type '{code}' already exists.")

    p = LeavePolicy(
        leave_type=code,
        description=d.get("description"),
        is_active=bool(d.get("is_active", True)),
        created_by=created_by,
    )
    _apply_rule(p, rule)
    db.session.add(p)
    db.session.commit()
    log.info("leave policy %s created (%s)", code, type(rule).__name__)
    return p


def update_policy(policy_id: int, d: dict) -> LeavePolicy:
    p = get_policy(policy_id)

    if "leave_type" in d:
        code = _code(d["leave_type"])
        other = find_policy(code)
        if other and other.id != p.id:
            raise ValidationError(f"A leave policy for type '{code}' already exists.")
        p.leave_type = code

    category = d.get("category", p.category)
    renewal = d.get("renewal_type", p.renewal_type if category == PAID else None)
    cadence_changed = category != p.category or renewal != p.renewal_type

    # stored amounts only carry over while the cadence stays the same
    total = d["total_days_per_year"] if "total_days_per_year" in d else (
        None if cadence_changed else p.total_days_per_year)
    limit = d["monthly_day_limit"] if "monthly_day_limit" in d else (
        None if cadence_changed else p.monthly_day_limit)

    if category == UNPAID:
        rule = Unpaid()
    else:
        rule = build_rule(category, renewal, total, limit)
    _apply_rule(p, rule)

    if "description" in d:
        p.description = d["description"]
    if "is_active" in d:
        p.is_active = bool(d["is_active"])

    db.session.commit()
    return p


def delete_policy(policy_id: int) -> None:
    p = get_policy(policy_id)
    db.session.delete(p)
    db.session.commit()


def row(p: LeavePolicy) -> dict:
    return {
        "id": p.id,
        "leave_type": p.leave_type,
        "description": p.description,
        "category": p.category,
        "renewal_type": p.renewal_type,
        "total_days_per_year": float(p.total_days_per_year) if p.total_days_per_year is not None else None,
        "monthly_day_limit": float(p.monthly_day_limit) if p.monthly_day_limit is not None else None,
        "is_active": p.is_active,
    }
