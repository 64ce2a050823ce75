# hrpay_api/services/salary_service.py
from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import case

from hrpay_api.extensions import db
from hrpay_api.common.errors import ConflictError, NotFoundError, ValidationError
from hrpay_api.common.params import to_bool, to_decimal, to_int, utcnow
from hrpay_api.models.employee import Employee
from hrpay_api.models.payroll.components import (
    SalaryComponent, SalaryProfile, AssignedComponent,
    EARNING, DEDUCTION, FIXED, PERCENTAGE,
)


# ---------- component library ----------

def _name(v) -> str:
    name = (str(v or "")).strip()
    if not name:
        raise ValidationError("Component name is required.")
    if len(name) > 120:
        raise ValidationError("Component name must be at most 120 characters.")
    return name


def _category(v) -> str:
    if v not in (EARNING, DEDUCTION):
        raise ValidationError("Component category must be 'Earning' or 'Deduction'.")
    return v


def _default_rule(ctype, value):
    """Both or neither: ``(calculation_type, value)`` of the component's default rule."""
    if ctype in (None, "") and value in (None, ""):
        return None, None
    if ctype not in (FIXED, PERCENTAGE):
        raise ValidationError("default_calculation_type must be 'Fixed' or 'Percentage'")
    value = to_decimal(value, "default_value", minimum=Decimal("0"))
    if value is None:
        raise ValidationError("default_value is required with a default_calculation_type")
    return ctype, value


def _by_name(name: str) -> Optional[SalaryComponent]:
    return SalaryComponent.query.filter(db.func.lower(SalaryComponent.name) == name.lower()).first()


def get_component(component_id: int) -> SalaryComponent:
    c = db.session.get(SalaryComponent, component_id)
    if not c:
        raise NotFoundError("Salary component not found.")
    return c


def list_components() -> List[SalaryComponent]:
    # earnings first on every backend (enum ordering is not portable)
    earnings_first = case((SalaryComponent.category == EARNING, 0), else_=1)
    return SalaryComponent.query.order_by(earnings_first, SalaryComponent.name.asc()).all()


def create_component(d: dict) -> SalaryComponent:
    name = _name(d.get("name"))
    category = _category(d.get("category"))
    if _by_name(name):
        raise ValidationError("A salary component with this name already exists.")
    ctype, value = _default_rule(d.get("default_calculation_type"), d.get("default_value"))

    c = SalaryComponent(
        name=name,
        category=category,
        is_pro_rata=bool(to_bool(d.get("is_pro_rata")) or False),
        is_taxable=to_bool(d.get("is_taxable")) is not False,
        description=d.get("description"),
        default_calculation_type=ctype,
        default_value=value,
    )
    db.session.add(c)
    db.session.commit()
    return c


def update_component(component_id: int, d: dict) -> SalaryComponent:
    c = get_component(component_id)
    if "name" in d:
        name = _name(d["name"])
        other = _by_name(name)
        if other and other.id != c.id:
            raise ValidationError("A salary component with this name already exists.")
        c.name = name
    if "category" in d:
        c.category = _category(d["category"])
    if "is_pro_rata" in d:
        c.is_pro_rata = bool(to_bool(d["is_pro_rata"]))
    if "is_taxable" in d:
        c.is_taxable = bool(to_bool(d["is_taxable"]))
    if "description" in d:
        c.description = d["description"]
    if "default_calculation_type" in d or "default_value" in d:
        c.default_calculation_type, c.default_value = _default_rule(
            d.get("default_calculation_type", c.default_calculation_type),
            d.get("default_value", c.default_value),
        )
    db.session.commit()
    return c


def delete_component(component_id: int) -> None:
    c = get_component(component_id)
    in_use = AssignedComponent.query.filter_by(component_id=c.id).count()
    if not in_use:
        # also referenced when only used as a percentage base
        in_use = sum(1 for a in AssignedComponent.query.all() if c.id in (a.percentage_of or []))
    if in_use:
        raise ConflictError("Salary component is assigned to one or more salary profiles and cannot be deleted.")
    db.session.delete(c)
    db.session.commit()


def component_row(c: SalaryComponent) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "category": c.category,
        "is_pro_rata": c.is_pro_rata,
        "is_taxable": c.is_taxable,
        "description": c.description,
        "default_calculation_type": c.default_calculation_type,
        "default_value": float(c.default_value) if c.default_value is not None else None,
    }


# ---------- salary profiles ----------

def get_profile(employee_id: int) -> Optional[SalaryProfile]:
    if not db.session.get(Employee, employee_id):
        raise NotFoundError("Employee not found")
    return SalaryProfile.query.filter_by(employee_id=employee_id).first()


def _component_ids(items) -> List[int]:
    if not isinstance(items, list):
        raise ValidationError("components must be a list")
    ids = []
    for i, it in enumerate(items):
        if not isinstance(it, dict):
            raise ValidationError(f"components[{i}] must be an object")
        cid = to_int(it.get("component_id"), f"components[{i}].component_id")
        if cid is None:
            raise ValidationError(f"components[{i}].component_id is required")
        ids.append(cid)
    return ids


def _parse_assigned(items, components: Dict[int, SalaryComponent]) -> List[dict]:
    """Entries omitting calculation_type / value take the component's default rule."""
    parsed = []
    for i, it in enumerate(items):
        cid = to_int(it.get("component_id"))
        comp = components[cid]
        ctype = it.get("calculation_type") or comp.default_calculation_type
        if ctype not in (FIXED, PERCENTAGE):
            raise ValidationError(f"components[{i}].calculation_type must be 'Fixed' or 'Percentage'")
        raw_value = it.get("value")
        if raw_value in (None, "") and ctype == comp.default_calculation_type:
            raw_value = comp.default_value
        value = to_decimal(raw_value, f"components[{i}].value", minimum=Decimal("0"))
        if value is None:
            raise ValidationError(f"components[{i}].value is required")

        base = it.get("percentage_of") or []
        if not isinstance(base, list):
            raise ValidationError(f"components[{i}].percentage_of must be a list")
        base = list(dict.fromkeys(to_int(x, f"components[{i}].percentage_of") for x in base))
        if ctype == PERCENTAGE and not base:
            raise ValidationError(f"components[{i}] is a percentage and needs at least one base component")
        if ctype == FIXED:
            base = []

        parsed.append({"component_id": cid, "calculation_type": ctype, "value": value, "percentage_of": base})
    return parsed


def save_profile(employee_id: int, items) -> SalaryProfile:
    """Create or wholesale-replace the employee's salary profile."""
    if not db.session.get(Employee, employee_id):
        raise NotFoundError("Employee not found")

    ids = _component_ids(items)
    if len(set(ids)) != len(ids):
        raise ValidationError("A salary component can only be assigned once per profile.")

    components = {c.id: c for c in SalaryComponent.query.filter(SalaryComponent.id.in_(ids)).all()} if ids else {}
    unknown = [cid for cid in ids if cid not in components]
    if unknown:
        raise NotFoundError("Salary component not found.", payload={"component_ids": unknown})

    parsed = _parse_assigned(items, components)
    for p in parsed:
        missing = [cid for cid in p["percentage_of"] if cid not in components]
        if missing:
            raise ValidationError(
                "Percentage components can only be based on components assigned in the same profile.",
                payload={"component_id": p["component_id"], "missing_component_ids": missing},
            )

    profile = SalaryProfile.query.filter_by(employee_id=employee_id).first()
    if not profile:
        profile = SalaryProfile(employee_id=employee_id)
        db.session.add(profile)

    profile.components.clear()
    db.session.flush()
    for pos, p in enumerate(parsed):
        profile.components.append(AssignedComponent(position=pos, **p))
    profile.updated_at = utcnow()
    db.session.commit()
    return profile


def profile_row(p: SalaryProfile) -> dict:
    return {
        "id": p.id,
        "employee_id": p.employee_id,
        "components": [
            {
                "component": component_row(a.component),
                "calculation_type": a.calculation_type,
                "value": float(a.value),
                "percentage_of": list(a.percentage_of or []),
            }
            for a in p.components
        ],
        "updated_at": p.updated_at.isoformat() if p.updated_at else None,
    }
