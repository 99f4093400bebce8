"""
Project financials.

compute_project_financials() is pure arithmetic over a ProjectSnapshot. The
query helpers below build snapshots from committed rows and roll them up;
nothing in this module writes.

Every percentage and index is rounded to two places and is 0 whenever its
denominator is 0.
"""

from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.payment import Payment
from app.models.project import PROJECT_STATUSES, Project
from app.models.project_assignment import ProjectAssignment
from app.services.lookups import get_project, money

ZERO = Decimal("0")
HUNDRED = Decimal("100")
TWO_PLACES = Decimal("0.01")

PAID_STATUSES = ("paid", "confirmed")
PENDING_STATUSES = ("requested",)


def _q(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def _ratio(numerator: Decimal, denominator: Decimal, *, scale: Decimal = Decimal("1")) -> Decimal:
    if denominator == 0:
        return _q(ZERO)
    return _q(numerator / denominator * scale)


def _index(estimated: Decimal, actual: Decimal) -> Decimal:
    if estimated == 0 or actual == 0:
        return _q(ZERO)
    return _q(estimated / actual)


@dataclass(frozen=True)
class ProjectSnapshot:
    budget: Decimal = ZERO
    allocated_amount: Decimal = ZERO
    rate: Decimal = ZERO
    estimated_hours: Decimal = ZERO
    actual_hours: Decimal = ZERO
    estimated_consumables: Decimal = ZERO
    actual_consumables: Decimal = ZERO
    estimated_materials: Decimal = ZERO
    actual_materials: Decimal = ZERO
    paid_amount: Decimal = ZERO
    pending_amount: Decimal = ZERO

    @classmethod
    def from_project(cls, project: Project, *, paid_amount: Any = 0, pending_amount: Any = 0) -> "ProjectSnapshot":
        return cls(
            budget=money(project.budget),
            allocated_amount=money(project.allocated_amount),
            rate=money(project.rate),
            estimated_hours=money(project.estimated_hours),
            actual_hours=money(project.actual_hours),
            estimated_consumables=money(project.estimated_consumables),
            actual_consumables=money(project.actual_consumables),
            estimated_materials=money(project.estimated_materials),
            actual_materials=money(project.actual_materials),
            paid_amount=money(paid_amount),
            pending_amount=money(pending_amount),
        )


@dataclass(frozen=True)
class Variance:
    estimated: Decimal
    actual: Decimal
    variance: Decimal
    percentage: Decimal
    status: str


@dataclass(frozen=True)
class ProjectFinancials:
    budget: Decimal
    allocated_amount: Decimal
    paid_amount: Decimal
    pending_amount: Decimal
    remaining_budget: Decimal
    estimated_hours_cost: Decimal
    actual_hours_cost: Decimal
    estimated_total_cost: Decimal
    actual_total_cost: Decimal
    profit_loss: Decimal
    profit_loss_percentage: Decimal
    cost_performance_index: Decimal
    schedule_performance_index: Decimal
    hours_utilization: Decimal
    budget_utilization: Decimal
    allocation_utilization: Decimal
    variances: Dict[str, Variance] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _variance(estimated: Decimal, actual: Decimal) -> Variance:
    diff = actual - estimated
    if diff > 0:
        status = "over"
    elif diff < 0:
        status = "under"
    else:
        status = "on-track"
    return Variance(
        estimated=_q(estimated),
        actual=_q(actual),
        variance=_q(diff),
        percentage=_ratio(diff, estimated, scale=HUNDRED),
        status=status,
    )


def compute_project_financials(snapshot: ProjectSnapshot) -> ProjectFinancials:
    s = snapshot

    estimated_hours_cost = s.estimated_hours * s.rate
    actual_hours_cost = s.actual_hours * s.rate
    estimated_total = estimated_hours_cost + s.estimated_consumables + s.estimated_materials
    # Payments are not a cost input; cost follows the project's own tracking fields.
    actual_total = actual_hours_cost + s.actual_consumables + s.actual_materials

    profit_loss = s.budget - actual_total

    return ProjectFinancials(
        budget=_q(s.budget),
        allocated_amount=_q(s.allocated_amount),
        paid_amount=_q(s.paid_amount),
        pending_amount=_q(s.pending_amount),
        remaining_budget=_q(s.budget - s.allocated_amount),
        estimated_hours_cost=_q(estimated_hours_cost),
        actual_hours_cost=_q(actual_hours_cost),
        estimated_total_cost=_q(estimated_total),
        actual_total_cost=_q(actual_total),
        profit_loss=_q(profit_loss),
        profit_loss_percentage=_ratio(profit_loss, s.budget, scale=HUNDRED),
        cost_performance_index=_index(estimated_total, actual_total),
        schedule_performance_index=_index(s.estimated_hours, s.actual_hours),
        hours_utilization=_ratio(s.actual_hours, s.estimated_hours, scale=HUNDRED),
        budget_utilization=_ratio(actual_total, s.budget, scale=HUNDRED),
        allocation_utilization=_ratio(s.allocated_amount, s.budget, scale=HUNDRED),
        variances={
            "hours_cost": _variance(estimated_hours_cost, actual_hours_cost),
            "consumables": _variance(s.estimated_consumables, s.actual_consumables),
            "materials": _variance(s.estimated_materials, s.actual_materials),
            "total": _variance(estimated_total, actual_total),
        },
    )


# Query helpers


def _payment_totals(db: Session, company_id: int, project_ids: Iterable[int]) -> Dict[int, Dict[str, Any]]:
    ids = [int(i) for i in project_ids]
    totals = {i: {"paid": ZERO, "pending": ZERO, "paid_count": 0, "pending_count": 0} for i in ids}
    if not ids:
        return totals

    rows = (
        db.query(
            Payment.project_id,
            Payment.request_status,
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount), 0),
        )
        .filter(
            Payment.company_id == int(company_id),
            Payment.project_id.in_(ids),
        )
        .group_by(Payment.project_id, Payment.request_status)
        .all()
    )

    for project_id, request_status, count, amount in rows:
        bucket = totals[int(project_id)]
        if request_status in PAID_STATUSES:
            bucket["paid"] += money(amount)
            bucket["paid_count"] += int(count)
        elif request_status in PENDING_STATUSES:
            bucket["pending"] += money(amount)
            bucket["pending_count"] += int(count)
    return totals


def _snapshot(project: Project, totals: Dict[str, Any]) -> ProjectSnapshot:
    return ProjectSnapshot.from_project(project, paid_amount=totals["paid"], pending_amount=totals["pending"])


def _project_row(project: Project, financials: ProjectFinancials) -> Dict[str, Any]:
    return {
        "project_id": project.id,
        "project_name": project.name,
        "project_type": project.project_type,
        "status": project.status,
        "currency": project.currency,
        **financials.to_dict(),
    }


def project_financials(db: Session, company_id: int, project_id: int) -> Dict[str, Any]:
    project = get_project(db, company_id, project_id)
    totals = _payment_totals(db, company_id, [project.id])[project.id]
    financials = compute_project_financials(_snapshot(project, totals))

    row = _project_row(project, financials)
    row["payment_breakdown"] = {
        "paid_count": totals["paid_count"],
        "pending_count": totals["pending_count"],
        "paid": _q(totals["paid"]),
        "pending": _q(totals["pending"]),
    }
    return row


def financial_overview(db: Session, company_id: int, *, created_by: Optional[int] = None) -> Dict[str, Any]:
    q = db.query(Project).filter(Project.company_id == int(company_id))
    if created_by is not None:
        q = q.filter(Project.created_by == int(created_by))
    projects = q.order_by(Project.id.asc()).all()

    totals = _payment_totals(db, company_id, [p.id for p in projects])

    summary = defaultdict(lambda: ZERO)
    by_status = {status: 0 for status in PROJECT_STATUSES}
    rows = []

    for project in projects:
        f = compute_project_financials(_snapshot(project, totals[project.id]))
        rows.append(_project_row(project, f))

        summary["total_budget"] += f.budget
        summary["total_allocated"] += f.allocated_amount
        summary["total_paid"] += f.paid_amount
        summary["total_pending"] += f.pending_amount
        summary["total_estimated_cost"] += f.estimated_total_cost
        summary["total_actual_cost"] += f.actual_total_cost
        by_status[project.status] = by_status.get(project.status, 0) + 1

    overall = summary["total_budget"] - summary["total_actual_cost"]

    return {
        "summary": {
            "total_projects": len(projects),
            "total_budget": _q(summary["total_budget"]),
            "total_allocated": _q(summary["total_allocated"]),
            "total_paid": _q(summary["total_paid"]),
            "total_pending": _q(summary["total_pending"]),
            "total_estimated_cost": _q(summary["total_estimated_cost"]),
            "total_actual_cost": _q(summary["total_actual_cost"]),
            "overall_profit_loss": _q(overall),
            "overall_profit_loss_percentage": _ratio(overall, summary["total_budget"], scale=HUNDRED),
            "remaining_budget": _q(summary["total_budget"] - summary["total_allocated"]),
        },
        "by_status": by_status,
        "projects": rows,
    }


def resource_comparison(db: Session, company_id: int, project_id: int) -> Dict[str, Any]:
    project = get_project(db, company_id, project_id)
    assignments = (
        db.query(ProjectAssignment)
        .filter(
            ProjectAssignment.company_id == int(company_id),
            ProjectAssignment.project_id == project.id,
            ProjectAssignment.is_active.is_(True),
        )
        .order_by(ProjectAssignment.id.asc())
        .all()
    )

    fields = (
        "estimated_hours",
        "actual_hours",
        "estimated_consumables",
        "actual_consumables",
        "estimated_materials",
        "actual_materials",
    )

    assignment_totals = {name: ZERO for name in fields}
    per_assignment = []
    for a in assignments:
        entry = {"assignment_id": a.id, "employee_id": a.employee_id, "rate": money(a.rate)}
        for name in fields:
            value = money(getattr(a, name))
            entry[name] = value
            assignment_totals[name] += value
        per_assignment.append(entry)

    project_level = {name: money(getattr(project, name)) for name in fields}

    return {
        "project_id": project.id,
        "project_name": project.name,
        "project_level": project_level,
        "assignment_totals": {name: _q(v) for name, v in assignment_totals.items()},
        "difference": {name: _q(assignment_totals[name] - project_level[name]) for name in fields},
        "assignments": per_assignment,
    }


def income_summary(
    db: Session,
    company_id: int,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    project_type: Optional[str] = None,
    status: Optional[str] = None,
) -> Dict[str, Any]:
    q = db.query(Project).filter(Project.company_id == int(company_id))
    if status is not None:
        q = q.filter(Project.status == status)
    if project_type is not None and project_type != "all":
        q = q.filter(Project.project_type == project_type)
    if start is not None:
        q = q.filter(Project.created_at >= start)
    if end is not None:
        q = q.filter(Project.created_at <= end)
    projects = q.order_by(Project.created_at.asc(), Project.id.asc()).all()

    totals = _payment_totals(db, company_id, [p.id for p in projects])

    def _bucket() -> Dict[str, Any]:
        return {"count": 0, "revenue": ZERO, "costs": ZERO, "profit": ZERO}

    by_type: Dict[str, Dict[str, Any]] = defaultdict(_bucket)
    by_status: Dict[str, Dict[str, Any]] = defaultdict(_bucket)
    by_month: Dict[str, Dict[str, Any]] = defaultdict(_bucket)
    revenue = costs = ZERO

    for project in projects:
        f = compute_project_financials(_snapshot(project, totals[project.id]))
        month = project.created_at.strftime("%Y-%m")
        for group in (by_type[project.project_type], by_status[project.status], by_month[month]):
            group["count"] += 1
            group["revenue"] += f.budget
            group["costs"] += f.actual_total_cost
            group["profit"] += f.profit_loss
        revenue += f.budget
        costs += f.actual_total_cost

    profit = revenue - costs

    def _finish(groups: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        return {
            key: {
                "count": g["count"],
                "revenue": _q(g["revenue"]),
                "costs": _q(g["costs"]),
                "profit": _q(g["profit"]),
                "margin": _ratio(g["profit"], g["revenue"], scale=HUNDRED),
            }
            for key, g in sorted(groups.items())
        }

    return {
        "summary": {
            "total_projects": len(projects),
            "total_revenue": _q(revenue),
            "total_costs": _q(costs),
            "total_profit": _q(profit),
            "profit_margin": _ratio(profit, revenue, scale=HUNDRED),
            "average_project_budget": _ratio(revenue, Decimal(len(projects))),
        },
        "by_project_type": _finish(by_type),
        "by_status": _finish(by_status),
        "by_month": _finish(by_month),
    }


def employee_allocations(db: Session, company_id: int) -> Dict[str, Any]:
    assignments: List[ProjectAssignment] = (
        db.query(ProjectAssignment)
        .filter(
            ProjectAssignment.company_id == int(company_id),
            ProjectAssignment.is_active.is_(True),
        )
        .order_by(ProjectAssignment.employee_id.asc(), ProjectAssignment.id.asc())
        .all()
    )

    payments_by_assignment: Dict[int, List[Payment]] = defaultdict(list)
    if assignments:
        payments = (
            db.query(Payment)
            .filter(
                Payment.company_id == int(company_id),
                Payment.assignment_id.in_([a.id for a in assignments]),
            )
            .all()
        )
        for p in payments:
            payments_by_assignment[int(p.assignment_id)].append(p)

    employees: Dict[int, Dict[str, Any]] = {}
    for a in assignments:
        entry = employees.get(a.employee_id)
        if entry is None:
            entry = {
                "employee_id": a.employee_id,
                "employee_name": a.employee.display_name,
                "total_allocated": ZERO,
                "total_paid": ZERO,
                "total_pending": ZERO,
                "projects": [],
            }
            employees[a.employee_id] = entry

        allocated = money(a.allocated_amount)
        related = payments_by_assignment.get(a.id, [])
        paid = sum((money(p.amount) for p in related if p.request_status in PAID_STATUSES), ZERO)
        pending = sum((money(p.amount) for p in related if p.request_status in PENDING_STATUSES), ZERO)

        entry["total_allocated"] += allocated
        entry["total_paid"] += paid
        entry["total_pending"] += pending
        entry["projects"].append(
            {
                "project_id": a.project_id,
                "project_name": a.project.name,
                "allocated": allocated,
                "paid": _q(paid),
                "pending": _q(pending),
                "work_status": a.work_status,
            }
        )

    total_budget = (
        db.query(func.coalesce(func.sum(Project.budget), 0))
        .filter(Project.company_id == int(company_id))
        .scalar()
    )
    rows = list(employees.values())
    total_allocated = sum((e["total_allocated"] for e in rows), ZERO)

    return {
        "summary": {
            "total_employees": len(rows),
            "total_allocated": _q(total_allocated),
            "total_paid": _q(sum((e["total_paid"] for e in rows), ZERO)),
            "total_pending": _q(sum((e["total_pending"] for e in rows), ZERO)),
            "remaining_to_allocate": _q(money(total_budget) - total_allocated),
        },
        "employees": rows,
    }
