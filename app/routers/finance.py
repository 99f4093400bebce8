from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends

from app.core.authorization import Principal, Role, require_role
from app.database import SessionLocal
from app.schemas.common import Envelope
from app.services import finance_service

router = APIRouter(prefix="/finance", tags=["Finance"])


@router.get("/overview", response_model=Envelope)
def financial_overview(
    mine: bool = False,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        data = finance_service.financial_overview(
            db,
            principal.company_id,
            created_by=principal.user_id if mine else None,
        )
        return {"success": True, "message": "Financial overview retrieved successfully", "data": data}
    finally:
        db.close()


@router.get("/projects/{project_id}", response_model=Envelope)
def project_financials(
    project_id: int,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        data = finance_service.project_financials(db, principal.company_id, project_id)
        return {"success": True, "message": "Project financials retrieved successfully", "data": data}
    finally:
        db.close()


@router.get("/projects/{project_id}/profit-loss", response_model=Envelope)
def project_profit_loss(
    project_id: int,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        full = finance_service.project_financials(db, principal.company_id, project_id)
        keys = (
            "project_id",
            "project_name",
            "budget",
            "estimated_total_cost",
            "actual_total_cost",
            "profit_loss",
            "profit_loss_percentage",
            "cost_performance_index",
            "schedule_performance_index",
            "hours_utilization",
            "budget_utilization",
            "variances",
        )
        data = {k: full[k] for k in keys}
        return {"success": True, "message": "Project profit/loss retrieved successfully", "data": data}
    finally:
        db.close()


@router.get("/projects/{project_id}/resource-comparison", response_model=Envelope)
def resource_comparison(
    project_id: int,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        data = finance_service.resource_comparison(db, principal.company_id, project_id)
        return {"success": True, "message": "Resource comparison retrieved successfully", "data": data}
    finally:
        db.close()


@router.get("/income-summary", response_model=Envelope)
def income_summary(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    project_type: Optional[str] = None,
    status: Optional[str] = None,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        data = finance_service.income_summary(
            db,
            principal.company_id,
            start=start,
            end=end,
            project_type=project_type,
            status=status,
        )
        return {"success": True, "message": "Income summary retrieved successfully", "data": data}
    finally:
        db.close()


@router.get("/employee-allocations", response_model=Envelope)
def employee_allocations(principal: Principal = Depends(require_role(Role.MANAGER))):
    db = SessionLocal()
    try:
        data = finance_service.employee_allocations(db, principal.company_id)
        return {"success": True, "message": "Employee allocations retrieved successfully", "data": data}
    finally:
        db.close()
