from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.common import HoursAmount, MoneyAmount


class ProjectCreate(BaseModel):
    name: str
    description: Optional[str] = None
    project_type: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    currency: Optional[str] = None
    budget: MoneyAmount = Decimal("0")
    rate: Optional[MoneyAmount] = None
    estimated_hours: Optional[HoursAmount] = None
    actual_hours: Optional[HoursAmount] = None
    estimated_consumables: Optional[MoneyAmount] = None
    actual_consumables: Optional[MoneyAmount] = None
    estimated_materials: Optional[MoneyAmount] = None
    actual_materials: Optional[MoneyAmount] = None


class ProjectUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    name: Optional[str] = None
    description: Optional[str] = None
    project_type: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    start_date: Optional[date] = None
    deadline: Optional[date] = None
    currency: Optional[str] = None
    budget: Optional[MoneyAmount] = None
    rate: Optional[MoneyAmount] = None
    estimated_hours: Optional[HoursAmount] = None
    actual_hours: Optional[HoursAmount] = None
    estimated_consumables: Optional[MoneyAmount] = None
    actual_consumables: Optional[MoneyAmount] = None
    estimated_materials: Optional[MoneyAmount] = None
    actual_materials: Optional[MoneyAmount] = None


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    name: str
    description: Optional[str]
    project_type: str
    status: str
    priority: str
    start_date: Optional[date]
    deadline: Optional[date]
    currency: str
    budget: Decimal
    allocated_amount: Decimal
    spent_amount: Decimal
    rate: Decimal
    estimated_hours: Decimal
    actual_hours: Decimal
    estimated_consumables: Decimal
    actual_consumables: Decimal
    estimated_materials: Decimal
    actual_materials: Decimal
    created_by: int
    created_at: datetime
    updated_at: datetime
