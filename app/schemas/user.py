from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


class UserCreate(BaseModel):
    email: str
    full_name: Optional[str] = None
    role: Literal["ADMIN", "MANAGER", "EMPLOYEE"] = "EMPLOYEE"
    position: Optional[str] = None
    department: Optional[str] = None


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    email: str
    full_name: Optional[str]
    role: str
    position: Optional[str]
    department: Optional[str]
    is_active: bool
    total_earnings: Decimal
    pending_earnings: Decimal
    last_payment_date: Optional[datetime]
    last_payment_amount: Optional[Decimal]
    completed_projects_count: int
    created_at: datetime


class TeammateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    full_name: Optional[str]
    position: Optional[str]
    department: Optional[str]
