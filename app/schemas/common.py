from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import BaseModel, Field

# Request bounds matching the Numeric(12, 2) money and Numeric(10, 2) hours columns.
MoneyAmount = Annotated[Decimal, Field(max_digits=12, decimal_places=2)]
HoursAmount = Annotated[Decimal, Field(max_digits=10, decimal_places=2)]


class Envelope(BaseModel):
    success: bool = True
    message: str
    data: Optional[Any] = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    message: str
