from datetime import date as _date, datetime
from typing import Optional
from pydantic import BaseModel, Field


class PaymentIn(BaseModel):
    date: _date
    amount: float = Field(gt=0)
    method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


class Payment(BaseModel):
    id: str
    invoice_id: str
    date: _date
    amount: float
    method: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
