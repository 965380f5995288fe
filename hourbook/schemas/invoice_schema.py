from datetime import date as _date, datetime
from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, Field, computed_field, field_validator

from hourbook.utils.money import round_money, sum_money
from .payment_schema import Payment


class InvoiceStatus(str, Enum):
    draft = "draft"
    sent = "sent"
    paid = "paid"
    partially_paid = "partially_paid"
    # Display-only; derived from due date at read time
    overdue = "overdue"


class InvoiceLineItem(BaseModel):
    id: str
    date: _date
    description: str
    hours: float
    rate: float
    subtotal: float
    time_entry_id: Optional[str] = None


class LineItemIn(BaseModel):
    """A manually entered invoice row. Rate defaults to the client's hourly rate."""

    date: _date
    description: str = ""
    hours: float = Field(default=1.0, gt=0)
    rate: Optional[float] = Field(default=None, ge=0)


class InvoiceEmailHistory(BaseModel):
    id: str
    sent_at: datetime
    sent_to: str
    cc_emails: list[str] = Field(default_factory=list)
    custom_message: Optional[str] = None


class InvoiceCreate(BaseModel):
    client_id: str
    date_issued: _date
    due_date: Optional[_date] = None
    status: Literal["draft", "sent"] = "draft"
    time_entry_ids: list[str] = Field(default_factory=list)
    manual_line_items: list[LineItemIn] = Field(default_factory=list)

    @field_validator("time_entry_ids")
    @classmethod
    def _no_duplicate_entries(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("time entry selected more than once")
        return v


class InvoiceUpdate(BaseModel):
    date_issued: Optional[_date] = None
    due_date: Optional[_date] = None
    status: Optional[InvoiceStatus] = None


class Invoice(BaseModel):
    id: str
    invoice_number: str
    client_id: str
    date_issued: _date
    due_date: _date
    status: InvoiceStatus
    line_items: list[InvoiceLineItem] = Field(default_factory=list)
    total: float
    last_sent_at: Optional[datetime] = None
    sent_count: int = 0
    email_history: list[InvoiceEmailHistory] = Field(default_factory=list)
    payments: list[Payment] = Field(default_factory=list)
    pre_payment_status: Optional[InvoiceStatus] = None

    @computed_field
    @property
    def amount_paid(self) -> float:
        return sum_money(p.amount for p in self.payments)

    @computed_field
    @property
    def balance_due(self) -> float:
        return max(0.0, round_money(self.total - self.amount_paid))

    def line_items_total(self) -> float:
        return sum_money(item.subtotal for item in self.line_items)


class InvoiceView(Invoice):
    """An invoice as displayed on a given day, with overdue derived."""

    effective_status: InvoiceStatus


class InvoiceSendIn(BaseModel):
    message: Optional[str] = None
