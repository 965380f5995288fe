from pydantic import BaseModel


class AccountSummary(BaseModel):
    hours_this_month: float = 0.0
    total_invoiced: float = 0.0
    amount_paid: float = 0.0
    outstanding: float = 0.0
    overdue: float = 0.0


class ClientSummary(BaseModel):
    client_id: str
    total_hours: float = 0.0
    billed: float = 0.0
    outstanding: float = 0.0
    uninvoiced_hours: float = 0.0
    uninvoiced_amount: float = 0.0
