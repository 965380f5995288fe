from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from .common import HEX_COLOR


def _dedupe_emails(emails: Optional[list[str]]) -> Optional[list[str]]:
    if emails is None:
        return None
    seen: set[str] = set()
    out: list[str] = []
    for e in emails:
        key = e.strip().lower()
        if key and key not in seen:
            seen.add(key)
            out.append(e.strip())
    return out


class ClientIn(BaseModel):
    name: str = Field(min_length=1)
    billing_first_name: str = ""
    billing_last_name: str = ""
    billing_phone: str = ""
    billing_email: Optional[EmailStr] = None
    cc_emails: list[EmailStr] = Field(default_factory=list)
    address_street: str = ""
    address_line_2: str = ""
    address_city: str = ""
    address_state: str = ""
    address_zip: str = ""
    address_country: str = ""
    hourly_rate: float = Field(gt=0)
    color: str = Field(default="#3b82f6", pattern=HEX_COLOR)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v

    @field_validator("cc_emails")
    @classmethod
    def _unique_cc(cls, v: list[str]) -> list[str]:
        return _dedupe_emails(v)


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    billing_first_name: Optional[str] = None
    billing_last_name: Optional[str] = None
    billing_phone: Optional[str] = None
    billing_email: Optional[EmailStr] = None
    cc_emails: Optional[list[EmailStr]] = None
    address_street: Optional[str] = None
    address_line_2: Optional[str] = None
    address_city: Optional[str] = None
    address_state: Optional[str] = None
    address_zip: Optional[str] = None
    address_country: Optional[str] = None
    hourly_rate: Optional[float] = Field(default=None, gt=0)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)

    @field_validator("cc_emails")
    @classmethod
    def _unique_cc(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _dedupe_emails(v)


class Client(ClientIn):
    id: str
