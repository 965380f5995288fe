from typing import Optional
from pydantic import BaseModel, Field

from .common import HEX_COLOR


class UserSettings(BaseModel):
    """Per-account document and email customization. Pure configuration."""

    company_name: str = ""
    company_address: str = ""
    company_phone: str = ""
    company_email: str = ""
    company_website: str = ""

    # Email customization; text fields accept {{merge_fields}}
    email_primary_color: str = Field(default="#3b82f6", pattern=HEX_COLOR)
    email_subject: str = "Invoice {{invoice_number}} from {{company_name}}"
    email_default_message: str = ""
    email_footer: str = ""
    email_include_pdf: bool = False
    email_include_line_items: bool = False

    # Invoice document customization
    pdf_header_color: str = Field(default="#0F2847", pattern=HEX_COLOR)
    pdf_accent_color: str = Field(default="#00a3e0", pattern=HEX_COLOR)
    pdf_invoice_title: str = "INVOICE"
    pdf_bill_to_label: str = "BILL TO"
    pdf_date_issued_label: str = "Date Issued"
    pdf_due_date_label: str = "Due Date"
    pdf_date_column_label: str = "Date"
    pdf_description_column_label: str = "Description"
    pdf_hours_column_label: str = "Hours"
    pdf_rate_column_label: str = "Rate"
    pdf_amount_column_label: str = "Amount"
    pdf_subtotal_label: str = "Subtotal"
    pdf_total_label: str = "Total"
    pdf_footer_text: str = "Thank you for your business"
    pdf_terms: str = ""
    pdf_payment_instructions: str = ""
    pdf_show_terms: bool = False
    pdf_show_payment_instructions: bool = False


class SettingsUpdate(BaseModel):
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_phone: Optional[str] = None
    company_email: Optional[str] = None
    company_website: Optional[str] = None
    email_primary_color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    email_subject: Optional[str] = None
    email_default_message: Optional[str] = None
    email_footer: Optional[str] = None
    email_include_pdf: Optional[bool] = None
    email_include_line_items: Optional[bool] = None
    pdf_header_color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    pdf_accent_color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    pdf_invoice_title: Optional[str] = None
    pdf_bill_to_label: Optional[str] = None
    pdf_date_issued_label: Optional[str] = None
    pdf_due_date_label: Optional[str] = None
    pdf_date_column_label: Optional[str] = None
    pdf_description_column_label: Optional[str] = None
    pdf_hours_column_label: Optional[str] = None
    pdf_rate_column_label: Optional[str] = None
    pdf_amount_column_label: Optional[str] = None
    pdf_subtotal_label: Optional[str] = None
    pdf_total_label: Optional[str] = None
    pdf_footer_text: Optional[str] = None
    pdf_terms: Optional[str] = None
    pdf_payment_instructions: Optional[str] = None
    pdf_show_terms: Optional[bool] = None
    pdf_show_payment_instructions: Optional[bool] = None
