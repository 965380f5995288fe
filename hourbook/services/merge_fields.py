"""``{{field}}`` substitution for user-editable email text.

Templates come from account settings, so they are rendered in a sandbox
with autoescaping off (the result is escaped where it is embedded in HTML).
Fields that are not known are written back exactly as ``{{field}}``.
"""
from datetime import date as _date

from jinja2 import TemplateError, Undefined
from jinja2.sandbox import SandboxedEnvironment

from hourbook.core.errors import ValidationError
from hourbook.schemas.client_schema import Client
from hourbook.schemas.invoice_schema import Invoice
from hourbook.schemas.settings_schema import UserSettings
from hourbook.utils.money import format_money


MERGE_FIELDS = (
    "client_name",
    "invoice_number",
    "invoice_date",
    "due_date",
    "total_amount",
    "company_name",
    "company_email",
    "company_phone",
    "company_website",
)


class KeepUndefined(Undefined):
    __slots__ = ()

    def __str__(self) -> str:
        return "{{" + (self._undefined_name or "") + "}}"


_env = SandboxedEnvironment(undefined=KeepUndefined, autoescape=False, keep_trailing_newline=True)


def long_date(value: _date) -> str:
    return f"{value:%B} {value.day}, {value.year}"


def merge_values(invoice: Invoice, client: Client, account: UserSettings) -> dict[str, str]:
    return {
        "client_name": client.billing_first_name or client.name,
        "invoice_number": invoice.invoice_number,
        "invoice_date": long_date(invoice.date_issued),
        "due_date": long_date(invoice.due_date),
        "total_amount": format_money(invoice.total),
        "company_name": account.company_name,
        "company_email": account.company_email,
        "company_phone": account.company_phone,
        "company_website": account.company_website,
    }


def render_merge_fields(text: str, values: dict[str, str]) -> str:
    if not text:
        return ""
    try:
        return _env.from_string(text).render(**values)
    except TemplateError as exc:
        raise ValidationError(f"template could not be rendered: {exc}") from exc
