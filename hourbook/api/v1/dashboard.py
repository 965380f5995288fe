from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from hourbook.api.deps import get_store
from hourbook.db.store import Store
from hourbook.schemas.report_schema import AccountSummary
from hourbook.services.reports import account_summary


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=AccountSummary)
async def dashboard_summary(
    today: Optional[date] = Query(None, description="Reference day for the month and overdue figures"),
    store: Store = Depends(get_store),
):
    return await account_summary(store, today)
