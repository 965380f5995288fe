from fastapi import APIRouter, Depends

from hourbook.api.deps import get_store
from hourbook.db.store import Store
from hourbook.schemas.settings_schema import SettingsUpdate, UserSettings
from hourbook.services.merge_fields import MERGE_FIELDS
from hourbook.services.user_settings import get_settings, update_settings


router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=UserSettings)
async def read_settings(store: Store = Depends(get_store)):
    return await get_settings(store)


@router.patch("", response_model=UserSettings)
async def patch_settings(payload: SettingsUpdate, store: Store = Depends(get_store)):
    return await update_settings(store, payload)


@router.get("/merge-fields", response_model=list[str])
async def list_merge_fields():
    return list(MERGE_FIELDS)
