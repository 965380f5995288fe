from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from hourbook.core.security import get_current_account
from hourbook.db.mongo import get_mongo_db
from hourbook.db.store import Store
from hourbook.utils.email import send_email_smtp


async def get_store(
    db: AsyncIOMotorDatabase = Depends(get_mongo_db),
    current_account=Depends(get_current_account),
) -> Store:
    return Store(db, current_account["id"])


def get_mailer():
    return send_email_smtp
