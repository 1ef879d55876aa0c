from typing import Any, Dict

from fastapi import Depends, Header, HTTPException, status
from motor.motor_asyncio import AsyncIOMotorDatabase

from school_messaging.config import settings
from school_messaging.database.connection import mongo_db_dependency
from school_messaging.repositories.directory_repository import DirectoryRepository
from school_messaging.services.directory_service import DirectoryService
from school_messaging.services.messaging_session import MessagingSession


# Sessions are issued by the upstream gateway, which forwards the verified
# identity in these headers.
def get_directory(
    x_school_id: str = Header(...),
    db: AsyncIOMotorDatabase = Depends(mongo_db_dependency),
) -> DirectoryService:
    return DirectoryService(DirectoryRepository(db, x_school_id))


async def get_current_user(
    x_user_id: str = Header(...),
    directory: DirectoryService = Depends(get_directory),
) -> Dict[str, Any]:
    user = await directory.get_user(x_user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown user")
    return user


def get_messaging_session(
    x_school_id: str = Header(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    directory: DirectoryService = Depends(get_directory),
    db: AsyncIOMotorDatabase = Depends(mongo_db_dependency),
) -> MessagingSession:
    return MessagingSession.for_user(
        db,
        x_school_id,
        current_user,
        directory=directory,
        use_transactions=settings.MONGO_USE_TRANSACTIONS,
    )
