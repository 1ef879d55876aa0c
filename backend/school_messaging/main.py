import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from school_messaging.config import settings
from school_messaging.database.connection import close_mongo_connection, connect_to_mongo, get_database
from school_messaging.repositories.conversation_repository import ConversationRepository
from school_messaging.repositories.directory_repository import DirectoryRepository
from school_messaging.repositories.message_repository import MessageRepository
from school_messaging.routers.broadcasts import router as broadcasts_router
from school_messaging.routers.conversations import router as conversations_router
from school_messaging.routers.directory import router as directory_router


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):

    await connect_to_mongo()
    db = get_database()
    await ConversationRepository.ensure_indexes(db)
    await MessageRepository.ensure_indexes(db)
    await DirectoryRepository.ensure_indexes(db)
    try:
        yield
    finally:
        await close_mongo_connection()


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)


app.include_router(conversations_router)
app.include_router(broadcasts_router)
app.include_router(directory_router)


@app.get("/")
async def root():

    db = get_database()
    collections = await db.list_collection_names()
    return {"message": "Connected to MongoDB!", "collections": collections}
