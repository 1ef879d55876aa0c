import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from school_messaging.repositories.conversation_repository import ConversationRepository
from school_messaging.repositories.directory_repository import DirectoryRepository
from school_messaging.repositories.message_repository import MessageRepository
from school_messaging.services.broadcast_service import BroadcastService
from school_messaging.services.chat_service import ChatService
from school_messaging.services.conversation_service import ConversationService
from school_messaging.services.directory_service import DirectoryService


SCHOOL_ID = "S1"


def _user(user_id, role, first, last, school_id=SCHOOL_ID, **extra):
    return {"_id": user_id, "school_id": school_id, "role": role, "first_name": first, "last_name": last, **extra}


USERS = [
    _user("A1", "admin", "Ana", "Admin"),
    _user("T1", "teacher", "Tom", "Teach"),
    _user("T2", "teacher", "Tess", "Teach"),
    _user("T3", "teacher", "Theo", "Teach"),
    _user("P1", "student", "Pat", "Pupil", homeroom_class_id="7A"),
    _user("P2", "student", "Pia", "Pupil", homeroom_class_id="7A"),
    _user("P3", "student", "Pol", "Pupil", homeroom_class_id="7A"),
    _user("P4", "student", "Pam", "Pupil", homeroom_class_id="7B"),
    _user("P5", "student", "Pip", "Pupil", homeroom_class_id="7B"),
    _user("M1", "parent", "Mia", "Parent", children_ids=["P1"]),
    _user("M2", "parent", "Max", "Parent", children_ids=["P4"]),
    # another tenant, never visible from S1
    _user("X1", "teacher", "Xena", "Other", school_id="S2"),
]

CLASSES = [
    {"_id": "7A", "school_id": SCHOOL_ID, "name": "Class 7A", "teacher_id": "T1"},
    {"_id": "7B", "school_id": SCHOOL_ID, "name": "Class 7B", "teacher_id": "T2"},
    {"_id": "8C", "school_id": SCHOOL_ID, "name": "Class 8C", "teacher_id": "T3"},
]

TIMETABLE = [
    {"school_id": SCHOOL_ID, "teacher_id": "T1", "class_id": "7A"},
    {"school_id": SCHOOL_ID, "teacher_id": "T2", "class_id": "7B"},
]


async def seed_school(db) -> None:
    await db["users"].insert_many([dict(u) for u in USERS])
    await db["classes"].insert_many([dict(c) for c in CLASSES])
    await db["timetable"].insert_many([dict(t) for t in TIMETABLE])


@pytest_asyncio.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client["school_messaging_test"]
    await seed_school(database)
    return database


@pytest.fixture
def directory(db):
    return DirectoryService(DirectoryRepository(db, SCHOOL_ID))


@pytest.fixture
def conversation_repo(db):
    return ConversationRepository(db, SCHOOL_ID)


@pytest.fixture
def message_repo(db):
    return MessageRepository(db, SCHOOL_ID)


@pytest.fixture
def conversation_service(conversation_repo, message_repo, directory):
    return ConversationService(conversation_repo, message_repo, directory)


@pytest.fixture
def chat_service(db, message_repo, conversation_repo, directory):
    return ChatService(db, message_repo, conversation_repo, directory)


@pytest.fixture
def broadcast_service(conversation_service, chat_service, directory):
    return BroadcastService(conversation_service, chat_service, directory)


def user(user_id):
    return next(dict(u) for u in USERS if u["_id"] == user_id)
