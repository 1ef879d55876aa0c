import asyncio

import pytest

from school_messaging.repositories.conversation_repository import ConversationRepository, direct_pair_key


@pytest.mark.asyncio
async def test_find_or_create_direct_is_symmetric(conversation_service):
    first = await conversation_service.find_or_create_direct("T1", "P1")
    again = await conversation_service.find_or_create_direct("T1", "P1")
    reversed_order = await conversation_service.find_or_create_direct("P1", "T1")

    assert first == again == reversed_order
    assert first == direct_pair_key("P1", "T1")


@pytest.mark.asyncio
async def test_concurrent_find_or_create_produces_one_conversation(db, conversation_service):
    ids = await asyncio.gather(
        conversation_service.find_or_create_direct("T1", "P1"),
        conversation_service.find_or_create_direct("P1", "T1"),
        conversation_service.find_or_create_direct("T1", "P1"),
    )

    assert len(set(ids)) == 1
    assert await db["conversations"].count_documents({"type": "direct"}) == 1


@pytest.mark.asyncio
async def test_new_direct_conversation_shape(conversation_service):
    conversation_id = await conversation_service.find_or_create_direct("T1", "P1")
    convo = await conversation_service.get_with_messages(conversation_id)

    assert convo["type"] == "direct"
    assert convo["is_group"] is False
    assert sorted(convo["participants"]) == ["P1", "T1"]
    assert convo["unread_count"] == {}
    assert convo["messages"] == []
    assert convo["last_message"] is None
    assert convo["participant_roles"] == {"T1": "teacher", "P1": "student"}


class LateRepository(ConversationRepository):
    """Misses its first lookup, like a creator racing another one."""

    def __init__(self, db, school_id):
        super().__init__(db, school_id)
        self._missed = False

    async def get(self, conversation_id, session=None):
        if not self._missed:
            self._missed = True
            return None
        return await super().get(conversation_id, session=session)


@pytest.mark.asyncio
async def test_existing_document_wins_on_duplicate_insert(db):
    created = await ConversationRepository(db, "S1").get_or_create_direct("T1", "P1")

    raced = await LateRepository(db, "S1").get_or_create_direct("P1", "T1")

    assert raced["_id"] == created["_id"]
    assert await db["conversations"].count_documents({}) == 1


@pytest.mark.asyncio
async def test_self_conversation_is_rejected(conversation_service):
    with pytest.raises(ValueError):
        await conversation_service.find_or_create_direct("T1", "T1")
    with pytest.raises(ValueError):
        await conversation_service.find_or_create_direct("T1", "")


@pytest.mark.asyncio
async def test_create_group_never_reuses(conversation_service):
    first = await conversation_service.create_group(["T1", "P1", "P2"], "Science club")
    second = await conversation_service.create_group(["T1", "P1", "P2"], "Science club")

    assert first != second
    convo = await conversation_service.get(first)
    assert convo["is_group"] is True
    assert convo["type"] == "group"
    assert convo["group_name"] == "Science club"


@pytest.mark.asyncio
async def test_create_group_rejects_too_few_participants(conversation_service):
    with pytest.raises(ValueError):
        await conversation_service.create_group([], "Empty")
    with pytest.raises(ValueError):
        await conversation_service.create_group(["T1", "T1"], "Only me")


@pytest.mark.asyncio
async def test_create_conversation_picks_shape(conversation_service):
    direct = await conversation_service.create_conversation("T1", ["P1"])
    assert direct == await conversation_service.find_or_create_direct("P1", "T1")

    forced_group = await conversation_service.create_conversation("T1", ["P1"], is_group=True)
    assert forced_group != direct
    group = await conversation_service.get(forced_group)
    assert group["is_group"] is True
    assert group["group_name"] == "Group conversation"

    many = await conversation_service.create_conversation("T1", ["P1", "P2"], group_name="Lab")
    convo = await conversation_service.get(many)
    assert convo["participants"] == ["T1", "P1", "P2"]
    assert convo["group_name"] == "Lab"


@pytest.mark.asyncio
async def test_list_for_user_attaches_messages(conversation_service, chat_service):
    cid = await conversation_service.find_or_create_direct("T1", "P1")
    await chat_service.send(cid, "T1", "first")
    await chat_service.send(cid, "P1", "second")
    await conversation_service.create_group(["T2", "P4", "P5"], "Other group")

    conversations = await conversation_service.list_for_user("P1")

    assert [c["_id"] for c in conversations] == [cid]
    assert [m["content"] for m in conversations[0]["messages"]] == ["first", "second"]
    assert await conversation_service.list_for_user("A1") == []


@pytest.mark.asyncio
async def test_unread_counters(conversation_service):
    cid = await conversation_service.create_group(["T1", "P1", "P2"], "Group")

    assert await conversation_service.increment_unread(cid, exclude_user_id="T1") is True
    assert await conversation_service.increment_unread(cid, exclude_user_id="P1") is True
    convo = await conversation_service.get(cid)
    assert convo["unread_count"] == {"P1": 1, "P2": 2, "T1": 1}

    assert await conversation_service.clear_unread(cid, "P2") is True
    assert await conversation_service.clear_unread(cid, "P2") is True
    convo = await conversation_service.get(cid)
    assert convo["unread_count"]["P2"] == 0


@pytest.mark.asyncio
async def test_unread_on_missing_conversation(conversation_service):
    assert await conversation_service.increment_unread("missing", exclude_user_id="T1") is False
    assert await conversation_service.clear_unread("missing", "T1") is False
    assert await conversation_service.get_with_messages("missing") is None


@pytest.mark.asyncio
async def test_conversations_are_scoped_to_school(db, conversation_service):
    cid = await conversation_service.find_or_create_direct("T1", "P1")
    other_school = ConversationRepository(db, "S2")

    assert await other_school.get(cid) is None
    assert await other_school.list_for_user("T1") == []


@pytest.mark.asyncio
async def test_direct_pairs_with_separator_in_ids_stay_distinct(conversation_service):
    first = await conversation_service.find_or_create_direct("a:b", "c")
    second = await conversation_service.find_or_create_direct("a", "b:c")

    assert first != second
    assert (await conversation_service.get(first))["participants"] == ["a:b", "c"]
    assert (await conversation_service.get(second))["participants"] == ["a", "b:c"]


@pytest.mark.asyncio
async def test_direct_key_owned_by_another_pair_is_rejected(db, conversation_repo):
    await db["conversations"].insert_one(
        {"_id": direct_pair_key("P1", "T1"), "school_id": "S1", "participants": ["P2", "T1"], "type": "direct"}
    )

    with pytest.raises(ValueError):
        await conversation_repo.get_or_create_direct("T1", "P1")
