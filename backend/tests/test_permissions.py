import pytest

from conftest import user
from school_messaging.services.permissions import (
    ContactPolicy,
    Permissions,
    announcement_roles_for,
    permissions_for,
)


@pytest.mark.parametrize(
    "role,expected",
    [
        ("admin", Permissions(True, True, True)),
        ("teacher", Permissions(True, True, False)),
        ("student", Permissions(False, False, False)),
        ("parent", Permissions(False, False, False)),
    ],
)
def test_capability_table(role, expected):
    assert permissions_for(role) == expected


@pytest.mark.parametrize("role", [None, "", "janitor", "ADMIN"])
def test_unknown_role_fails_closed(role):
    perms = permissions_for(role)
    assert not perms.can_send_announcement
    assert not perms.can_send_to_class
    assert not perms.can_moderate_messages
    assert announcement_roles_for(role) == frozenset()


def test_announcement_audience():
    assert announcement_roles_for("admin") == {"admin", "teacher", "student", "parent"}
    assert announcement_roles_for("teacher") == {"student", "parent"}
    assert announcement_roles_for("student") == frozenset()
    assert announcement_roles_for("parent") == frozenset()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "sender_id,recipient_id,allowed",
    [
        # admins reach everyone
        ("A1", "P5", True),
        ("A1", "M2", True),
        # everyone reaches admins
        ("P1", "A1", True),
        ("M1", "A1", True),
        # teachers: own students and their parents only
        ("T1", "P1", True),
        ("T1", "P4", False),
        ("T1", "M1", True),
        ("T1", "M2", False),
        ("T1", "T2", False),
        # students: their teachers and their parents
        ("P1", "T1", True),
        ("P1", "T2", False),
        ("P1", "M1", True),
        ("P1", "M2", False),
        ("P1", "P2", False),
        # parents: own children and their teachers
        ("M1", "P1", True),
        ("M1", "P2", False),
        ("M1", "T1", True),
        ("M1", "T2", False),
        ("M2", "T2", True),
        # unknown or other-school recipients
        ("A1", "nobody", False),
        ("A1", "X1", False),
    ],
)
async def test_contact_policy(directory, sender_id, recipient_id, allowed):
    policy = ContactPolicy(directory)
    assert await policy.can_message(user(sender_id), recipient_id) is allowed


@pytest.mark.asyncio
async def test_contact_policy_rejects_unknown_sender_role(directory):
    policy = ContactPolicy(directory)
    ghost = {"_id": "G1", "role": "janitor"}
    assert await policy.can_message(ghost, "P1") is False
    assert await policy.can_message(ghost, "A1") is False
