from typing import List, Literal, Optional, TypedDict


Role = Literal["admin", "teacher", "student", "parent"]

ROLES = ("admin", "teacher", "student", "parent")


class UserDocument(TypedDict, total=False):

    _id: str
    school_id: str
    first_name: str
    last_name: str
    role: Role
    # students only
    homeroom_class_id: Optional[str]
    # parents only
    children_ids: List[str]


class ClassDocument(TypedDict, total=False):

    _id: str
    school_id: str
    name: str
    teacher_id: Optional[str]


class TimetableEntryDocument(TypedDict, total=False):

    _id: str
    school_id: str
    teacher_id: str
    class_id: str
