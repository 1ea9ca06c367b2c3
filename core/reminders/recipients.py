"""Recipient resolver for direct (email) reminders."""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncConnection

from core.enums import AccessType
from core.tables import live_class_access, profiles

DEFAULT_DISPLAY_NAME = "Student"


@dataclass(frozen=True)
class Recipient:
    user_id: str
    email: str | None
    display_name: str


def _access_query():
    return select(
        live_class_access.c.user_id,
        profiles.c.email,
        profiles.c.name,
    ).select_from(
        live_class_access.join(profiles, live_class_access.c.user_id == profiles.c.id)
    )


def merge_grants(*grant_sets: list[dict]) -> list[Recipient]:
    """
    Union grant rows and dedupe by user id.

    When a user appears more than once the later row wins, but the user
    keeps the position of its first appearance.
    """
    by_user: dict[str, Recipient] = {}
    for grants in grant_sets:
        for row in grants:
            user_id = str(row["user_id"])
            by_user[user_id] = Recipient(
                user_id=user_id,
                email=(row.get("email") or None),
                display_name=row.get("name") or DEFAULT_DISPLAY_NAME,
            )
    return list(by_user.values())


async def get_session_recipients(
    conn: AsyncConnection,
    session_id: str,
    live_class_id: str,
) -> list[Recipient]:
    """
    Users entitled to notice for a session.

    Union of grants pointing at the session itself and full-course grants
    for its parent live class, deduplicated by user.
    """
    session_result = await conn.execute(
        _access_query().where(live_class_access.c.class_session_id == session_id)
    )
    session_grants = [dict(row) for row in session_result.mappings()]

    course_result = await conn.execute(
        _access_query()
        .where(live_class_access.c.live_class_id == live_class_id)
        .where(live_class_access.c.access_type == AccessType.full_course.value)
    )
    course_grants = [dict(row) for row in course_result.mappings()]

    return merge_grants(session_grants, course_grants)
