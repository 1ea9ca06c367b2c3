"""Session window fetcher - upcoming scheduled class sessions."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from core.enums import SessionStatus
from core.tables import class_sessions, course_videos, courses, live_classes

logger = logging.getLogger(__name__)


class SessionFetchError(Exception):
    """Raised when upcoming sessions cannot be loaded. Aborts the run."""

    pass


@dataclass(frozen=True)
class ClassSession:
    """A scheduled session plus the titles needed to format reminders."""

    session_id: str
    scheduled_at: datetime
    live_class_id: str
    course_video_id: str | None = None
    session_type: str | None = None
    status: str = SessionStatus.scheduled.value
    course_title: str | None = None
    lesson_name: str | None = None


def _row_to_session(row) -> ClassSession:
    return ClassSession(
        session_id=str(row["id"]),
        scheduled_at=row["scheduled_datetime"],
        live_class_id=str(row["live_class_id"]),
        course_video_id=str(row["course_video_id"]) if row["course_video_id"] else None,
        session_type=row["session_type"],
        status=row["status"],
        course_title=row["course_title"],
        lesson_name=row["lesson_name"],
    )


async def fetch_upcoming_sessions(
    conn: AsyncConnection,
    now: datetime,
    lookahead: timedelta,
) -> list[ClassSession]:
    """
    Load scheduled sessions starting within [now, now + lookahead].

    Ordered ascending by start time. An empty list is a valid result.

    Raises:
        SessionFetchError: If the query fails
    """
    query = (
        select(
            class_sessions.c.id,
            class_sessions.c.scheduled_datetime,
            class_sessions.c.status,
            class_sessions.c.live_class_id,
            class_sessions.c.course_video_id,
            class_sessions.c.session_type,
            courses.c.title.label("course_title"),
            course_videos.c.name.label("lesson_name"),
        )
        .select_from(
            class_sessions.join(
                live_classes, class_sessions.c.live_class_id == live_classes.c.id
            )
            .join(courses, live_classes.c.course_id == courses.c.id)
            .join(
                course_videos, class_sessions.c.course_video_id == course_videos.c.id
            )
        )
        .where(class_sessions.c.status == SessionStatus.scheduled.value)
        .where(class_sessions.c.scheduled_datetime >= now)
        .where(class_sessions.c.scheduled_datetime <= now + lookahead)
        .order_by(class_sessions.c.scheduled_datetime.asc())
    )

    try:
        result = await conn.execute(query)
        rows = result.mappings().all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching upcoming sessions: {e}")
        raise SessionFetchError(str(e)) from e

    return [_row_to_session(row) for row in rows]
