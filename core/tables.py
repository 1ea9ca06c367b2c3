"""SQLAlchemy Core table definitions for the database schema.

Catalog, session and access tables are owned by the main academy app and
are only read here. class_reminders is the delivery ledger written by the
reminder engine.
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    MetaData,
    Table,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

# Naming convention for constraints (helps Alembic generate better names)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=convention)


# =====================================================
# 1. COURSES / LIVE CLASSES / COURSE VIDEOS (read-only)
# =====================================================
courses = Table(
    "courses",
    metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    Column("title", Text),
)

live_classes = Table(
    "live_classes",
    metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    Column("course_id", UUID(as_uuid=False), ForeignKey("courses.id")),
)

course_videos = Table(
    "course_videos",
    metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    Column("name", Text),
)


# =====================================================
# 2. CLASS_SESSIONS (read-only)
# =====================================================
class_sessions = Table(
    "class_sessions",
    metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    Column("scheduled_datetime", TIMESTAMP(timezone=True), nullable=False),
    Column("status", Text, nullable=False),  # "scheduled", "live", ...
    Column("live_class_id", UUID(as_uuid=False), ForeignKey("live_classes.id")),
    Column("course_video_id", UUID(as_uuid=False), ForeignKey("course_videos.id")),
    Column("session_type", Text),  # "morning", "afternoon", "evening"
    Index("idx_class_sessions_status_scheduled", "status", "scheduled_datetime"),
)


# =====================================================
# 3. PROFILES / LIVE_CLASS_ACCESS (read-only)
# =====================================================
profiles = Table(
    "profiles",
    metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    Column("email", Text),
    Column("name", Text),
)

live_class_access = Table(
    "live_class_access",
    metadata,
    Column("id", UUID(as_uuid=False), primary_key=True),
    Column("user_id", UUID(as_uuid=False), ForeignKey("profiles.id"), nullable=False),
    Column("live_class_id", UUID(as_uuid=False), ForeignKey("live_classes.id")),
    Column("class_session_id", UUID(as_uuid=False), ForeignKey("class_sessions.id")),
    Column("access_type", Text),  # "session", "full_course"
)


# =====================================================
# 4. CLASS_REMINDERS (delivery ledger, append-only)
# =====================================================
class_reminders = Table(
    "class_reminders",
    metadata,
    Column(
        "id",
        UUID(as_uuid=False),
        primary_key=True,
        server_default=func.gen_random_uuid(),
    ),
    Column(
        "class_session_id",
        UUID(as_uuid=False),
        ForeignKey("class_sessions.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("reminder_type", Text, nullable=False),  # ledger category
    Column("recipient_email", Text),  # direct sends
    Column("recipient_telegram_id", Text),  # broadcast sends
    Column("status", Text, nullable=False),  # "sent", "failed"
    Column("error_message", Text),
    Column("created_at", TIMESTAMP(timezone=True), server_default=func.now()),
    CheckConstraint("status IN ('sent', 'failed')", name="status_valid"),
    # Dedup gate lookups are scoped to (session, category)
    Index("idx_class_reminders_dedup", "class_session_id", "reminder_type"),
)
