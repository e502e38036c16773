"""Table definitions using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("name", Text, nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("role", String(16), nullable=False, server_default="user"),
    Column("phone_number", String(32), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("role IN ('user', 'admin')", name="users_role_check"),
)

appointments = Table(
    "appointments",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("user_id", String(32), ForeignKey("users.id"), nullable=False),
    # Snapshot of the patient at booking time
    Column("user_name", Text, nullable=False),
    Column("user_email", String(320), nullable=False),
    Column("phone_number", String(32), nullable=True),
    Column("date", Date, nullable=False),
    Column("time", String(8), nullable=False),
    Column("service", Text, nullable=False),
    Column("dentist_name", Text, nullable=True),
    Column("notes", Text, nullable=True),
    Column("status", String(16), nullable=False, server_default="pending"),
    Column("approval_message", Text, nullable=True),
    Column("rejection_reason", Text, nullable=True),
    Column("reminder_set", Boolean, nullable=False, default=False),
    Column("reminder_date", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
        name="appointments_status_check",
    ),
    Index("ix_appointments_slot", "date", "time"),
    Index("ix_appointments_user_email", "user_email"),
)

chat_sessions = Table(
    "chat_sessions",
    metadata,
    Column("session_id", String(128), primary_key=True),
    Column("user_email", String(320), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Index("ix_chat_sessions_email_updated", "user_email", "updated_at"),
)

# One row per transcript entry; the autoincrement id is the transcript order
chat_messages = Table(
    "chat_messages",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "session_id",
        String(128),
        ForeignKey("chat_sessions.session_id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("role", String(16), nullable=False),
    Column("content", Text, nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    CheckConstraint("role IN ('user', 'assistant')", name="chat_messages_role_check"),
    Index("ix_chat_messages_session", "session_id", "id"),
)
