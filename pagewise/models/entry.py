"""entries table — reference record set served by the list endpoint."""

import uuid

from sqlalchemy import Index, Text, desc, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from pagewise.core.database import Base, TimestampMixin


class Entry(TimestampMixin, Base):
    __tablename__ = "entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    team_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_entries_team_created", "team_id", desc("created_at"), desc("id")),
        Index("idx_entries_team_name", "team_id", "name", "id"),
    )
