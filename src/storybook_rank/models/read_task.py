"""SQLAlchemy model for queued read-count increments."""

from datetime import datetime

from sqlalchemy import VARCHAR, BigInteger, DateTime, Integer, SmallInteger, Text
from sqlalchemy.orm import Mapped, mapped_column

from storybook_rank.db.session import Base
from storybook_rank.db.time import utcnow

TASK_STATUS_PENDING = "pending"
TASK_STATUS_DONE = "done"
TASK_STATUS_FAILED = "failed"
# Held only inside the transaction that applies the task.
TASK_STATUS_RUNNING = "running"


class ReadCountTask(Base):
    """One "viewed" or "played" signal waiting to be applied to a read count."""

    __tablename__ = "read_count_task"

    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True)
    kind: Mapped[str] = mapped_column(VARCHAR(16), nullable=False)  # 'book', 'page', 'song'
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        VARCHAR(20), nullable=False, default=TASK_STATUS_PENDING, index=True
    )  # 'pending', 'done', 'failed'
    # Terminal result of the increment, e.g. 'applied', 'frozen', 'duplicate', 'not_found'.
    outcome: Mapped[str | None] = mapped_column(VARCHAR(20), nullable=True)
    attempts: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    available_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
