import uuid
from datetime import date, datetime, timezone

from sqlmodel import SQLModel, Field

from cornerstone.enums import WorkItemStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkItem(SQLModel, table=True):
    """
    A schedulable task in the renovation plan.

    Key fields:
    - start_date / end_date: resolved dates, rewritten by auto-reschedule
    - duration_days: calendar days of work (None = not estimated yet)
    - start_after: hard lower bound on the start date
    - start_before: advisory upper bound; violations surface as warnings
    """

    __tablename__ = "work_items"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    title: str = Field(index=True)
    description: str | None = Field(default=None)
    status: str = Field(default=WorkItemStatus.NOT_STARTED.value, index=True)

    start_date: date | None = Field(default=None)
    end_date: date | None = Field(default=None)
    duration_days: int | None = Field(default=None, ge=0)
    start_after: date | None = Field(default=None)
    start_before: date | None = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
