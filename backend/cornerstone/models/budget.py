import uuid
from datetime import date, datetime

from sqlmodel import SQLModel, Field

from cornerstone.enums import ConfidenceLevel
from cornerstone.models.work_item import utcnow


class WorkItemBudget(SQLModel, table=True):
    """
    A budget line on a work item.

    confidence drives the uncertainty margin used for payback ranges;
    invoices recorded against the line replace planned_amount.
    """

    __tablename__ = "work_item_budgets"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    work_item_id: str = Field(foreign_key="work_items.id", index=True, ondelete="CASCADE")
    description: str | None = Field(default=None)
    planned_amount: float = Field(default=0, ge=0)
    confidence: str = Field(default=ConfidenceLevel.OWN_ESTIMATE.value)
    budget_category_id: str | None = Field(default=None, index=True)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Invoice(SQLModel, table=True):
    """An actual cost booked against a budget line."""

    __tablename__ = "invoices"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    work_item_budget_id: str = Field(foreign_key="work_item_budgets.id", index=True, ondelete="CASCADE")
    amount: float
    invoice_date: date | None = Field(default=None)

    created_at: datetime = Field(default_factory=utcnow)
