from datetime import datetime
from pydantic import BaseModel, Field

from cornerstone.enums import DependencyType


class DependencyCreate(BaseModel):
    """Schema for creating a new dependency."""
    predecessor_id: str = Field(min_length=1)  # The blocking work item
    successor_id: str = Field(min_length=1)    # The blocked work item
    dependency_type: DependencyType = DependencyType.FINISH_TO_START
    lead_lag_days: int = 0  # Negative = lead (overlap allowed)


class DependencyUpdate(BaseModel):
    """Schema for changing the type or offset of an existing dependency."""
    dependency_type: DependencyType | None = None
    lead_lag_days: int | None = None


class DependencyRead(BaseModel):
    """Schema for reading a dependency."""
    predecessor_id: str
    successor_id: str
    dependency_type: DependencyType
    lead_lag_days: int
    created_at: datetime

    model_config = {"from_attributes": True}
