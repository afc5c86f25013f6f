from datetime import date, datetime
from pydantic import BaseModel, model_validator

from cornerstone.enums import DependencyType, ScheduleMode, WarningKind, WorkItemStatus


class ScheduleRequest(BaseModel):
    """Schema for a read-only schedule preview."""
    mode: ScheduleMode = ScheduleMode.FULL
    anchor_work_item_id: str | None = None

    @model_validator(mode="after")
    def check_anchor(self):
        if self.mode == ScheduleMode.CASCADE and not self.anchor_work_item_id:
            raise ValueError("anchor_work_item_id is required when mode is 'cascade'")
        return self


class ScheduledWorkItem(BaseModel):
    """Resolved dates and float for one work item."""
    work_item_id: str
    start_date: date | None
    end_date: date | None
    duration_days: int | None
    previous_start_date: date | None
    previous_end_date: date | None
    latest_start_date: date | None
    latest_finish_date: date | None
    total_float: int | None
    is_critical: bool

    model_config = {"from_attributes": True}


class ScheduleWarningRead(BaseModel):
    work_item_id: str
    kind: WarningKind
    message: str

    model_config = {"from_attributes": True}


class ScheduleResponse(BaseModel):
    """Schema for the schedule preview result."""
    scheduled_items: list[ScheduledWorkItem]
    critical_path: list[str]
    warnings: list[ScheduleWarningRead]
    project_end_date: date | None = None


class TimelineWorkItem(BaseModel):
    id: str
    title: str
    status: WorkItemStatus
    start_date: date | None
    end_date: date | None
    duration_days: int | None
    start_after: date | None
    start_before: date | None
    required_milestone_ids: list[int] = []


class TimelineDependency(BaseModel):
    predecessor_id: str
    successor_id: str
    dependency_type: DependencyType
    lead_lag_days: int


class TimelineMilestone(BaseModel):
    id: int
    title: str
    target_date: date
    is_completed: bool
    completed_at: datetime | None
    color: str | None
    work_item_ids: list[str]
    projected_date: date | None  # Latest end date among linked work items


class TimelineDateRange(BaseModel):
    earliest: date
    latest: date


class TimelineResponse(BaseModel):
    """Schema for the aggregated Gantt/timeline view."""
    work_items: list[TimelineWorkItem]
    dependencies: list[TimelineDependency]
    milestones: list[TimelineMilestone]
    critical_path: list[str]
    date_range: TimelineDateRange | None
