from cornerstone.schemas.work_item import WorkItemCreate, WorkItemUpdate, WorkItemRead
from cornerstone.schemas.dependency import DependencyCreate, DependencyUpdate, DependencyRead
from cornerstone.schemas.milestone import (
    MilestoneCreate,
    MilestoneUpdate,
    MilestoneRead,
    MilestoneWorkItemLink,
)
from cornerstone.schemas.schedule import (
    ScheduleRequest,
    ScheduleResponse,
    ScheduledWorkItem,
    ScheduleWarningRead,
    TimelineResponse,
    TimelineWorkItem,
    TimelineDependency,
    TimelineMilestone,
    TimelineDateRange,
)
from cornerstone.schemas.payback import PaybackEntryRead, SubsidyPaybackRead

__all__ = [
    "WorkItemCreate",
    "WorkItemUpdate",
    "WorkItemRead",
    "DependencyCreate",
    "DependencyUpdate",
    "DependencyRead",
    "MilestoneCreate",
    "MilestoneUpdate",
    "MilestoneRead",
    "MilestoneWorkItemLink",
    "ScheduleRequest",
    "ScheduleResponse",
    "ScheduledWorkItem",
    "ScheduleWarningRead",
    "TimelineResponse",
    "TimelineWorkItem",
    "TimelineDependency",
    "TimelineMilestone",
    "TimelineDateRange",
    "PaybackEntryRead",
    "SubsidyPaybackRead",
]
