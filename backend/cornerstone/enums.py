"""Enumerations shared by the database models, the API schemas and the scheduling core."""

from enum import Enum


class WorkItemStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class DependencyType(str, Enum):
    FINISH_TO_START = "finish_to_start"
    START_TO_START = "start_to_start"
    FINISH_TO_FINISH = "finish_to_finish"
    START_TO_FINISH = "start_to_finish"


class ConfidenceLevel(str, Enum):
    OWN_ESTIMATE = "own_estimate"
    PROFESSIONAL_ESTIMATE = "professional_estimate"
    QUOTE = "quote"
    INVOICE = "invoice"


class ReductionType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class ApplicationStatus(str, Enum):
    ELIGIBLE = "eligible"
    APPLIED = "applied"
    APPROVED = "approved"
    RECEIVED = "received"
    REJECTED = "rejected"


class WarningKind(str, Enum):
    START_BEFORE_VIOLATED = "start_before_violated"
    NO_DURATION = "no_duration"
    ALREADY_COMPLETED = "already_completed"


class ScheduleMode(str, Enum):
    FULL = "full"
    CASCADE = "cascade"
