"""
Structured exceptions and error responses for Cornerstone.

Provides consistent error handling across the scheduling core and the API:
- Custom exception classes (validation, not found, conflicts, graph errors)
- Structured error response format
- FastAPI exception handlers
"""

from typing import Any, Dict, Optional, List
from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from cornerstone.logging_config import get_logger

logger = get_logger("cornerstone.error")


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Structured error response format."""
    error: str  # Error code (e.g., "not_found", "cycle_detected")
    message: str
    details: Optional[List[ErrorDetail]] = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class CornerstoneException(Exception):
    """Base exception for all Cornerstone errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(CornerstoneException):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(CornerstoneException):
    """Malformed input: missing required values, bad enum values, bad ranges."""

    def __init__(
        self,
        message: str,
        details: Optional[List[Dict[str, Any]]] = None,
        error_code: str = "validation_error",
        status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY,
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status_code,
            details=details,
        )


class SelfDependencyError(ValidationError):
    """Work item cannot depend on itself."""

    def __init__(self, work_item_id: str):
        super().__init__(
            message="A work item cannot depend on itself",
            error_code="self_dependency",
            status_code=status.HTTP_400_BAD_REQUEST,
        )
        self.work_item_id = work_item_id


class ConflictError(CornerstoneException):
    """The request conflicts with existing state."""

    def __init__(self, message: str, error_code: str = "conflict"):
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=status.HTTP_409_CONFLICT,
        )


class DuplicateDependencyError(ConflictError):
    """Dependency already exists."""

    def __init__(self, predecessor_id: str, successor_id: str):
        super().__init__(
            message="This dependency already exists",
            error_code="duplicate_dependency",
        )
        self.predecessor_id = predecessor_id
        self.successor_id = successor_id


class GraphError(CornerstoneException):
    """Structural problem in the dependency graph."""


class UnknownNodeError(GraphError):
    """A dependency or milestone requirement references a work item outside the snapshot."""

    def __init__(self, node_id: str, context: str = "dependency"):
        super().__init__(
            message=f"Unknown work item {node_id} referenced by {context}",
            error_code="unknown_node",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=[{
                "loc": [context],
                "msg": f"Work item {node_id} is not part of the schedule",
                "type": "unknown_node",
            }],
        )
        self.node_id = node_id


class CycleError(GraphError):
    """The dependency graph contains a cycle; the scheduling run is aborted."""

    def __init__(self, involved_node_ids: List[str]):
        super().__init__(
            message="The dependency graph contains a circular dependency",
            error_code="circular_dependency",
            status_code=status.HTTP_409_CONFLICT,
            details=[{
                "loc": ["dependencies"],
                "msg": "Cycle through: " + ", ".join(involved_node_ids),
                "type": "cycle_error",
            }],
        )
        self.involved_node_ids = involved_node_ids


class CycleDetectedError(GraphError):
    """Adding a dependency would create a cycle."""

    def __init__(self, predecessor_id: str, successor_id: str, cycle_path: Optional[List[str]] = None):
        super().__init__(
            message="Adding this dependency would create a cycle in the work item graph",
            error_code="cycle_detected",
            status_code=status.HTTP_409_CONFLICT,
            details=[{
                "loc": ["body"],
                "msg": f"Dependency {predecessor_id} -> {successor_id} would create a cycle",
                "type": "cycle_error",
                "cycle_path": cycle_path or [],
            }],
        )
        self.predecessor_id = predecessor_id
        self.successor_id = successor_id
        self.cycle_path = cycle_path or []


class ScheduleLimitError(ValidationError):
    """Snapshot is larger than the configured scheduling bound."""

    def __init__(self, count: int, limit: int):
        super().__init__(
            message=f"Cannot schedule {count} work items; the limit is {limit}",
            error_code="schedule_limit_exceeded",
        )
        self.count = count
        self.limit = limit


# =============================================================================
# Exception Handlers
# =============================================================================

async def cornerstone_exception_handler(request: Request, exc: CornerstoneException) -> JSONResponse:
    """Handle CornerstoneException and return structured response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred",
            "details": None,
        },
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(CornerstoneException, cornerstone_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
