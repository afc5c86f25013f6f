"""
Subsidy payback calculator.

Computes the [min, max] amount a work item's linked subsidy programs are
expected to pay back, given its budget lines and their invoices.

Rules:
- Rejected programs are left out entirely.
- Effective line amount: sum of invoices when any exist (margin 0),
  otherwise planned_amount with the confidence margin applied (+/-).
- Percentage programs: restricted line sum x reduction_value / 100.
  A program with categories only counts lines in those categories.
- Fixed programs: reduction_value, independent of the budget.
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from cornerstone.enums import ApplicationStatus, ConfidenceLevel, ReductionType
from cornerstone.exceptions import NotFoundError, ValidationError
from cornerstone.logging_config import get_logger
from cornerstone.models import (
    Invoice,
    SubsidyProgram,
    SubsidyProgramCategory,
    WorkItem,
    WorkItemBudget,
    WorkItemSubsidy,
)

logger = get_logger(__name__)

# Expected cost overrun as a fraction of the planned amount
CONFIDENCE_MARGINS: dict[ConfidenceLevel, float] = {
    ConfidenceLevel.OWN_ESTIMATE: 0.20,
    ConfidenceLevel.PROFESSIONAL_ESTIMATE: 0.10,
    ConfidenceLevel.QUOTE: 0.05,
    ConfidenceLevel.INVOICE: 0.0,
}


@dataclass(frozen=True)
class BudgetLineInput:
    id: str
    planned_amount: float
    confidence: ConfidenceLevel | str = ConfidenceLevel.OWN_ESTIMATE
    budget_category_id: str | None = None


@dataclass(frozen=True)
class InvoiceInput:
    amount: float
    id: str | None = None


@dataclass(frozen=True)
class SubsidyProgramInput:
    id: str
    reduction_type: ReductionType | str
    reduction_value: float
    application_status: ApplicationStatus | str = ApplicationStatus.ELIGIBLE
    name: str = ""
    budget_category_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class PaybackEntry:
    subsidy_program_id: str
    name: str
    reduction_type: ReductionType
    reduction_value: float
    min_payback: float
    max_payback: float


@dataclass
class PaybackResult:
    work_item_id: str
    subsidies: list[PaybackEntry] = field(default_factory=list)
    min_total_payback: float = 0.0
    max_total_payback: float = 0.0


@dataclass(frozen=True)
class _LineRange:
    budget_category_id: str | None
    min_amount: float
    max_amount: float


def _parse_enum(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(
            f"Invalid {field_name} {value!r}; expected one of: {allowed}",
            details=[{"loc": [field_name], "msg": f"invalid value {value!r}", "type": "value_error.enum"}],
        )


def confidence_margin(confidence: ConfidenceLevel | str) -> float:
    return CONFIDENCE_MARGINS[_parse_enum(ConfidenceLevel, confidence, "confidence")]


def _line_range(line: BudgetLineInput, invoices: Sequence[InvoiceInput]) -> _LineRange:
    margin = confidence_margin(line.confidence)
    if invoices:
        actual = sum(invoice.amount for invoice in invoices)
        return _LineRange(line.budget_category_id, actual, actual)
    return _LineRange(
        line.budget_category_id,
        line.planned_amount * (1 - margin),
        line.planned_amount * (1 + margin),
    )


def calculate_payback(
    work_item_id: str,
    budget_lines: Iterable[BudgetLineInput],
    invoices_by_budget_line_id: Mapping[str, Sequence[InvoiceInput]],
    linked_subsidy_programs: Iterable[SubsidyProgramInput],
) -> PaybackResult:
    """
    Aggregate payback ranges per subsidy program and in total.

    Raises:
        ValidationError: unknown confidence, reduction type or status value
    """
    ranges = [
        _line_range(line, invoices_by_budget_line_id.get(line.id, ()))
        for line in budget_lines
    ]
    result = PaybackResult(work_item_id=work_item_id)

    for program in linked_subsidy_programs:
        status = _parse_enum(ApplicationStatus, program.application_status, "application_status")
        reduction_type = _parse_enum(ReductionType, program.reduction_type, "reduction_type")
        if status == ApplicationStatus.REJECTED:
            continue

        if reduction_type == ReductionType.FIXED:
            min_payback = max_payback = float(program.reduction_value)
        else:
            categories = program.budget_category_ids
            matching = [
                r for r in ranges
                if not categories or (r.budget_category_id is not None and r.budget_category_id in categories)
            ]
            rate = program.reduction_value / 100
            min_payback = sum(r.min_amount for r in matching) * rate
            max_payback = sum(r.max_amount for r in matching) * rate

        result.subsidies.append(PaybackEntry(
            subsidy_program_id=program.id,
            name=program.name,
            reduction_type=reduction_type,
            reduction_value=program.reduction_value,
            min_payback=min_payback,
            max_payback=max_payback,
        ))
        result.min_total_payback += min_payback
        result.max_total_payback += max_payback

    return result


async def get_work_item_payback(session: AsyncSession, work_item_id: str) -> PaybackResult:
    """
    Load one work item's budget lines, invoices and linked programs and
    compute its payback range.

    Raises:
        NotFoundError: the work item does not exist
    """
    work_item = await session.get(WorkItem, work_item_id)
    if work_item is None:
        raise NotFoundError("Work item", work_item_id)

    programs_result = await session.execute(
        select(SubsidyProgram)
        .join(WorkItemSubsidy, WorkItemSubsidy.subsidy_program_id == SubsidyProgram.id)
        .where(WorkItemSubsidy.work_item_id == work_item_id)
        .order_by(SubsidyProgram.name, SubsidyProgram.id)
    )
    programs = list(programs_result.scalars().all())
    if not programs:
        return PaybackResult(work_item_id=work_item_id)

    lines_result = await session.execute(
        select(WorkItemBudget).where(WorkItemBudget.work_item_id == work_item_id)
    )
    lines = list(lines_result.scalars().all())

    invoices_by_line: dict[str, list[InvoiceInput]] = {}
    if lines:
        invoices_result = await session.execute(
            select(Invoice).where(Invoice.work_item_budget_id.in_([line.id for line in lines]))
        )
        for invoice in invoices_result.scalars().all():
            invoices_by_line.setdefault(invoice.work_item_budget_id, []).append(
                InvoiceInput(amount=invoice.amount, id=invoice.id)
            )

    categories_result = await session.execute(
        select(SubsidyProgramCategory).where(
            SubsidyProgramCategory.subsidy_program_id.in_([p.id for p in programs])
        )
    )
    categories: dict[str, set[str]] = {}
    for row in categories_result.scalars().all():
        categories.setdefault(row.subsidy_program_id, set()).add(row.budget_category_id)

    result = calculate_payback(
        work_item_id,
        [
            BudgetLineInput(
                id=line.id,
                planned_amount=line.planned_amount,
                confidence=line.confidence,
                budget_category_id=line.budget_category_id,
            )
            for line in lines
        ],
        invoices_by_line,
        [
            SubsidyProgramInput(
                id=program.id,
                name=program.name,
                reduction_type=program.reduction_type,
                reduction_value=program.reduction_value,
                application_status=program.application_status,
                budget_category_ids=frozenset(categories.get(program.id, ())),
            )
            for program in programs
        ],
    )
    logger.debug(
        f"Payback for work item {work_item_id}: "
        f"{result.min_total_payback:.2f}..{result.max_total_payback:.2f} "
        f"from {len(result.subsidies)} programs"
    )
    return result
