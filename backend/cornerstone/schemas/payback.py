from pydantic import BaseModel

from cornerstone.enums import ReductionType


class PaybackEntryRead(BaseModel):
    subsidy_program_id: str
    name: str
    reduction_type: ReductionType
    reduction_value: float
    min_payback: float
    max_payback: float

    model_config = {"from_attributes": True}


class SubsidyPaybackRead(BaseModel):
    """Schema for the expected payback range of one work item."""
    work_item_id: str
    subsidies: list[PaybackEntryRead]
    min_total_payback: float
    max_total_payback: float

    model_config = {"from_attributes": True}
