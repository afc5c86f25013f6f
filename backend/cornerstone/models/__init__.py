from cornerstone.models.work_item import WorkItem
from cornerstone.models.dependency import WorkItemDependency
from cornerstone.models.milestone import Milestone, MilestoneWorkItem, WorkItemMilestoneDep
from cornerstone.models.budget import WorkItemBudget, Invoice
from cornerstone.models.subsidy import SubsidyProgram, SubsidyProgramCategory, WorkItemSubsidy

__all__ = [
    "WorkItem",
    "WorkItemDependency",
    "Milestone",
    "MilestoneWorkItem",
    "WorkItemMilestoneDep",
    "WorkItemBudget",
    "Invoice",
    "SubsidyProgram",
    "SubsidyProgramCategory",
    "WorkItemSubsidy",
]
