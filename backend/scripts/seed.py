#!/usr/bin/env python3
"""
Seed script to generate a renovation plan for demos and performance testing.

Generates a DAG of work items with realistic structure:
- Work items in "phases" (waves), each depending on earlier phases
- Mixed dependency types with occasional lead/lag
- Milestones closing each phase, required by the next one
- Budget lines, invoices and subsidy programs for the payback calculator

Then runs one full reschedule and reports how long it took.

Usage:
    python -m scripts.seed [--nodes 200] [--clear]

Options:
    --nodes N    Number of work items to generate (default: 200)
    --clear      Clear existing data before seeding
    --seed N     Random seed, for reproducible plans
    --start D    First day of the plan, YYYY-MM-DD (default: 2026-03-02)
"""

import argparse
import asyncio
import random
import time
from datetime import date, timedelta

from sqlalchemy import text

from cornerstone.database import async_session_maker, init_db
from cornerstone.enums import ApplicationStatus, ConfidenceLevel, DependencyType, ReductionType
from cornerstone.models import (
    Invoice,
    Milestone,
    MilestoneWorkItem,
    SubsidyProgram,
    SubsidyProgramCategory,
    WorkItem,
    WorkItemBudget,
    WorkItemDependency,
    WorkItemMilestoneDep,
    WorkItemSubsidy,
)
from cornerstone.services.dates import parse_iso_date
from cornerstone.services.reschedule import auto_reschedule

DEFAULT_PLAN_START = "2026-03-02"
CATEGORIES = ["structure", "electrical", "plumbing", "hvac", "finishes"]

# Child tables first
TABLES = [
    "invoices",
    "work_item_budgets",
    "work_item_subsidies",
    "subsidy_program_categories",
    "subsidy_programs",
    "work_item_milestone_deps",
    "milestone_work_items",
    "milestones",
    "work_item_dependencies",
    "work_items",
]


async def clear_data():
    """Clear all existing data."""
    print("Clearing existing data...")
    async with async_session_maker() as session:
        for table in TABLES:
            await session.execute(text(f"DELETE FROM {table}"))
        await session.commit()
    print("Data cleared.")


def generate_plan(num_nodes: int, plan_start: date):
    """
    Generate work items, dependencies and one milestone per phase.

    Strategy:
    - ~25 work items per phase
    - Each item depends on 1-3 items from the previous three phases
    - The phase's milestone is fed by all of its items and required by a
      few items of the next phase
    """
    num_phases = max(4, num_nodes // 25)
    per_phase = num_nodes // num_phases

    work_items: list[WorkItem] = []
    dependencies: dict[tuple[str, str], WorkItemDependency] = {}
    phases: list[list[WorkItem]] = []

    print(f"Generating {num_nodes} work items in {num_phases} phases...")

    for phase in range(num_phases):
        size = per_phase if phase < num_phases - 1 else num_nodes - len(work_items)
        phase_items = []
        for i in range(size):
            item = WorkItem(
                title=f"Phase {phase + 1:02d} / Item {i + 1:03d}",
                description=f"Phase {phase + 1}, work item {i + 1}",
                # 10% not yet estimated
                duration_days=None if random.random() < 0.1 else random.randint(1, 10),
                start_date=plan_start if phase == 0 else None,
            )
            phase_items.append(item)
            work_items.append(item)
        phases.append(phase_items)

        if phase == 0:
            continue
        for item in phase_items:
            for _ in range(random.randint(1, 3)):
                source_phase = random.choice(range(max(0, phase - 3), phase))
                pred = random.choice(phases[source_phase])
                if (pred.id, item.id) in dependencies:
                    continue
                dependencies[(pred.id, item.id)] = WorkItemDependency(
                    predecessor_id=pred.id,
                    successor_id=item.id,
                    dependency_type=random.choices(
                        list(DependencyType), weights=[85, 10, 4, 1],
                    )[0].value,
                    lead_lag_days=random.choice([0, 0, 0, 1, 2, -1]),
                )

    milestones = [
        Milestone(
            title=f"Phase {phase + 1:02d} complete",
            target_date=plan_start + timedelta(days=14 * (phase + 1)),
        )
        for phase in range(num_phases)
    ]

    return work_items, list(dependencies.values()), phases, milestones


def generate_budget(work_items: list[WorkItem]):
    """Budget lines (some invoiced) and a few subsidy programs."""
    lines, invoices = [], []
    for item in work_items:
        for _ in range(random.randint(0, 2)):
            line = WorkItemBudget(
                work_item_id=item.id,
                planned_amount=round(random.uniform(200, 15000), 2),
                confidence=random.choice(list(ConfidenceLevel)).value,
                budget_category_id=random.choice(CATEGORIES + [None]),
            )
            lines.append(line)
            if random.random() < 0.2:
                invoices.append(Invoice(
                    work_item_budget_id=line.id,
                    amount=round(line.planned_amount * random.uniform(0.8, 1.2), 2),
                ))

    programs = [
        SubsidyProgram(name="Energy efficiency grant", reduction_type=ReductionType.PERCENTAGE.value,
                       reduction_value=20, application_status=ApplicationStatus.APPROVED.value),
        SubsidyProgram(name="Heat pump bonus", reduction_type=ReductionType.FIXED.value,
                       reduction_value=3000, application_status=ApplicationStatus.APPLIED.value),
        SubsidyProgram(name="Municipal renovation loan", reduction_type=ReductionType.PERCENTAGE.value,
                       reduction_value=5, application_status=ApplicationStatus.REJECTED.value),
    ]
    restrictions = [
        SubsidyProgramCategory(subsidy_program_id=programs[0].id, budget_category_id="hvac"),
        SubsidyProgramCategory(subsidy_program_id=programs[0].id, budget_category_id="electrical"),
    ]
    links = [
        WorkItemSubsidy(work_item_id=item.id, subsidy_program_id=random.choice(programs).id)
        for item in random.sample(work_items, k=min(20, len(work_items)))
    ]
    return lines, invoices, programs, restrictions, links


async def insert_plan(num_nodes: int, plan_start: date) -> int:
    """Insert everything in one transaction, then reschedule. Returns the update count."""
    work_items, dependencies, phases, milestones = generate_plan(num_nodes, plan_start)
    lines, invoices, programs, restrictions, links = generate_budget(work_items)

    async with async_session_maker() as session:
        print(f"Inserting {len(work_items)} work items and {len(dependencies)} dependencies...")
        session.add_all(work_items)
        await session.flush()
        session.add_all(dependencies)
        session.add_all(milestones)
        await session.flush()

        for phase, milestone in enumerate(milestones):
            session.add_all(
                MilestoneWorkItem(milestone_id=milestone.id, work_item_id=item.id)
                for item in phases[phase]
            )
            if phase + 1 < len(phases):
                for item in random.sample(phases[phase + 1], k=min(3, len(phases[phase + 1]))):
                    session.add(WorkItemMilestoneDep(work_item_id=item.id, milestone_id=milestone.id))

        print(f"Inserting {len(lines)} budget lines, {len(invoices)} invoices, {len(programs)} programs...")
        session.add_all(programs)
        session.add_all(lines)
        await session.flush()
        session.add_all(invoices + restrictions + links)
        await session.flush()

        start_time = time.time()
        updated = await auto_reschedule(session)
        print(f"Reschedule time: {(time.time() - start_time) * 1000:.2f}ms")

        await session.commit()
    return updated


async def get_stats():
    """Print statistics about the generated plan."""
    async with async_session_maker() as session:
        counts = {}
        for table in ("work_items", "work_item_dependencies", "milestones", "work_item_budgets"):
            result = await session.execute(text(f"SELECT COUNT(*) FROM {table}"))
            counts[table] = result.scalar()

        roots = await session.execute(text("""
            SELECT COUNT(*) FROM work_items w
            WHERE NOT EXISTS (SELECT 1 FROM work_item_dependencies d WHERE d.successor_id = w.id)
        """))
        span = await session.execute(text("SELECT MIN(start_date), MAX(end_date) FROM work_items"))
        first_start, last_end = span.one()

    print("\n=== Plan Statistics ===")
    print(f"Work items:   {counts['work_items']}")
    print(f"Dependencies: {counts['work_item_dependencies']}")
    print(f"Milestones:   {counts['milestones']}")
    print(f"Budget lines: {counts['work_item_budgets']}")
    print(f"Root items:   {roots.scalar()} (no predecessors)")
    print(f"Plan span:    {first_start} .. {last_end}")


async def main():
    parser = argparse.ArgumentParser(description="Seed the database with a renovation plan")
    parser.add_argument("--nodes", type=int, default=200, help="Number of work items to create")
    parser.add_argument("--clear", action="store_true", help="Clear existing data first")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--start", default=DEFAULT_PLAN_START, help="First day of the plan (YYYY-MM-DD)")

    args = parser.parse_args()
    plan_start = parse_iso_date(args.start, field="--start")
    if args.seed is not None:
        random.seed(args.seed)

    print("=== Cornerstone Seed Script ===")

    await init_db()

    if args.clear:
        await clear_data()

    updated = await insert_plan(args.nodes, plan_start)
    print(f"Rescheduled {updated} work items")

    await get_stats()

    print("\n=== Seeding Complete ===")


if __name__ == "__main__":
    asyncio.run(main())
