"""
API tests for milestones and their linked/required work items.
"""

import pytest


async def create_item(client, title, **fields):
    response = await client.post("/work-items/", json={"title": title, **fields})
    assert response.status_code == 201, response.text
    return response.json()["id"]


async def create_milestone(client, **fields):
    payload = {"title": "Permit approved", "target_date": "2026-03-01"}
    payload.update(fields)
    response = await client.post("/milestones/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


class TestMilestoneCrud:

    @pytest.mark.asyncio
    async def test_create_and_get(self, client):
        milestone = await create_milestone(client, color="#3B82F6")

        assert milestone["is_completed"] is False
        assert milestone["completed_at"] is None
        assert milestone["work_item_ids"] == []

        response = await client.get(f"/milestones/{milestone['id']}")
        assert response.status_code == 200
        assert response.json()["color"] == "#3B82F6"

    @pytest.mark.asyncio
    async def test_invalid_color(self, client):
        response = await client.post(
            "/milestones/",
            json={"title": "Bad", "target_date": "2026-03-01", "color": "blue"},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_ordered_by_target_date(self, client):
        await create_milestone(client, title="Late", target_date="2026-09-01")
        await create_milestone(client, title="Early", target_date="2026-02-01")

        response = await client.get("/milestones/")

        assert [m["title"] for m in response.json()] == ["Early", "Late"]

    @pytest.mark.asyncio
    async def test_completion_stamps_and_clears(self, client):
        milestone = await create_milestone(client)

        done = (await client.patch(f"/milestones/{milestone['id']}", json={"is_completed": True})).json()
        assert done["is_completed"] is True
        assert done["completed_at"] is not None

        reopened = (await client.patch(f"/milestones/{milestone['id']}", json={"is_completed": False})).json()
        assert reopened["completed_at"] is None

    @pytest.mark.asyncio
    async def test_missing_milestone(self, client):
        assert (await client.get("/milestones/999")).status_code == 404
        assert (await client.delete("/milestones/999")).status_code == 404


class TestMilestoneRelations:

    @pytest.mark.asyncio
    async def test_required_milestone_gates_dependent(self, client):
        milestone = await create_milestone(client, target_date="2026-03-01")
        dependent = await create_item(client, "Drywall", start_date="2026-01-15", duration_days=4)

        response = await client.post(
            f"/milestones/{milestone['id']}/dependents",
            json={"work_item_id": dependent},
        )

        assert response.status_code == 201
        assert response.json()["dependent_work_item_ids"] == [dependent]
        drywall = (await client.get(f"/work-items/{dependent}")).json()
        assert drywall["start_date"] == "2026-03-01"
        assert drywall["end_date"] == "2026-03-05"

    @pytest.mark.asyncio
    async def test_moving_target_date_moves_dependents(self, client):
        milestone = await create_milestone(client, target_date="2026-03-01")
        dependent = await create_item(client, "Drywall", duration_days=1)
        await client.post(f"/milestones/{milestone['id']}/dependents", json={"work_item_id": dependent})

        await client.patch(f"/milestones/{milestone['id']}", json={"target_date": "2026-04-15"})

        assert (await client.get(f"/work-items/{dependent}")).json()["start_date"] == "2026-04-15"

    @pytest.mark.asyncio
    async def test_linked_contributor_gates_dependents(self, client):
        milestone = await create_milestone(client, target_date="2026-01-05")
        contributor = await create_item(client, "Wiring", start_date="2026-01-01", duration_days=20)
        dependent = await create_item(client, "Drywall", duration_days=2)
        await client.post(f"/milestones/{milestone['id']}/dependents", json={"work_item_id": dependent})

        response = await client.post(
            f"/milestones/{milestone['id']}/work-items",
            json={"work_item_id": contributor},
        )

        assert response.status_code == 201
        assert response.json()["work_item_ids"] == [contributor]
        assert (await client.get(f"/work-items/{dependent}")).json()["start_date"] == "2026-01-21"

        response = await client.delete(f"/milestones/{milestone['id']}/work-items/{contributor}")
        assert response.status_code == 204
        assert (await client.get(f"/work-items/{dependent}")).json()["start_date"] == "2026-01-05"

    @pytest.mark.asyncio
    async def test_cannot_be_linked_and_required(self, client):
        milestone = await create_milestone(client)
        item = await create_item(client, "Windows", duration_days=1)
        await client.post(f"/milestones/{milestone['id']}/work-items", json={"work_item_id": item})

        response = await client.post(f"/milestones/{milestone['id']}/dependents", json={"work_item_id": item})

        assert response.status_code == 409
        assert response.json()["error"] == "milestone_link_conflict"

    @pytest.mark.asyncio
    async def test_duplicate_link(self, client):
        milestone = await create_milestone(client)
        item = await create_item(client, "Windows", duration_days=1)
        await client.post(f"/milestones/{milestone['id']}/work-items", json={"work_item_id": item})

        response = await client.post(f"/milestones/{milestone['id']}/work-items", json={"work_item_id": item})

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_link_that_closes_a_cycle(self, client):
        milestone = await create_milestone(client)
        dependent = await create_item(client, "Paint", duration_days=1)
        later = await create_item(client, "Trim", duration_days=1)
        await client.post("/dependencies/", json={"predecessor_id": dependent, "successor_id": later})
        await client.post(f"/milestones/{milestone['id']}/dependents", json={"work_item_id": dependent})

        # Trim contributing to a milestone Paint waits for: Trim -> Paint -> Trim
        response = await client.post(f"/milestones/{milestone['id']}/work-items", json={"work_item_id": later})

        assert response.status_code == 409
        assert response.json()["error"] == "cycle_detected"

    @pytest.mark.asyncio
    async def test_remove_dependent(self, client):
        milestone = await create_milestone(client, target_date="2026-03-01")
        dependent = await create_item(client, "Drywall", start_date="2026-01-15", duration_days=1)
        await client.post(f"/milestones/{milestone['id']}/dependents", json={"work_item_id": dependent})

        response = await client.delete(f"/milestones/{milestone['id']}/dependents/{dependent}")

        assert response.status_code == 204
        milestone_after = (await client.get(f"/milestones/{milestone['id']}")).json()
        assert milestone_after["dependent_work_item_ids"] == []

    @pytest.mark.asyncio
    async def test_link_unknown_work_item(self, client):
        milestone = await create_milestone(client)

        response = await client.post(f"/milestones/{milestone['id']}/work-items", json={"work_item_id": "nope"})

        assert response.status_code == 404
