"""Admin workflow route tests (in-memory services behind the FastAPI app)."""

from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from blogflow.api.deps import get_workflow_service
from blogflow.api.main import app

BASE = "/api/admin/workflow"


@pytest.fixture
def client(workflow):
    app.dependency_overrides[get_workflow_service] = lambda: workflow
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestSingleItemRoutes:
    def test_publish_now(self, client, make_item, activity):
        item = make_item()

        response = client.post(
            f"{BASE}/items/{item.id}/publish", headers={"X-Actor-Id": "editor-1"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["changed"] is True
        assert body["item"]["status"] == "published"
        assert activity.entries_for(item.id)[-1].actor_id == "editor-1"

    def test_publish_twice_is_noop(self, client, make_item):
        item = make_item()
        client.post(f"{BASE}/items/{item.id}/publish")

        response = client.post(f"{BASE}/items/{item.id}/publish")

        assert response.status_code == 200
        assert response.json()["changed"] is False

    def test_unknown_item_is_404(self, client):
        response = client.post(f"{BASE}/items/{uuid4()}/publish")
        assert response.status_code == 404

    def test_validation_failure_is_422_with_fields(self, client, make_item):
        item = make_item(title="", slug="")

        response = client.post(f"{BASE}/items/{item.id}/publish")

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["code"] == "VALIDATION_FAILED"
        assert {e["field"] for e in detail["errors"]} == {"title", "slug"}

    def test_schedule_in_future(self, client, make_item, clock, tasks):
        item = make_item()
        when = clock.now() + timedelta(days=1)

        response = client.post(
            f"{BASE}/items/{item.id}/schedule", json={"publish_at": when.isoformat()}
        )

        assert response.status_code == 200
        assert response.json()["item"]["status"] == "scheduled"
        assert [t.name for t in tasks.pending()] == [f"publish:{item.id}"]

    def test_naive_publish_at_is_read_as_utc(self, client, make_item, clock):
        item = make_item()
        when = clock.now() + timedelta(hours=1)
        naive = when.replace(tzinfo=None).isoformat()

        response = client.post(f"{BASE}/items/{item.id}/schedule", json={"publish_at": naive})

        assert response.status_code == 200
        assert response.json()["item"]["status"] == "scheduled"
        assert datetime.fromisoformat(response.json()["item"]["publish_at"]) == when

    def test_naive_past_publish_at_is_400(self, client, make_item, clock):
        item = make_item()
        naive = (clock.now() - timedelta(hours=1)).replace(tzinfo=None).isoformat()

        response = client.post(f"{BASE}/items/{item.id}/schedule", json={"publish_at": naive})

        assert response.status_code == 400

    def test_naive_reschedule(self, client, make_item, clock):
        item = make_item()
        first = clock.now() + timedelta(days=1)
        client.post(f"{BASE}/items/{item.id}/schedule", json={"publish_at": first.isoformat()})
        naive = (clock.now() + timedelta(days=2)).replace(tzinfo=None).isoformat()

        response = client.post(
            f"{BASE}/items/{item.id}/reschedule", json={"publish_at": naive}
        )

        assert response.status_code == 200

    def test_schedule_in_past_is_400(self, client, make_item, clock):
        item = make_item()
        when = clock.now() - timedelta(minutes=1)

        response = client.post(
            f"{BASE}/items/{item.id}/schedule", json={"publish_at": when.isoformat()}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_SCHEDULE"

    def test_unpublish_draft_is_409(self, client, make_item):
        item = make_item()
        response = client.post(f"{BASE}/items/{item.id}/unpublish")
        assert response.status_code == 409

    def test_reschedule(self, client, make_item, clock):
        item = make_item()
        first = clock.now() + timedelta(days=1)
        second = clock.now() + timedelta(days=2)
        client.post(f"{BASE}/items/{item.id}/schedule", json={"publish_at": first.isoformat()})

        response = client.post(
            f"{BASE}/items/{item.id}/reschedule", json={"publish_at": second.isoformat()}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Post rescheduled"

    def test_archive_then_draft_is_409(self, client, make_item):
        item = make_item()
        assert client.post(f"{BASE}/items/{item.id}/archive").status_code == 200
        assert client.post(f"{BASE}/items/{item.id}/draft").status_code == 409

    def test_history(self, client, make_item):
        item = make_item()
        client.post(f"{BASE}/items/{item.id}/publish")
        client.post(f"{BASE}/items/{item.id}/unpublish")

        response = client.get(f"{BASE}/items/{item.id}/history")

        assert response.status_code == 200
        assert [h["status"] for h in response.json()] == ["published", "draft"]


class TestBulkRoutes:
    def test_bulk_publish_reports_skipped(self, client, make_item):
        good = make_item()
        bad = make_item(content="")

        response = client.post(
            f"{BASE}/bulk/publish", json={"item_ids": [str(good.id), str(bad.id)]}
        )

        assert response.status_code == 200
        body = response.json()
        assert (body["succeeded"], body["skipped"]) == (1, 1)
        assert body["skipped_ids"] == [str(bad.id)]

    def test_bulk_schedule_naive_date(self, client, make_item, clock):
        item = make_item()
        naive = (clock.now() + timedelta(hours=3)).replace(tzinfo=None).isoformat()

        response = client.post(
            f"{BASE}/bulk/schedule", json={"item_ids": [str(item.id)], "publish_at": naive}
        )

        assert response.status_code == 200
        assert response.json()["succeeded"] == 1

    def test_bulk_publish_needs_ids(self, client):
        response = client.post(f"{BASE}/bulk/publish", json={"item_ids": []})
        assert response.status_code == 422

    def test_bulk_schedule(self, client, make_item, clock):
        items = [make_item(), make_item()]
        when = clock.now() + timedelta(hours=3)

        response = client.post(
            f"{BASE}/bulk/schedule",
            json={"item_ids": [str(i.id) for i in items], "publish_at": when.isoformat()},
        )

        assert response.status_code == 200
        assert response.json()["succeeded"] == 2


def test_process_scheduled(client, make_item, clock):
    item = make_item()
    client.post(
        f"{BASE}/items/{item.id}/schedule",
        json={"publish_at": (clock.now() + timedelta(minutes=5)).isoformat()},
    )
    clock.advance(minutes=5)

    response = client.post(f"{BASE}/process-scheduled")

    assert response.status_code == 200
    assert response.json() == {"published": 1}
