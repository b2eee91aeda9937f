from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from chorepoints.services.report_service import day_window, month_start, week_start

D = datetime(2024, 3, 10, 12, tzinfo=timezone.utc)
WINDOW = {"startDate": "2024-03-01T00:00:00Z", "endDate": "2024-03-31T23:59:59Z"}


@pytest.fixture
def make_action(store, family, template):
    def make(quantity=1, completed=True, date=D, child=None, template_id=None):
        return store().create_assigned_action(
            action_template_id=template_id or template.id, child_id=(child or family.child).id,
            assigned_by=family.head.id, quantity=quantity, description=None, date=date, completed=completed,
        )
    return make


class TestPoints:
    def test_completed_only(self, client, family, make_action):
        make_action(quantity=3, completed=True)
        make_action(quantity=4, completed=False)
        r = client.get("/api/reports/points", params={"childId": family.child.id, **WINDOW}, headers=family.h.head)
        assert r.status_code == 200
        assert r.json() == {"points": 15}

    def test_nothing_completed(self, client, family, make_action):
        make_action(quantity=3, completed=False)
        r = client.get("/api/reports/points", params={"childId": family.child.id, **WINDOW}, headers=family.h.parent)
        assert r.json() == {"points": 0}

    def test_penalties_and_fractions(self, client, family, store, make_action):
        late = store().create_action_template(family_id=family.family_id, name="Late", points=-1.5,
                                              description=None, created_by=family.head.id)
        make_action(quantity=1)
        make_action(quantity=2, template_id=late.id)
        r = client.get("/api/reports/points", params={"childId": family.child.id, **WINDOW}, headers=family.h.head)
        assert r.json()["points"] == pytest.approx(2.0)

    def test_window_bounds(self, client, family, make_action):
        make_action(date=datetime(2024, 2, 29, 23, 59, tzinfo=timezone.utc))
        make_action(date=datetime(2024, 3, 1, tzinfo=timezone.utc))
        r = client.get("/api/reports/points", params={"childId": family.child.id, **WINDOW}, headers=family.h.head)
        assert r.json()["points"] == 5

    def test_sibling_can_view(self, client, family, make_action):
        make_action()
        r = client.get("/api/reports/points", params={"childId": family.child.id, **WINDOW}, headers=family.h.child2)
        assert r.status_code == 200

    def test_other_family_forbidden(self, client, family):
        r = client.get("/api/reports/points", params={"childId": family.child.id, **WINDOW},
                       headers=family.h.other_head)
        assert r.status_code == 403
        assert r.json() == {"message": "You don't have permission to view this child's points"}

    @pytest.mark.parametrize("params", [
        {"startDate": WINDOW["startDate"], "endDate": WINDOW["endDate"]},
        {"childId": "abc", **WINDOW},
        {"childId": "0", **WINDOW},
        {"childId": str(2**64), **WINDOW},
        {"childId": "1", "startDate": "yesterday", "endDate": WINDOW["endDate"]},
    ])
    def test_bad_params(self, client, family, params):
        r = client.get("/api/reports/points", params=params, headers=family.h.head)
        assert r.status_code == 400
        assert isinstance(r.json()["message"], list)


class TestActions:
    def test_total_points_regardless_of_completion(self, client, family, make_action):
        make_action(quantity=3, completed=False)
        r = client.get("/api/reports/actions", params={"childId": family.child.id, **WINDOW}, headers=family.h.head)
        assert r.status_code == 200
        rows = r.json()
        assert len(rows) == 1
        assert rows[0]["totalPoints"] == 15
        assert rows[0]["actionTemplate"]["name"] == "Clean room"

    def test_only_that_child(self, client, family, make_action):
        make_action(child=family.child2)
        r = client.get("/api/reports/actions", params={"childId": family.child.id, **WINDOW}, headers=family.h.head)
        assert r.json() == []

    def test_other_family_forbidden(self, client, family):
        r = client.get("/api/reports/actions", params={"childId": family.child.id, **WINDOW},
                       headers=family.h.other_child)
        assert r.status_code == 403


class TestSummary:
    def test_parent_summary(self, client, family, template, make_action):
        now = datetime.now(timezone.utc)
        make_action(quantity=2, date=now)
        make_action(quantity=1, date=now, child=family.child2)
        make_action(quantity=1, date=now, completed=False)
        client.post("/api/action-suggestions", json={"actionTemplateId": template.id, "date": now.isoformat()},
                    headers=family.h.child)

        r = client.get("/api/summary", headers=family.h.head)
        assert r.status_code == 200
        assert r.json() == {"weeklyPoints": 15, "monthlyPoints": 15, "completedActions": 2, "pendingSuggestions": 1}

    def test_child_summary_is_own_and_hides_pending(self, client, family, template, make_action):
        now = datetime.now(timezone.utc)
        make_action(quantity=2, date=now)
        make_action(quantity=1, date=now, child=family.child2)
        client.post("/api/action-suggestions", json={"actionTemplateId": template.id, "date": now.isoformat()},
                    headers=family.h.child)

        r = client.get("/api/summary", headers=family.h.child)
        assert r.json() == {"weeklyPoints": 10, "monthlyPoints": 10, "completedActions": 1, "pendingSuggestions": 0}

    def test_one_child(self, client, family, make_action):
        now = datetime.now(timezone.utc)
        make_action(quantity=2, date=now)
        make_action(quantity=1, date=now, child=family.child2)
        r = client.get("/api/summary", params={"childId": family.child2.id}, headers=family.h.parent)
        assert r.json()["weeklyPoints"] == 5

    def test_other_family_child(self, client, family):
        r = client.get("/api/summary", params={"childId": family.other_child.id}, headers=family.h.head)
        assert r.status_code == 403


class TestWindows:
    def test_week_starts_sunday(self):
        wed = datetime(2024, 3, 13, 15, 30, tzinfo=timezone.utc)
        assert week_start(wed, timezone.utc) == datetime(2024, 3, 10, tzinfo=timezone.utc)

    def test_sunday_is_its_own_week(self):
        sun = datetime(2024, 3, 10, 8, tzinfo=timezone.utc)
        assert week_start(sun, timezone.utc) == datetime(2024, 3, 10, tzinfo=timezone.utc)

    def test_month_start(self):
        assert month_start(datetime(2024, 3, 31, 23, tzinfo=timezone.utc), timezone.utc) == \
            datetime(2024, 3, 1, tzinfo=timezone.utc)

    def test_day_window_in_local_zone(self):
        ny = ZoneInfo("America/New_York")
        # 02:00 UTC on the 11th is still the 10th in New York
        start, end = day_window(datetime(2024, 3, 11, 2, tzinfo=timezone.utc), ny)
        assert start == datetime(2024, 3, 10, tzinfo=ny)
        assert end.date() == start.date()
        assert (end - start).total_seconds() == pytest.approx(86400, abs=1)


class TestSummaryParams:
    @pytest.mark.parametrize("child_id", ["0", str(2**64), "abc"])
    def test_bad_child_id(self, client, family, child_id):
        r = client.get("/api/summary", params={"childId": child_id}, headers=family.h.head)
        assert r.status_code == 400
