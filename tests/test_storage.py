"""Access layer contracts, checked against both storage strategies."""

from datetime import datetime, timedelta, timezone

import pytest

from chorepoints.core.errors import ConflictError, NotFoundError
from chorepoints.models.action import SuggestionStatus
from chorepoints.models.user import UserRole

D = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def _assign(s, family, template, *, date=D, quantity=1, completed=False, child=None):
    return s.create_assigned_action(
        action_template_id=template.id,
        child_id=(child or family.child).id,
        assigned_by=family.head.id,
        quantity=quantity,
        description=None,
        date=date,
        completed=completed,
    )


def _suggest(s, family, template, *, child=None):
    return s.create_action_suggestion(
        action_template_id=template.id,
        child_id=(child or family.child).id,
        quantity=2,
        description="did it twice",
        date=D,
    )


class TestUpdates:
    def test_update_missing_template_raises(self, store, family):
        with pytest.raises(NotFoundError):
            store().update_action_template(9999, {"name": "x"})

    def test_update_missing_action_raises(self, store, family):
        with pytest.raises(NotFoundError):
            store().update_assigned_action(9999, {"completed": True})

    def test_partial_update_keeps_omitted_fields(self, store, family, template):
        store().update_action_template(template.id, {"points": 7})
        t = store().get_action_template(template.id)
        assert t.points == 7
        assert t.name == "Clean room"

    def test_dates_come_back_as_utc(self, store, family, template):
        naive = datetime(2024, 3, 10, 12, 0)
        a = _assign(store(), family, template, date=naive)
        got = store().get_assigned_action(a.id)
        assert got.date == D
        assert got.date.tzinfo is not None


class TestDeletes:
    def test_delete_action_is_idempotent(self, store, family, template):
        a = _assign(store(), family, template)
        store().delete_assigned_action(a.id)
        store().delete_assigned_action(a.id)
        assert store().get_assigned_action(a.id) is None

    def test_delete_template_is_idempotent(self, store, family):
        store().delete_action_template(12345)

    def test_delete_template_cascades(self, store, family, template):
        a = _assign(store(), family, template)
        sug = _suggest(store(), family, template)
        store().delete_action_template(template.id)
        assert store().get_assigned_action(a.id) is None
        assert store().get_action_suggestion(sug.id) is None

    def test_remove_member_drops_own_rows_and_clears_authorship(self, store, family, template):
        s = store()
        parent_template = s.create_action_template(family_id=family.family_id, name="Dishes", points=1,
                                                   description=None, created_by=family.parent.id)
        kid_action = _assign(s, family, template)
        by_parent = s.create_assigned_action(action_template_id=template.id, child_id=family.child2.id,
                                             assigned_by=family.parent.id, quantity=1, description=None,
                                             date=D, completed=False)
        store().remove_family_member(family.child.id)
        store().remove_family_member(family.parent.id)
        store().remove_family_member(family.parent.id)

        s = store()
        assert s.get_user(family.child.id) is None
        assert s.get_assigned_action(kid_action.id) is None
        assert s.get_assigned_action(by_parent.id).assigned_by is None
        assert s.get_action_template(parent_template.id).created_by is None


class TestOrdering:
    def test_actions_newest_date_first(self, store, family, template):
        s = store()
        old = _assign(s, family, template, date=D - timedelta(days=2))
        new = _assign(s, family, template, date=D)
        mid = _assign(s, family, template, date=D - timedelta(days=1))
        ids = [a.id for a in store().get_assigned_actions(family.child.id)]
        assert ids == [new.id, mid.id, old.id]

    def test_family_actions_only_include_own_children(self, store, family, template, other_template):
        s = store()
        mine = _assign(s, family, template)
        s.create_assigned_action(action_template_id=other_template.id, child_id=family.other_child.id,
                                 assigned_by=family.other_head.id, quantity=1, description=None,
                                 date=D, completed=False)
        assert [a.id for a in store().get_assigned_actions_for_family(family.family_id)] == [mine.id]

    def test_family_members_by_id(self, store, family):
        members = store().get_family_members(family.family_id)
        assert [m.username for m in members] == ["mom", "dad", "kid", "kid2"]


class TestSuggestionDecisions:
    def test_approve_spawns_exactly_one_action(self, store, family, template):
        sug = _suggest(store(), family, template)
        approved = store().approve_action_suggestion(sug.id, family.parent.id)

        assert approved.status == SuggestionStatus.APPROVED
        assert approved.decided_by == family.parent.id
        assert approved.decided_at is not None
        actions = store().get_assigned_actions(family.child.id)
        assert len(actions) == 1
        assert actions[0].completed is False
        assert actions[0].quantity == 2
        assert actions[0].assigned_by == family.parent.id
        assert actions[0].description == "did it twice"

    def test_second_approve_conflicts_without_new_row(self, store, family, template):
        sug = _suggest(store(), family, template)
        store().approve_action_suggestion(sug.id, family.parent.id)
        with pytest.raises(ConflictError):
            store().approve_action_suggestion(sug.id, family.head.id)
        assert len(store().get_assigned_actions(family.child.id)) == 1
        assert store().get_action_suggestion(sug.id).decided_by == family.parent.id

    def test_decline_then_approve_conflicts(self, store, family, template):
        sug = _suggest(store(), family, template)
        declined = store().decline_action_suggestion(sug.id, family.head.id)
        assert declined.status == SuggestionStatus.DECLINED
        assert declined.decided_by == family.head.id
        assert store().get_assigned_actions(family.child.id) == []
        with pytest.raises(ConflictError):
            store().approve_action_suggestion(sug.id, family.head.id)
        with pytest.raises(ConflictError):
            store().decline_action_suggestion(sug.id, family.head.id)

    def test_decide_missing_suggestion(self, store, family):
        with pytest.raises(NotFoundError):
            store().approve_action_suggestion(4242, family.head.id)

    def test_status_filter(self, store, family, template):
        first = _suggest(store(), family, template)
        second = _suggest(store(), family, template, child=family.child2)
        store().decline_action_suggestion(first.id, family.head.id)
        pending = store().get_action_suggestions(family.family_id, status="pending")
        assert [p.id for p in pending] == [second.id]
        assert len(store().get_action_suggestions(family.family_id)) == 2


class TestInvitations:
    def test_accept_is_one_way(self, store, family):
        inv = store().create_invitation(family_id=family.family_id, email="a@b.com", role="child",
                                        token="tok-1", created_by=family.head.id)
        assert inv.accepted is False
        assert store().accept_invitation("tok-1").accepted is True
        with pytest.raises(ConflictError):
            store().accept_invitation("tok-1")

    def test_accept_unknown_token(self, store, family):
        with pytest.raises(NotFoundError):
            store().accept_invitation("nope")

    def test_create_user_from_invitation(self, store, family, password_hash):
        store().create_invitation(family_id=family.family_id, email="p@b.com", role="parent",
                                  token="tok-2", created_by=family.head.id)
        user = store().create_user_from_invitation("tok-2", username="aunt", hashed_password=password_hash,
                                                   name="Aunt", email="p@b.com")
        assert user.family_id == family.family_id
        assert user.role == UserRole.PARENT
        inv = store().get_invitation_by_token("tok-2")
        assert inv.accepted is True
        assert inv.used_at is not None

    def test_accepted_invitation_can_still_be_used_once(self, store, family, password_hash):
        store().create_invitation(family_id=family.family_id, email="c@b.com", role="child",
                                  token="tok-3", created_by=family.head.id)
        store().accept_invitation("tok-3")
        user = store().create_user_from_invitation("tok-3", username="cousin", hashed_password=password_hash,
                                                   name="Cousin", email=None)
        assert user.role == UserRole.CHILD
        with pytest.raises(ConflictError):
            store().create_user_from_invitation("tok-3", username="cousin2", hashed_password=password_hash,
                                                name="Cousin Two", email=None)
        assert store().get_user_by_username("cousin2") is None

    def test_username_clash_leaves_invitation_unused(self, store, family, password_hash):
        store().create_invitation(family_id=family.family_id, email="d@b.com", role="child",
                                  token="tok-4", created_by=family.head.id)
        with pytest.raises(ConflictError):
            store().create_user_from_invitation("tok-4", username="kid", hashed_password=password_hash,
                                                name="Copy", email=None)
        assert store().get_invitation_by_token("tok-4").used_at is None

    def test_use_unknown_token(self, store, family, password_hash):
        with pytest.raises(NotFoundError):
            store().create_user_from_invitation("nope", username="x1", hashed_password=password_hash,
                                                name="Nobody", email=None)


class TestHeads:
    def test_second_head_in_family_rejected(self, store, family, password_hash):
        with pytest.raises(ConflictError):
            store().create_user(username="mom2", hashed_password=password_hash, name="Mom Two", email=None,
                                role=UserRole.HEAD, family_id=family.family_id)

    def test_duplicate_username_rejected(self, store, family, password_hash):
        with pytest.raises(ConflictError):
            store().create_user(username="kid", hashed_password=password_hash, name="Copy", email=None,
                                role=UserRole.CHILD, family_id=family.family_id)


class TestPoints:
    def test_only_completed_actions_count(self, store, family, template):
        s = store()
        _assign(s, family, template, quantity=3, completed=True)
        _assign(s, family, template, quantity=4, completed=False)
        points = store().get_child_points_for_period(family.child.id, D - timedelta(days=1), D + timedelta(days=1))
        assert points == 15

    def test_window_is_inclusive(self, store, family, template):
        _assign(store(), family, template, completed=True)
        assert store().get_child_points_for_period(family.child.id, D, D) == 5
        assert store().get_child_points_for_period(family.child.id, D + timedelta(seconds=1), D + timedelta(days=1)) == 0

    def test_penalties_and_fractions_are_not_clamped(self, store, family):
        s = store()
        penalty = s.create_action_template(family_id=family.family_id, name="Mess", points=-2.5,
                                           description=None, created_by=family.head.id)
        _assign(s, family, penalty, quantity=2, completed=True)
        assert store().get_child_points_for_period(family.child.id, D, D) == -5.0

    def test_no_actions_sum_to_zero(self, store, family):
        assert store().get_child_points_for_period(family.child.id, D, D) == 0
