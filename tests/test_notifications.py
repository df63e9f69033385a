"""
Tests for friend notification fan-out after achievement awards.
"""
import pytest
from sqlalchemy.exc import OperationalError

from ecoscore.models.daily_entry import DailyEntry
from ecoscore.models.user import UserAggregate
from ecoscore.services import achievements as achievements_module
from ecoscore.services import notifications as notifications_module
from ecoscore.services.achievements import Achievement, evaluate_achievements
from ecoscore.services.entries import upsert_entry
from ecoscore.services.notifications import notify_achievement_friends, send_best_effort

TWO_RULES = (
    Achievement("one", "One", "", "", 1, lambda m: True),
    Achievement("two", "Two", "", "", 2, lambda m: True),
)


def befriend(db, user, *friend_ids):
    user.friend_ids = list(friend_ids)
    db.commit()


class TestFanOut:
    def test_one_message_per_friend_and_achievement(self, db, make_user, mailer, today):
        ana = make_user("ana", display_name="Ana")
        make_user("ben")
        make_user("cy")
        befriend(db, ana, "ben", "cy")

        awarded = evaluate_achievements(db, "ana", catalog=TWO_RULES, mailer=mailer, today=today)

        assert len(awarded) == 2
        assert sorted(mailer.recipients()) == [
            "ben@example.com", "ben@example.com", "cy@example.com", "cy@example.com",
        ]
        subjects = {s for _, s, _ in mailer.sent}
        assert subjects == {"Ana unlocked One!", "Ana unlocked Two!"}

    def test_opted_out_and_emailless_friends_are_skipped(self, db, make_user, mailer, today):
        ana = make_user("ana")
        make_user("ben", email_notifications=False)
        make_user("cy", email="")
        make_user("dee")
        befriend(db, ana, "ben", "cy", "dee")

        evaluate_achievements(db, "ana", catalog=TWO_RULES[:1], mailer=mailer, today=today)
        assert mailer.recipients() == ["dee@example.com"]

    def test_failed_send_does_not_undo_award(self, db, make_user, make_mailer, today):
        ana = make_user("ana")
        make_user("ben")
        make_user("cy")
        befriend(db, ana, "ben", "cy")
        flaky = make_mailer(fail_for=("ben@example.com",))

        awarded = evaluate_achievements(db, "ana", catalog=TWO_RULES, mailer=flaky, today=today)

        assert [a.id for a in awarded] == ["one", "two"]
        assert flaky.recipients().count("cy@example.com") == 2
        db.expire_all()
        user = db.get(UserAggregate, "ana")
        assert user.earned_achievement_ids == ["one", "two"]
        assert user.total_points == 3

    def test_no_mailer_sends_nothing(self, db, make_user, today):
        ana = make_user("ana")
        make_user("ben")
        befriend(db, ana, "ben")
        awarded = evaluate_achievements(db, "ana", catalog=TWO_RULES, mailer=None, today=today)
        assert len(awarded) == 2


class TestNotifyResult:
    def test_counts_failures(self, db, make_user, make_mailer):
        ana = make_user("ana")
        make_user("ben")
        make_user("cy")
        befriend(db, ana, "ben", "cy")
        flaky = make_mailer(fail_for=("cy@example.com",))

        result = notify_achievement_friends(db, ana, TWO_RULES, flaky, max_workers=2)

        assert result.attempted == 4
        assert result.sent == 2
        assert result.failed == 2
        assert sorted(result.failures) == [("cy@example.com", "one"), ("cy@example.com", "two")]

    def test_no_friends(self, db, make_user, mailer):
        ana = make_user("ana")
        result = notify_achievement_friends(db, ana, TWO_RULES, mailer)
        assert result.attempted == 0
        assert mailer.sent == []


class TestSendBestEffort:
    def test_exception_becomes_false(self, make_mailer):
        mailer = make_mailer(fail_for=("x@example.com",))
        assert send_best_effort(mailer, "x@example.com", "s", "b") is False

    def test_rejected_send_is_false(self):
        class Rejecting:
            def send(self, recipient, subject, body):
                return False

        assert send_best_effort(Rejecting(), "x@example.com", "s", "b") is False

    def test_success(self, mailer):
        assert send_best_effort(mailer, "x@example.com", "s", "b") is True
        assert mailer.sent == [("x@example.com", "s", "b")]


class TestStoreIsolation:
    @pytest.fixture()
    def broken_recipient_lookup(self, monkeypatch):
        def fail(db, user):
            raise OperationalError("SELECT", {}, Exception("connection reset"))

        monkeypatch.setattr(notifications_module, "_recipients", fail)

    def test_recipient_lookup_failure_does_not_fail_upsert(self, db, mailer, today, broken_recipient_lookup):
        result = upsert_entry(db, "ana", today, "Walked", {}, 40, "", mailer=mailer, today=today)

        assert result.created is True
        assert result.new_achievements == []
        db.expire_all()
        assert db.query(DailyEntry).filter(DailyEntry.user_id == "ana").count() == 1
        user = db.get(UserAggregate, "ana")
        assert user.total_points == 40
        assert user.earned_achievement_ids == []
        assert mailer.sent == []

    def test_deferred_award_is_picked_up_later(self, db, mailer, today, monkeypatch, broken_recipient_lookup):
        upsert_entry(db, "ana", today, "Walked", {}, 40, "", mailer=mailer, today=today)
        monkeypatch.undo()

        awarded = evaluate_achievements(db, "ana", mailer=mailer, today=today)
        assert [a.id for a in awarded] == ["first_entry"]

    def test_fan_out_failure_after_commit_is_logged(self, db, make_user, mailer, monkeypatch, today):
        ana = make_user("ana")
        make_user("ben")
        befriend(db, ana, "ben")

        def explode(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("connection reset"))

        monkeypatch.setattr(achievements_module, "fan_out", explode)

        awarded = evaluate_achievements(db, "ana", catalog=TWO_RULES, mailer=mailer, today=today)

        assert [a.id for a in awarded] == ["one", "two"]
        db.expire_all()
        assert db.get(UserAggregate, "ana").earned_achievement_ids == ["one", "two"]

    def test_recipients_are_resolved_before_commit(self, db, make_user, mailer, monkeypatch, today):
        ana = make_user("ana", display_name="Ana")
        make_user("ben")
        befriend(db, ana, "ben")
        seen = []

        def record(user_id, user_name, emails, achievements, mailer, max_workers=None):
            seen.append((user_id, user_name, list(emails), [a.id for a in achievements]))

        monkeypatch.setattr(achievements_module, "fan_out", record)
        evaluate_achievements(db, "ana", catalog=TWO_RULES[:1], mailer=mailer, today=today)

        assert seen == [("ana", "Ana", ["ben@example.com"], ["one"])]
