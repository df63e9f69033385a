"""
Tests for the achievement rule engine: exactly-once awards, threshold
crossing within one update, bonus folding and the no-op path.
"""
from datetime import timedelta

import pytest

from ecoscore.core.errors import UserNotFoundError
from ecoscore.models.user import UserAggregate
from ecoscore.services.achievements import (
    ACHIEVEMENTS,
    Achievement,
    UserMetrics,
    evaluate_achievements,
    get_achievement,
    get_achievement_status,
    select_new_achievements,
)
from ecoscore.services.entries import upsert_entry
from ecoscore.services.ledger import week_start


def ids(achievements):
    return [a.id for a in achievements]


def reload(db, user_id) -> UserAggregate:
    db.expire_all()
    return db.get(UserAggregate, user_id)


# ---------------------------------------------------------------------------
# Pure selection
# ---------------------------------------------------------------------------

class TestSelectNewAchievements:
    def test_catalog_ids_are_unique(self):
        assert len({a.id for a in ACHIEVEMENTS}) == len(ACHIEVEMENTS)

    def test_nothing_met(self):
        assert select_new_achievements(ACHIEVEMENTS, [], UserMetrics()) == []

    def test_already_earned_are_skipped(self):
        metrics = UserMetrics(entries_logged=1)
        assert select_new_achievements(ACHIEVEMENTS, ["first_entry"], metrics) == []

    def test_several_thresholds_in_one_pass(self):
        metrics = UserMetrics(total_points=600, entries_logged=1)
        awarded = select_new_achievements(ACHIEVEMENTS, [], metrics)
        assert ids(awarded) == ["first_entry", "points_100", "points_500"]

    def test_bonus_can_unlock_further_rules(self):
        catalog = (
            Achievement("starter", "Starter", "", "", 100, lambda m: m.entries_logged >= 1),
            Achievement("hundred", "Hundred", "", "", 5, lambda m: m.total_points >= 100),
        )
        awarded = select_new_achievements(catalog, [], UserMetrics(entries_logged=1))
        assert ids(awarded) == ["starter", "hundred"]

    def test_result_follows_catalog_order(self):
        catalog = (
            Achievement("late", "Late", "", "", 0, lambda m: m.total_points >= 50),
            Achievement("early", "Early", "", "", 50, lambda m: m.entries_logged >= 1),
        )
        awarded = select_new_achievements(catalog, [], UserMetrics(entries_logged=1))
        assert ids(awarded) == ["late", "early"]

    def test_quiz_perfect_uses_correct_answer_run(self):
        awarded = select_new_achievements(ACHIEVEMENTS, [], UserMetrics(quiz_current_streak=5))
        assert "quiz_perfect" in ids(awarded)

    def test_get_achievement(self):
        assert get_achievement("streak_7").points_bonus == 50
        assert get_achievement("nope") is None


# ---------------------------------------------------------------------------
# Evaluation against the store
# ---------------------------------------------------------------------------

class TestEvaluate:
    def test_unknown_user_raises(self, db):
        with pytest.raises(UserNotFoundError):
            evaluate_achievements(db, "ghost")

    def test_second_evaluation_is_a_noop(self, db, make_user, today):
        make_user("ana", total_points=120, weekly_points=120, last_weekly_reset=week_start(today))
        first = evaluate_achievements(db, "ana", today=today)
        assert ids(first) == ["points_100"]
        second = evaluate_achievements(db, "ana", today=today)
        assert second == []
        user = reload(db, "ana")
        assert user.earned_achievement_ids == ["points_100"]
        assert user.total_points == 145

    def test_noop_does_not_commit(self, db, make_user, monkeypatch, today):
        make_user("ana", earned_all_except=())
        commits = []
        real_commit = db.commit
        monkeypatch.setattr(db, "commit", lambda: commits.append(1) or real_commit())
        assert evaluate_achievements(db, "ana", today=today) == []
        assert commits == []

    def test_award_records_ids_badges_and_bonus(self, db, make_user, today):
        make_user("ana", total_points=100, weekly_points=100, last_weekly_reset=week_start(today))
        evaluate_achievements(db, "ana", today=today)
        user = reload(db, "ana")
        assert user.earned_achievement_ids == ["points_100"]
        assert user.badges == ["Century Saver"]
        assert user.total_points == 125
        assert user.weekly_points == 125

    def test_bonus_lands_in_fresh_week_window(self, db, make_user, today):
        make_user(
            "ana",
            total_points=100,
            weekly_points=100,
            last_weekly_reset=week_start(today) - timedelta(days=7),
        )
        evaluate_achievements(db, "ana", today=today)
        user = reload(db, "ana")
        assert user.weekly_points == 25
        assert user.last_weekly_reset == week_start(today)

    def test_custom_catalog(self, db, make_user, today):
        make_user("ana")
        catalog = (Achievement("always", "Always", "", "", 7, lambda m: True),)
        assert ids(evaluate_achievements(db, "ana", catalog=catalog, today=today)) == ["always"]
        assert evaluate_achievements(db, "ana", catalog=catalog, today=today) == []
        assert reload(db, "ana").total_points == 7


class TestEvaluateAfterUpsert:
    def test_two_thresholds_crossed_by_one_entry(self, db, today):
        result = upsert_entry(db, "ana", today, "Solar panels installed", {"energy": 40.0}, 600, "", today=today)
        assert ids(result.new_achievements) == ["first_entry", "points_100", "points_500"]
        user = reload(db, "ana")
        assert user.total_points == 600 + 10 + 25 + 50
        assert evaluate_achievements(db, "ana", today=today) == []

    def test_revision_does_not_reaward(self, db, today):
        upsert_entry(db, "ana", today, "a", {}, 5, "", today=today)
        again = upsert_entry(db, "ana", today, "b", {}, 6, "", today=today)
        assert again.new_achievements == []
        assert reload(db, "ana").earned_achievement_ids == ["first_entry"]

    def test_streak_achievement(self, db, make_user, today):
        make_user("ana", earned_all_except=("streak_3",))
        upsert_entry(db, "ana", today - timedelta(days=2), "", {}, 0, "", today=today)
        upsert_entry(db, "ana", today - timedelta(days=1), "", {}, 0, "", today=today)
        third = upsert_entry(db, "ana", today, "", {}, 0, "", today=today)
        assert ids(third.new_achievements) == ["streak_3"]

    def test_impact_totals_feed_rules(self, db, make_user, today):
        make_user("ana", earned_all_except=("co2_50",))
        upsert_entry(db, "ana", today - timedelta(days=1), "", {"co2": 30.0}, 0, "", today=today)
        second = upsert_entry(db, "ana", today, "", {"co2": 25.0}, 0, "", today=today)
        assert ids(second.new_achievements) == ["co2_50"]


class TestStatus:
    def test_status_flags_and_bonus(self, make_user):
        user = make_user("ana", earned_all_except=tuple(a.id for a in ACHIEVEMENTS if a.id != "first_entry"))
        items, bonus = get_achievement_status(user)
        assert len(items) == len(ACHIEVEMENTS)
        assert [s.achievement.id for s in items if s.earned] == ["first_entry"]
        assert bonus == 10
