"""
Tests for friend requests, profiles, search and leaderboards.
"""
from datetime import timedelta

import pytest

from ecoscore.core.errors import (
    FriendRequestAlreadyHandledError,
    FriendRequestNotFoundError,
    SelfFriendRequestError,
    UserNotFoundError,
)
from ecoscore.models.friend_request import FriendRequestStatus
from ecoscore.models.user import UserAggregate
from ecoscore.services.ledger import week_start
from ecoscore.services.profiles import (
    ensure_user_profile,
    get_friends_progress,
    get_global_leaderboard,
    get_weekly_leaderboard,
    search_users,
    update_privacy,
    update_profile,
)
from ecoscore.services.social import (
    list_pending_requests,
    respond_to_request,
    send_friend_request,
)


def reload(db, user_id) -> UserAggregate:
    db.expire_all()
    return db.get(UserAggregate, user_id)


class TestFriendRequests:
    def test_send_notifies_target(self, db, make_user, mailer):
        make_user("ana", display_name="Ana")
        make_user("ben")
        req = send_friend_request(db, "ana", "ben", mailer=mailer)
        assert req.status == FriendRequestStatus.pending
        assert req.from_name == "Ana"
        assert mailer.recipients() == ["ben@example.com"]
        assert [r.id for r in list_pending_requests(db, "ben")] == [req.id]

    def test_self_request_rejected(self, db, make_user):
        make_user("ana")
        with pytest.raises(SelfFriendRequestError):
            send_friend_request(db, "ana", "ana")

    def test_unknown_target(self, db, make_user):
        make_user("ana")
        with pytest.raises(UserNotFoundError):
            send_friend_request(db, "ana", "ghost")

    def test_accept_links_both_users(self, db, make_user, mailer, today):
        make_user("ana")
        make_user("ben", display_name="Ben")
        req = send_friend_request(db, "ana", "ben")

        respond_to_request(db, req.id, "accepted", mailer=mailer, today=today)

        assert reload(db, "ana").friend_ids == ["ben"]
        assert reload(db, "ben").friend_ids == ["ana"]
        assert mailer.recipients() == ["ana@example.com"]
        assert list_pending_requests(db, "ben") == []

    def test_decline_does_not_link(self, db, make_user, mailer):
        make_user("ana")
        make_user("ben")
        req = send_friend_request(db, "ana", "ben")
        out = respond_to_request(db, req.id, "declined", mailer=mailer)
        assert out.status == FriendRequestStatus.declined
        assert reload(db, "ana").friend_ids == []
        assert mailer.sent == []

    def test_answering_twice_conflicts(self, db, make_user):
        make_user("ana")
        make_user("ben")
        req = send_friend_request(db, "ana", "ben")
        respond_to_request(db, req.id, "declined")
        with pytest.raises(FriendRequestAlreadyHandledError):
            respond_to_request(db, req.id, "accepted")

    def test_unknown_request(self, db):
        with pytest.raises(FriendRequestNotFoundError):
            respond_to_request(db, 31337, "accepted")

    def test_third_friend_awards_social_achievement(self, db, make_user, today):
        make_user("ana", earned_all_except=("social_3",))
        for uid in ("ben", "cy", "dee"):
            make_user(uid, earned_all_except=())
            req = send_friend_request(db, uid, "ana")
            respond_to_request(db, req.id, "accepted", today=today)
        user = reload(db, "ana")
        assert "social_3" in user.earned_achievement_ids
        assert user.total_points == 20


class TestProfiles:
    def test_ensure_is_idempotent(self, db):
        ensure_user_profile(db, "ana", display_name="Ana", email="ana@x.org")
        again = ensure_user_profile(db, "ana", display_name="Other")
        assert again.display_name == "Ana"
        assert again.email == "ana@x.org"

    def test_update_profile(self, db, make_user):
        make_user("ana")
        user = update_profile(db, "ana", display_name="Ana B", email_notifications=False)
        assert user.display_name == "Ana B"
        assert user.email_notifications is False

    def test_update_unknown_user(self, db):
        with pytest.raises(UserNotFoundError):
            update_profile(db, "ghost", display_name="x")

    def test_search_is_prefix_and_public_only(self, db, make_user):
        make_user("a1", display_name="Greta")
        make_user("a2", display_name="Greg")
        make_user("a3", display_name="Gregory", is_private=True)
        make_user("a4", display_name="Ben")
        assert [u.display_name for u in search_users(db, "Gre")] == ["Greg", "Greta"]
        assert search_users(db, "") == []

    def test_search_treats_wildcards_literally(self, db, make_user):
        make_user("a1", display_name="Greta")
        assert search_users(db, "G%") == []

    def test_friends_progress(self, db, make_user):
        ana = make_user("ana")
        make_user("ben", total_points=10)
        make_user("cy", total_points=90)
        ana.friend_ids = ["ben", "cy"]
        db.commit()
        assert [u.id for u in get_friends_progress(db, "ana")] == ["cy", "ben"]


class TestLeaderboards:
    def test_global_orders_by_total_and_hides_private(self, db, make_user):
        make_user("ana", total_points=50)
        make_user("ben", total_points=200)
        make_user("cy", total_points=500, is_private=True)
        assert [u.id for u in get_global_leaderboard(db)] == ["ben", "ana"]

    def test_weekly_ignores_stale_windows(self, db, make_user, today):
        current = week_start(today)
        make_user("ana", weekly_points=40, last_weekly_reset=current)
        make_user("ben", weekly_points=90, last_weekly_reset=current)
        make_user("cy", weekly_points=999, last_weekly_reset=current - timedelta(days=7))
        assert [u.id for u in get_weekly_leaderboard(db, today=today)] == ["ben", "ana"]

    def test_private_user_leaves_leaderboard(self, db, make_user):
        make_user("ana", total_points=50)
        update_privacy(db, "ana", True)
        assert get_global_leaderboard(db) == []
