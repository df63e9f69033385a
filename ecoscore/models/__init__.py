from .user import UserAggregate
from .daily_entry import DailyEntry
from .challenge import Challenge
from .friend_request import FriendRequest
from .quiz import QuizQuestion

__all__ = [
    "UserAggregate",
    "DailyEntry",
    "Challenge",
    "FriendRequest",
    "QuizQuestion",
]
