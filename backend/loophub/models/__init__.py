"""ORM Models: SQLAlchemy declarative models for all forum entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Profile ids come from the auth provider; every other id is generated locally

Design Decisions:
    - One file per entity, or per small aggregate (poll + options + ballots)
    - All models imported here so Base.metadata is complete before create_all
      and alembic autogenerate run
"""

from loophub.models.profile import Profile  # noqa: F401
from loophub.models.forum import Forum  # noqa: F401
from loophub.models.thread import Thread  # noqa: F401
from loophub.models.comment import Comment  # noqa: F401
from loophub.models.vote import Vote  # noqa: F401
from loophub.models.reaction import Reaction  # noqa: F401
from loophub.models.bookmark import Bookmark  # noqa: F401
from loophub.models.thread_subscription import ThreadSubscription  # noqa: F401
from loophub.models.user_follow import UserFollow  # noqa: F401
from loophub.models.notification import Notification, NotificationSettings  # noqa: F401
from loophub.models.poll import Poll, PollOption, PollVote  # noqa: F401
from loophub.models.superlike import Superlike  # noqa: F401
from loophub.models.karma_history import KarmaHistory  # noqa: F401
from loophub.models.user_milestone import UserMilestone  # noqa: F401
from loophub.models.report import Report  # noqa: F401
from loophub.models.badge import Badge, UserBadge  # noqa: F401
from loophub.models.community import (  # noqa: F401
    Community, CommunityMember, CommunityJoinRequest, CommunityRule, CommunityInvite,
)
from loophub.models.forum_moderator import ForumModerator, ModerationLog  # noqa: F401
