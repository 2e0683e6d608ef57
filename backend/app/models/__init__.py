from app.models.social import (
    PostComment,
    PostReaction,
    SocialConnection,
    TravelGroup,
    TravelGroupMember,
    TravelPost,
    UserProfile,
)
from app.models.collaboration import (
    GroupTrip,
    GroupTripParticipant,
    TripDiscussion,
    TripDiscussionReply,
    TripPoll,
    TripPollVote,
    TripSharedExpense,
)
from app.models.notification import Notification

__all__ = [
    "GroupTrip",
    "GroupTripParticipant",
    "Notification",
    "PostComment",
    "PostReaction",
    "SocialConnection",
    "TravelGroup",
    "TravelGroupMember",
    "TravelPost",
    "TripDiscussion",
    "TripDiscussionReply",
    "TripPoll",
    "TripPollVote",
    "TripSharedExpense",
    "UserProfile",
]
