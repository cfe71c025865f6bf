from umamii.models.base import Base
from umamii.models.friendship import Friendship
from umamii.models.recommendation import Recommendation, RecommendationUpvote
from umamii.models.restaurant import Restaurant
from umamii.models.user import User

__all__ = [
    "Base",
    "Friendship",
    "Recommendation",
    "RecommendationUpvote",
    "Restaurant",
    "User",
]
