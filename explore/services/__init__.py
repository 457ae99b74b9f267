"""Decision service components split by responsibility.

The listing queries and the like counters sit behind :class:`DecisionService`,
which is what the API layer depends on.
"""

from .like_counter import LikeCounter
from .liker_queries import LikerPage, LikerQueryEngine
from .decision_service import DecisionService, get_decision_service

__all__ = [
    "DecisionService",
    "LikeCounter",
    "LikerPage",
    "LikerQueryEngine",
    "get_decision_service",
]
