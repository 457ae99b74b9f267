from __future__ import annotations

import explore.db.repositories as repositories
import explore.schemas as schemas
import explore.services as services
from explore.db.repositories.decision_repository import DecisionRepository
from explore.schemas.decisions import ListLikedYouResponse
from explore.schemas.error import ErrorResponse
from explore.services.decision_service import DecisionService, get_decision_service
from explore.services.like_counter import LikeCounter


def test_packages_re_export_their_components() -> None:
    assert repositories.DecisionRepository is DecisionRepository
    assert schemas.ListLikedYouResponse is ListLikedYouResponse
    assert schemas.ErrorResponse is ErrorResponse
    assert services.DecisionService is DecisionService
    assert services.LikeCounter is LikeCounter
    assert services.get_decision_service is get_decision_service


def test_packages_are_regular_packages() -> None:
    for package in (repositories, schemas, services):
        assert package.__file__ is not None
        assert package.__file__.endswith("__init__.py")
