"""Repository package for the decision ledger's database access layer."""

from explore.db.repositories.decision_repository import DecisionRepository

__all__ = ["DecisionRepository"]
