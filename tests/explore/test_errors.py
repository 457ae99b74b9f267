"""Tests for :func:`explore.errors.map_exception`."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import NoResultFound
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError

from explore.errors import (
    CanceledError,
    DeadlineExceededError,
    ErrorKind,
    InternalError,
    NotFoundError,
    ValidationError,
    map_exception,
)


def test_service_errors_pass_through() -> None:
    original = ValidationError("bad")

    assert map_exception(original) is original


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (TimeoutError(), DeadlineExceededError),
        (SQLAlchemyTimeoutError("pool exhausted"), DeadlineExceededError),
        (asyncio.CancelledError(), CanceledError),
        (NoResultFound("no row"), NotFoundError),
        (RuntimeError("boom"), InternalError),
    ],
)
def test_infrastructure_errors_are_mapped(exc: BaseException, expected: type) -> None:
    assert isinstance(map_exception(exc), expected)


def test_internal_error_keeps_original_message_as_detail() -> None:
    mapped = map_exception(KeyError("missing"))

    assert mapped.kind is ErrorKind.INTERNAL
    assert mapped.message == "internal error"
    assert "missing" in (mapped.detail or "")


def test_internal_error_without_message_uses_type_name() -> None:
    assert map_exception(RuntimeError()).detail == "RuntimeError"
