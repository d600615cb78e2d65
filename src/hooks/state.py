"""Three-state fetch results owned by a resource hook."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Idle:
    status = "idle"


@dataclass(frozen=True)
class Loading(Generic[T]):
    """A fetch is in flight. ``previous`` keeps the last data on screen."""

    previous: Optional[T] = None
    status = "loading"


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T
    fetched_at: datetime = field(default_factory=_now)
    status = "success"


@dataclass(frozen=True)
class Failure(Generic[T]):
    """The fetch failed. ``fallback`` is the substitute payload, if the resource has one."""

    error: Exception
    fallback: Optional[T] = None
    failed_at: datetime = field(default_factory=_now)
    status = "failure"


FetchResult = Union[Idle, Loading[Any], Success[Any], Failure[Any]]


def data_of(result: FetchResult) -> Any:
    """Whatever the UI should show for ``result``, or None."""
    if isinstance(result, Success):
        return result.data
    if isinstance(result, Failure):
        return result.fallback
    if isinstance(result, Loading):
        return result.previous
    return None
