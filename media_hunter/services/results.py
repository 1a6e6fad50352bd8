"""Success/failure values for remote-dependent operations.

Fallback chains (remote backend, then static snapshot, then an empty default)
are expressed as an ordered list of strategies, each returning a
:data:`Result`. :func:`first_success` walks the list until one succeeds and
keeps the failures so callers can log or surface them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Iterable, List, Optional, Tuple, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    TRANSPORT = "transport"
    STATUS = "status"
    PAYLOAD = "payload"
    LOGICAL = "logical"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    source: str = ""

    ok = True


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    reason: str
    source: str = ""
    status_code: Optional[int] = None

    ok = False

    def describe(self) -> str:
        label = f"{self.source}: " if self.source else ""
        if self.status_code is not None:
            return f"{label}{self.kind.value} failure (HTTP {self.status_code}): {self.reason}"
        return f"{label}{self.kind.value} failure: {self.reason}"


Result = Union[Success[T], Failure]


def first_success(
    strategies: Iterable[Callable[[], "Result[T]"]],
) -> Tuple[Optional[Success[T]], List[Failure]]:
    """Evaluate *strategies* in order and return the first success.

    Strategies after the first success are never invoked.
    """

    failures: List[Failure] = []
    for strategy in strategies:
        outcome = strategy()
        if isinstance(outcome, Success):
            return outcome, failures
        failures.append(outcome)
    return None, failures


__all__ = ["Failure", "FailureKind", "Result", "Success", "first_success"]
