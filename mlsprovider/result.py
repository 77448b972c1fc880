# MIT License © 2025 Motohiro Suzuki
"""
mlsprovider/result.py

Outcome of one provider call, for engines that branch on results instead
of catching exceptions. A Result holds either the call's value or a
Failure; unwrap() turns the Failure back into the matching CryptoError,
so both styles can meet at the same boundary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from mlscrypto.errors import CryptoError
from mlsprovider.failure import Failure

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    failure: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def from_call(cls, operation: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> "Result[T]":
        """Run fn and fold a CryptoError into a Failure. Other exceptions propagate."""
        try:
            return cls(value=fn(*args, **kwargs))
        except CryptoError as e:
            failure = Failure.from_exception(operation, e)
            if failure.fatal:
                logger.error("%s failed fatally: %s", operation, failure.code.value)
            return cls(failure=failure)

    def unwrap(self) -> T:
        if self.failure is not None:
            raise self.failure.to_exception()
        return self.value  # type: ignore[return-value]

    def unwrap_err(self) -> Failure:
        if self.failure is None:
            raise RuntimeError("unwrap_err() on a successful result")
        return self.failure
