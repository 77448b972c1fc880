# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from mlscrypto.errors import (
    AuthenticationFailed,
    ContextExhausted,
    CryptoError,
    DecapsulationFailed,
    EntropyUnavailable,
    InvalidKeyMaterial,
    InvalidLength,
    KeyNotFound,
    UnsupportedCiphersuite,
    WrongContextRole,
)


class FailureCode(str, Enum):
    ERR_UNSUPPORTED_CIPHERSUITE = "ERR_UNSUPPORTED_CIPHERSUITE"
    ERR_INVALID_KEY_MATERIAL = "ERR_INVALID_KEY_MATERIAL"
    ERR_AUTH_FAILED = "ERR_AUTH_FAILED"
    ERR_DECAPSULATION_FAILED = "ERR_DECAPSULATION_FAILED"
    ERR_KEY_NOT_FOUND = "ERR_KEY_NOT_FOUND"
    ERR_CONTEXT_EXHAUSTED = "ERR_CONTEXT_EXHAUSTED"
    ERR_WRONG_CONTEXT_ROLE = "ERR_WRONG_CONTEXT_ROLE"
    ERR_INVALID_LENGTH = "ERR_INVALID_LENGTH"
    ERR_ENTROPY_UNAVAILABLE = "ERR_ENTROPY_UNAVAILABLE"
    ERR_INTERNAL = "ERR_INTERNAL"


_CODE_BY_ERROR = {
    UnsupportedCiphersuite: FailureCode.ERR_UNSUPPORTED_CIPHERSUITE,
    InvalidKeyMaterial: FailureCode.ERR_INVALID_KEY_MATERIAL,
    AuthenticationFailed: FailureCode.ERR_AUTH_FAILED,
    DecapsulationFailed: FailureCode.ERR_DECAPSULATION_FAILED,
    KeyNotFound: FailureCode.ERR_KEY_NOT_FOUND,
    ContextExhausted: FailureCode.ERR_CONTEXT_EXHAUSTED,
    WrongContextRole: FailureCode.ERR_WRONG_CONTEXT_ROLE,
    InvalidLength: FailureCode.ERR_INVALID_LENGTH,
    EntropyUnavailable: FailureCode.ERR_ENTROPY_UNAVAILABLE,
}
_ERROR_BY_CODE = {code: cls for cls, code in _CODE_BY_ERROR.items()}


@dataclass(frozen=True)
class Failure:
    """
    Typed failure carrier for callers that prefer results over exceptions.
    detail is LOCAL-ONLY (never put it on the wire).
    """
    operation: str
    code: FailureCode
    fatal: bool
    detail: Optional[str] = None

    def redacted(self) -> "Failure":
        return Failure(
            operation=self.operation,
            code=self.code,
            fatal=self.fatal,
            detail=None,
        )

    @staticmethod
    def from_exception(operation: str, exc: CryptoError) -> "Failure":
        code = FailureCode.ERR_INTERNAL
        for cls in type(exc).__mro__:
            if cls in _CODE_BY_ERROR:
                code = _CODE_BY_ERROR[cls]
                break
        return Failure(operation=operation, code=code, fatal=bool(exc.fatal), detail=str(exc) or None)

    def to_exception(self) -> CryptoError:
        cls = _ERROR_BY_CODE.get(self.code, CryptoError)
        return cls(f"{self.operation}: {self.detail or self.code.value}")
