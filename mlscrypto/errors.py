# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations


class CryptoError(Exception):
    """Root of every failure raised by the provider."""

    fatal = False


class UnsupportedCiphersuite(CryptoError):
    pass


class InvalidKeyMaterial(CryptoError):
    """Wrong length or encoding, detected before any cryptographic work."""
    pass


class AuthenticationFailed(CryptoError):
    pass


class DecapsulationFailed(CryptoError):
    pass


class KeyNotFound(CryptoError):
    pass


class ContextExhausted(CryptoError):
    pass


class WrongContextRole(CryptoError):
    """Sealing on a receiver HPKE context, or opening on a sender one."""
    pass


class InvalidLength(CryptoError):
    pass


class EntropyUnavailable(CryptoError):
    # continuing without secure randomness is unsafe
    fatal = True
