# MIT License © 2025 Motohiro Suzuki
from __future__ import annotations

import os
from typing import Any, Iterable, Optional

from mlscrypto.ciphersuites import Ciphersuite, supported_ciphersuites, to_ciphersuite
from mlscrypto.errors import UnsupportedCiphersuite

ENV_CIPHERSUITES = "MLSCP_CIPHERSUITES"
ENV_DEFAULT_CIPHERSUITE = "MLSCP_DEFAULT_CIPHERSUITE"


def _parse_suite(text: str) -> Ciphersuite:
    s = text.strip()
    try:
        value = int(s, 0)
    except ValueError as e:
        raise UnsupportedCiphersuite(f"not a ciphersuite id: {text!r}") from e
    return to_ciphersuite(value)


class ProviderConfig:
    """
    Provider configuration.

      ciphersuites        : allow-list, defaults to every registry suite
      default_ciphersuite : suite used when the caller does not name one
    """

    def __init__(
        self,
        *,
        ciphersuites: Optional[Iterable[Ciphersuite | int]] = None,
        default_ciphersuite: Ciphersuite | int = Ciphersuite.MLS_128_DHKEMX25519_AES128GCM_SHA256_Ed25519,
        **_ignored: Any,
    ) -> None:
        if ciphersuites is None:
            allowed = supported_ciphersuites()
        else:
            allowed = tuple(dict.fromkeys(to_ciphersuite(s) for s in ciphersuites))
        if not allowed:
            raise UnsupportedCiphersuite("ciphersuite allow-list is empty")
        self.ciphersuites: tuple[Ciphersuite, ...] = allowed

        default = to_ciphersuite(default_ciphersuite)
        if default not in self.ciphersuites:
            raise UnsupportedCiphersuite(f"default ciphersuite {int(default):#06x} is not in the allow-list")
        self.default_ciphersuite = default

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "ProviderConfig":
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}

        raw = env.get(ENV_CIPHERSUITES, "").strip()
        if raw:
            kwargs["ciphersuites"] = [_parse_suite(p) for p in raw.split(",") if p.strip()]

        default = env.get(ENV_DEFAULT_CIPHERSUITE, "").strip()
        if default:
            kwargs["default_ciphersuite"] = _parse_suite(default)
        elif "ciphersuites" in kwargs and kwargs["ciphersuites"]:
            # an allow-list without an explicit default defaults to its first entry
            kwargs["default_ciphersuite"] = kwargs["ciphersuites"][0]

        return cls(**kwargs)

    def __repr__(self) -> str:
        suites = ",".join(f"{int(s):#06x}" for s in self.ciphersuites)
        return f"ProviderConfig(ciphersuites=[{suites}], default={int(self.default_ciphersuite):#06x})"
