"""Immutable snapshot of provider API keys present in the environment."""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from chat_relay.constants import PROVIDER_CREDENTIAL_ENV


@dataclass(frozen=True)
class CredentialSnapshot:
    """Provider id -> API key, captured once per request.

    Only non-empty values are kept. The snapshot is read-only so it can be
    handed to the registry and adapters without them touching ``os.environ``.
    """

    keys: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> "CredentialSnapshot":
        env = os.environ if environ is None else environ
        keys: dict[str, str] = {}
        for provider, env_names in PROVIDER_CREDENTIAL_ENV.items():
            for env_name in env_names:
                value = (env.get(env_name) or "").strip()
                if value:
                    keys[provider] = value
                    break
        return cls(keys=MappingProxyType(keys))

    def has(self, provider: str) -> bool:
        return provider in self.keys

    def api_key(self, provider: str) -> str | None:
        return self.keys.get(provider)

    def configured_providers(self) -> tuple[str, ...]:
        return tuple(p for p in PROVIDER_CREDENTIAL_ENV if p in self.keys)
