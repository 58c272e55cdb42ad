"""Off-Chain Adapter Registry — maps URI schemes to off-chain storage adapter factories.

Invariants:
    - Configured once (setup) and read thereafter; reset() exists for test isolation
    - get_adapter() returns a fresh adapter built from the registration's options
    - Unknown or missing schemes are a hard error (UnsupportedSchemeError)

Design Decisions:
    - Registry instance passed by reference to every consumer (dependency injection)
      instead of a hidden module-level singleton
    - Factories over instances: an adapter may hold per-use state (clients, sessions)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from wtlibs.core.boundary_protocols import OffChainDataAdapter
from wtlibs.core.errors import ErrorContext, UnsupportedSchemeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdapterRegistration:
    """How to build the adapter serving one scheme."""
    create: Callable[[dict], OffChainDataAdapter]
    options: dict[str, Any] = field(default_factory=dict)


class AdapterRegistry:
    """Scheme -> adapter factory lookup shared by storage pointers and the library facade."""

    def __init__(
        self, registrations: Mapping[str, AdapterRegistration] | None = None,
    ):
        self._registrations: dict[str, AdapterRegistration] = {}
        if registrations:
            self.setup(registrations)

    def setup(self, registrations: Mapping[str, AdapterRegistration]) -> None:
        """Replace the whole configuration."""
        self._registrations = dict(registrations)
        logger.debug(
            f"Off-chain adapters configured: {sorted(self._registrations)}",
        )

    def reset(self) -> None:
        """Drop every registration."""
        self._registrations = {}

    @property
    def schemes(self) -> list[str]:
        return sorted(self._registrations)

    def get_adapter(self, scheme: str | None) -> OffChainDataAdapter:
        if not scheme or scheme not in self._registrations:
            raise UnsupportedSchemeError(scheme, ErrorContext(scheme=scheme))
        registration = self._registrations[scheme]
        return registration.create(registration.options)
