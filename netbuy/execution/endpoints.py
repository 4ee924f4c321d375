"""
Endpoint Pool - private relay endpoints plus one public fallback.

The set is fixed when the pool is built. There is no health tracking;
failures are handled per call by the relay submitter.
"""
from typing import List, Optional, Sequence

from ..config import RelayConfig
from ..errors import ConfigurationError
from ..models import EndpointKind, RelayEndpoint
from ..randomness import RandomSource, DEFAULT_RANDOM


class EndpointPool:
    """Static candidate set for transaction submission."""

    def __init__(
        self,
        private_urls: Sequence[str],
        public_url: str,
        rng: Optional[RandomSource] = None,
    ):
        if not public_url:
            raise ConfigurationError("public submission URL is required")
        self._private = tuple(RelayEndpoint(url, EndpointKind.PRIVATE) for url in private_urls)
        self._public = RelayEndpoint(public_url, EndpointKind.PUBLIC)
        self.rng = rng or DEFAULT_RANDOM

    @classmethod
    def from_config(cls, config: RelayConfig, rng: Optional[RandomSource] = None) -> "EndpointPool":
        return cls(config.private_endpoints, config.public_rpc_url, rng=rng)

    @property
    def private_endpoints(self) -> List[RelayEndpoint]:
        return list(self._private)

    @property
    def public_endpoint(self) -> RelayEndpoint:
        return self._public

    @property
    def has_private(self) -> bool:
        return bool(self._private)

    def pick_private(self) -> Optional[RelayEndpoint]:
        """Uniformly random private endpoint, or None when the pool has none."""
        if not self._private:
            return None
        return self.rng.choice(self._private)
