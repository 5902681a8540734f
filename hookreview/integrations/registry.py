from functools import lru_cache
from typing import Dict, Iterable, Optional

from hookreview.core.exceptions import ConfigurationError, UnsupportedPlatformError
from hookreview.integrations.bitbucket.bitbucket import Bitbucket
from hookreview.integrations.github.github import GitHub
from hookreview.integrations.gitlab.gitlab import GitLab
from hookreview.integrations.provider_adapter import ProviderAdapter
from hookreview.models.platform import Platform
from hookreview.utils.logger import logger


class AdapterRegistry:
    """Maps each platform to the adapter that talks to it. There is no default."""

    def __init__(self, adapters: Iterable[ProviderAdapter] = ()):
        self._adapters: Dict[Platform, ProviderAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: ProviderAdapter) -> None:
        self._adapters[adapter.platform] = adapter

    def resolve(self, platform: Optional[Platform]) -> ProviderAdapter:
        adapter = self._adapters.get(platform)
        if adapter is None:
            raise UnsupportedPlatformError(
                platform.value if isinstance(platform, Platform) else platform
            )
        return adapter

    def ensure_complete(self) -> None:
        missing = [p.value for p in Platform if p not in self._adapters]
        if missing:
            raise ConfigurationError(f"No adapter registered for: {', '.join(missing)}")


@lru_cache(maxsize=None)
def default_registry() -> AdapterRegistry:
    """The process-wide registry, built once and checked against every platform."""
    registry = AdapterRegistry([GitHub(), GitLab(), Bitbucket()])
    registry.ensure_complete()
    logger.info(
        f"Adapter registry ready for: {', '.join(p.value for p in Platform)}"
    )
    return registry
