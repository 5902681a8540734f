import pytest

from hookreview.core.exceptions import ConfigurationError, UnsupportedPlatformError
from hookreview.integrations.github.github import GitHub
from hookreview.integrations.gitlab.gitlab import GitLab
from hookreview.integrations.registry import AdapterRegistry, default_registry
from hookreview.models.platform import Platform


def test_default_registry_covers_every_platform():
    registry = default_registry()

    for platform in Platform:
        assert registry.resolve(platform).platform == platform


def test_resolve_unknown_platform_raises():
    registry = AdapterRegistry([GitHub()])

    with pytest.raises(UnsupportedPlatformError) as exc_info:
        registry.resolve(Platform.GITLAB)

    assert "gitlab" in str(exc_info.value)


def test_resolve_none_raises():
    with pytest.raises(UnsupportedPlatformError):
        AdapterRegistry([GitHub()]).resolve(None)


def test_ensure_complete_lists_missing_platforms():
    registry = AdapterRegistry([GitHub(), GitLab()])

    with pytest.raises(ConfigurationError) as exc_info:
        registry.ensure_complete()

    assert "bitbucket" in str(exc_info.value)
