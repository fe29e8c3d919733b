"""Provider registry.

Each supported framework is one :class:`Provider` record; adding a framework
means adding a record here.
"""

from __future__ import annotations

from testdeck.common.errors import UnknownProviderError
from testdeck.providers.base import Provider, ProviderName, ResultChannel
from testdeck.providers.pytest import PytestArgumentsService, parse_pytest_discovery
from testdeck.providers.unittest import (
    UnittestArgumentsService,
    parse_unittest_discovery,
)

PYTEST_PROVIDER = Provider(
    name=ProviderName.PYTEST,
    channel=ResultChannel.XUNIT,
    arguments=PytestArgumentsService(),
    parse_discovery=parse_pytest_discovery,
)

UNITTEST_PROVIDER = Provider(
    name=ProviderName.UNITTEST,
    channel=ResultChannel.SOCKET,
    arguments=UnittestArgumentsService(),
    parse_discovery=parse_unittest_discovery,
    select_leaves=True,
)

PROVIDERS: dict[ProviderName, Provider] = {
    ProviderName.PYTEST: PYTEST_PROVIDER,
    ProviderName.UNITTEST: UNITTEST_PROVIDER,
}


def get_provider(name: str | ProviderName) -> Provider:
    """Return the provider registered under ``name``.

    Raises
    ------
    UnknownProviderError
        If ``name`` is not a registered provider tag
    """
    try:
        key = ProviderName(name)
    except ValueError as e:
        raise UnknownProviderError(str(name)) from e
    return PROVIDERS[key]


def provider_names() -> list[str]:
    return [name.value for name in PROVIDERS]


__all__ = [
    "PROVIDERS",
    "PYTEST_PROVIDER",
    "UNITTEST_PROVIDER",
    "Provider",
    "ProviderName",
    "ResultChannel",
    "get_provider",
    "provider_names",
]
