from collections.abc import Callable

import httpx
import pytest

from relaywire.http import RequestDescriptor

API_URL = 'https://api.example.com/repos/octo/widgets'


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture
def make_descriptor() -> Callable[..., RequestDescriptor]:
    def factory(handler, **kwargs) -> RequestDescriptor:
        kwargs.setdefault('url', API_URL)
        return RequestDescriptor(agent=httpx.MockTransport(handler), **kwargs)

    return factory
