import pytest


@pytest.fixture
def anyio_backend():
    # the cache hands out asyncio futures
    return "asyncio"
