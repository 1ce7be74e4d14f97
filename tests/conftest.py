import pytest


@pytest.fixture
def anyio_backend():
    # server runs on asyncio only
    return "asyncio"
