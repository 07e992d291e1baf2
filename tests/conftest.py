import asyncio

import pytest
from mongomock_motor import AsyncMongoMockClient

from friendchat.services import Services
from friendchat.store import EntityStore


@pytest.fixture
def run():
    return asyncio.run


@pytest.fixture
def services():
    client = AsyncMongoMockClient()
    return Services.build(EntityStore(client["friendchat_test"]))
