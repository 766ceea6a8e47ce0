import pytest
from recordstore.config import EncryptionConfig
from recordstore.storage import InMemoryStore

SECRET = "000102030405060708090a0b0c0d0e0f101112131415161718191a1b1c1d1e1f"
IV = "a0a1a2a3a4a5a6a7a8a9aaabacadaeaf"


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def encryption():
    return EncryptionConfig(secret=SECRET, iv=IV)
