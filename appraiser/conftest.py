"""Special pytest fixture configuration file.

This file automatically provides all fixtures defined in it to all
pytest tests in this directory and sub directories.
"""
import pytest
import pytest_asyncio
import fakeredis

from appraiser.users.backends.cloud import CloudBackend
from appraiser.users.backends.local import LocalBackend, LocalStore
from appraiser.users.backends.tests.fakes import FakeClient
from appraiser.users.identity import IdentityService
from appraiser.users.storage import FileStorage, RedisStorage

BOOTSTRAP_EMAIL = 'admin@example.com'


@pytest.fixture
def redis_storage():
    return RedisStorage(fakeredis.FakeStrictRedis())


@pytest.fixture
def file_storage(tmp_path):
    return FileStorage(str(tmp_path / 'storage'))


@pytest.fixture
def local_store(redis_storage):
    return LocalStore(redis_storage)


@pytest.fixture
def local_backend(local_store):
    return LocalBackend(local_store, bootstrap_email=BOOTSTRAP_EMAIL,
                        bootstrap_password='')


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def cloud_backend(fake_client):
    return CloudBackend(fake_client, login_timeout=0.2, restore_timeout=0.1,
                        clear_timeout=0.1, query_timeout=0.2,
                        bootstrap_email=BOOTSTRAP_EMAIL)


@pytest.fixture
def local_identity(local_backend):
    return IdentityService(local_backend, settle_delay=0,
                           bootstrap_email=BOOTSTRAP_EMAIL)


@pytest_asyncio.fixture
async def cloud_identity(cloud_backend):
    """An identity service listening to the fake hosted backend."""
    service = IdentityService(cloud_backend, settle_delay=0,
                              bootstrap_email=BOOTSTRAP_EMAIL)
    await service.start()
    yield service
    service.close()
