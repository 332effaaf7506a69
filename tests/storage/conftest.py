import pytest

from fake_s3 import FakeS3Client, make_config
from storj_storage.providers.storj import StorjService


@pytest.fixture
def fake_client():
    return FakeS3Client(bucket="test-bucket")


@pytest.fixture
def service(fake_client):
    return StorjService(fake_client, make_config(), name="storj")


@pytest.fixture
def public_service(fake_client):
    return StorjService(fake_client, make_config(public=True), name="storj_public")
