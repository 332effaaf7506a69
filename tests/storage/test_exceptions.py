import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from storj_storage.exceptions import (
    AuthorizationExpiredError,
    AuthorizationViolationError,
    BackendUnavailableError,
    IntegrityError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    translate_error,
)


def _client_error(code, message=""):
    return ClientError({"Error": {"Code": code, "Message": message}}, "PutObject")


@pytest.mark.parametrize(
    "code, message, expected",
    [
        ("NoSuchKey", "", NotFoundError),
        ("404", "", NotFoundError),
        ("BadDigest", "", IntegrityError),
        ("InvalidDigest", "", IntegrityError),
        ("AccessDenied", "Request has expired", AuthorizationExpiredError),
        ("ExpiredToken", "", AuthorizationExpiredError),
        ("AccessDenied", "", AuthorizationViolationError),
        ("SignatureDoesNotMatch", "", AuthorizationViolationError),
        ("SlowDown", "", BackendUnavailableError),
        ("503", "", BackendUnavailableError),
        ("SomethingElse", "", StorageError),
    ],
)
def test_client_errors_map_to_taxonomy(code, message, expected):
    with pytest.raises(expected) as info:
        translate_error(_client_error(code, message), "op")
    assert isinstance(info.value.__cause__, ClientError)


def test_authorization_errors_are_permission_errors():
    assert issubclass(AuthorizationExpiredError, PermissionDeniedError)
    assert issubclass(AuthorizationViolationError, PermissionDeniedError)


def test_connection_errors_are_backend_unavailable():
    with pytest.raises(BackendUnavailableError):
        translate_error(EndpointConnectionError(endpoint_url="https://gateway.test"), "op")


def test_storage_errors_pass_through():
    original = IntegrityError("mismatch")
    with pytest.raises(IntegrityError) as info:
        translate_error(original, "op")
    assert info.value is original
