import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, ReadTimeoutError
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, NoResultFound, OperationalError

from resourcehub.core.errors import (
    AssetDeleteError,
    AssetUploadError,
    ErrorKind,
    PostNotFoundError,
    PublishError,
    VariantMismatchError,
    WriteReturnedNothingError,
    classify_error,
)
from resourcehub.modules.posts.schemas.post import TextPostCreate


def validation_error():
    try:
        TextPostCreate(type="NOTE", title="hi", content="short")
    except ValidationError as e:
        return e


@pytest.mark.parametrize(
    "error, expected",
    [
        (PublishError(ErrorKind.NOT_FOUND), ErrorKind.NOT_FOUND),
        (validation_error(), ErrorKind.VALIDATION_FAILED),
        (VariantMismatchError("p1", "RESOURCE"), ErrorKind.VALIDATION_FAILED),
        (AssetUploadError("boom"), ErrorKind.ASSET_UPLOAD_FAILED),
        (ClientError({"Error": {"Code": "InternalError"}}, "PutObject"), ErrorKind.ASSET_UPLOAD_FAILED),
        (EndpointConnectionError(endpoint_url="https://r2.example.com"), ErrorKind.ASSET_UPLOAD_FAILED),
        (ReadTimeoutError(endpoint_url="https://r2.example.com"), ErrorKind.ASSET_UPLOAD_FAILED),
        (AssetDeleteError("boom"), ErrorKind.COMPENSATION_FAILED),
        (PostNotFoundError("p1"), ErrorKind.NOT_FOUND),
        (NoResultFound(), ErrorKind.NOT_FOUND),
        (IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed")), ErrorKind.WRITE_FAILED),
        (OperationalError("UPDATE", {}, Exception("canceling statement due to statement timeout")), ErrorKind.WRITE_FAILED),
        (WriteReturnedNothingError(), ErrorKind.WRITE_FAILED),
        (TimeoutError(), ErrorKind.INTERNAL),
        (KeyError("id"), ErrorKind.INTERNAL),
        (RuntimeError("???"), ErrorKind.INTERNAL),
    ],
)
def test_classify_error(error, expected):
    assert classify_error(error) == expected


def test_publish_error_uses_stock_message_and_status():
    error = PublishError(ErrorKind.ASSET_UPLOAD_FAILED)

    assert error.message == "File upload failed. Please try again."
    assert error.status_code == 502


def test_publish_error_custom_message():
    error = PublishError(ErrorKind.VALIDATION_FAILED, "Post p1 is a RESOURCE post")

    assert str(error) == "Post p1 is a RESOURCE post"
    assert error.status_code == 422
