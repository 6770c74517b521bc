"""S3 backend tests against a stubbed boto3 client (no network)."""

import boto3
import pytest
from botocore.stub import Stubber

from quotedocs.core.errors import StorageError
from quotedocs.services.object_store import ObjectStoreClient
from quotedocs.services.storage import S3StorageBackend


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(s3_client):
    with Stubber(s3_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def backend(s3_client) -> S3StorageBackend:
    return S3StorageBackend("docs", client=s3_client)


@pytest.mark.asyncio
async def test_save_puts_encrypted_object(backend, stubber):
    stubber.add_response(
        "put_object",
        {},
        {
            "Bucket": "docs",
            "Key": "2025/11/29/u/q/i/a.jpg",
            "Body": b"jpeg",
            "ContentType": "image/jpeg",
            "ServerSideEncryption": "AES256",
        },
    )
    assert await backend.save("2025/11/29/u/q/i/a.jpg", b"jpeg", "image/jpeg") == "2025/11/29/u/q/i/a.jpg"


@pytest.mark.asyncio
async def test_save_failure_raises(backend, stubber):
    stubber.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
    with pytest.raises(StorageError):
        await backend.save("k", b"x", "application/pdf")


@pytest.mark.asyncio
async def test_exists_true(backend, stubber):
    stubber.add_response("head_object", {"ContentLength": 4}, {"Bucket": "docs", "Key": "k"})
    assert await backend.exists("k") is True


@pytest.mark.asyncio
async def test_exists_not_found_is_false(backend, stubber):
    stubber.add_client_error(
        "head_object",
        service_error_code="404",
        http_status_code=404,
        expected_params={"Bucket": "docs", "Key": "k"},
    )
    assert await backend.exists("k") is False


@pytest.mark.asyncio
async def test_exists_other_error_raises_but_client_treats_as_missing(backend, stubber):
    stubber.add_client_error("head_object", service_error_code="403", http_status_code=403)
    with pytest.raises(StorageError):
        await backend.exists("k")

    stubber.add_client_error("head_object", service_error_code="503", http_status_code=503)
    assert await ObjectStoreClient(backend).exists("k") is False


@pytest.mark.asyncio
async def test_list_and_bulk_delete_prefix(backend, stubber):
    stubber.add_response(
        "list_objects_v2",
        {
            "Contents": [{"Key": "p/A/1.jpg"}, {"Key": "p/A/2.jpg"}],
            "IsTruncated": False,
            "KeyCount": 2,
        },
        {"Bucket": "docs", "Prefix": "p/A/"},
    )
    stubber.add_response(
        "delete_objects",
        {"Deleted": [{"Key": "p/A/1.jpg"}, {"Key": "p/A/2.jpg"}]},
        {
            "Bucket": "docs",
            "Delete": {
                "Objects": [{"Key": "p/A/1.jpg"}, {"Key": "p/A/2.jpg"}],
                "Quiet": True,
            },
        },
    )
    result = await ObjectStoreClient(backend).delete_prefix("p/A/")
    assert result.ok
    assert result.deleted == 2


@pytest.mark.asyncio
async def test_delete_objects_partial_errors_reported(backend, stubber):
    stubber.add_response(
        "list_objects_v2",
        {"Contents": [{"Key": "p/A/1.jpg"}, {"Key": "p/A/2.jpg"}], "IsTruncated": False},
    )
    stubber.add_response(
        "delete_objects",
        {"Errors": [{"Key": "p/A/2.jpg", "Code": "AccessDenied", "Message": "denied"}]},
    )
    result = await ObjectStoreClient(backend).delete_prefix("p/A/")
    assert not result.ok
    assert "p/A/2.jpg" in result.error


@pytest.mark.asyncio
async def test_empty_prefix_skips_delete(backend, stubber):
    stubber.add_response("list_objects_v2", {"IsTruncated": False, "KeyCount": 0})
    result = await ObjectStoreClient(backend).delete_prefix("p/none/")
    assert result.ok
    assert result.deleted == 0


@pytest.mark.asyncio
async def test_load_missing_raises_file_not_found(backend, stubber):
    stubber.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
    with pytest.raises(FileNotFoundError):
        await backend.load("missing")


@pytest.mark.asyncio
async def test_presign_is_offline(backend):
    url = await backend.presign("u/q/quote_q_en.pdf", 3600)
    assert url.startswith("https://")
    assert "docs" in url
    assert "quote_q_en.pdf" in url
