import boto3
import pytest
from botocore.stub import Stubber

from autocrm.services.storage_service import LocalObjectStorage, S3ObjectStorage, StorageError


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="test",
        aws_secret_access_key="test",
    )


def test_s3_put_get_remove(s3_client):
    storage = S3ObjectStorage("attachments", client=s3_client)

    with Stubber(s3_client) as stub:
        stub.add_response(
            "put_object",
            {},
            {"Bucket": "attachments", "Key": "u/1-a.txt", "Body": b"hi", "ContentType": "text/plain"},
        )
        stub.add_client_error("get_object", service_error_code="NoSuchKey", http_status_code=404)
        stub.add_response(
            "delete_objects",
            {},
            {
                "Bucket": "attachments",
                "Delete": {"Objects": [{"Key": "u/1-a.txt"}], "Quiet": True},
            },
        )

        storage.put("u/1-a.txt", b"hi", "text/plain")
        with pytest.raises(FileNotFoundError):
            storage.get("u/missing.txt")
        storage.remove(["u/1-a.txt"])
        stub.assert_no_pending_responses()


def test_s3_upload_error_wrapped(s3_client):
    storage = S3ObjectStorage("attachments", client=s3_client)

    with Stubber(s3_client) as stub:
        stub.add_client_error("put_object", service_error_code="AccessDenied", http_status_code=403)
        with pytest.raises(StorageError):
            storage.put("u/1-a.txt", b"hi", "text/plain")


def test_s3_signed_url(s3_client):
    storage = S3ObjectStorage("attachments", client=s3_client)

    url = storage.signed_url("u/1-a.txt", 300)

    assert "u/1-a.txt" in url
    assert "attachments" in url


def test_local_roundtrip_and_missing(storage):
    storage.put("u/1-a.txt", b"hi", "text/plain")
    assert storage.get("u/1-a.txt") == b"hi"

    with pytest.raises(StorageError):
        storage.put("u/1-a.txt", b"again", "text/plain")

    storage.remove(["u/1-a.txt", "u/never-existed.txt"])
    with pytest.raises(FileNotFoundError):
        storage.get("u/1-a.txt")
    assert storage.signed_url("u/1-a.txt", 300) is None


def test_local_storage_is_an_object_storage(tmp_path):
    assert LocalObjectStorage(str(tmp_path)).bucket == "attachments"
