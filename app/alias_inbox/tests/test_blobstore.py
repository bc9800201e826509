#!/usr/bin/env python
#
"""
Test the raw message archive backends.
"""
# 3rd party imports
#
import boto3
import pytest
from django.core.exceptions import ImproperlyConfigured
from moto import mock_aws

# Project imports
#
from ..blobstore import (
    LocalBlobStore,
    S3BlobStore,
    archive_enabled,
    get_blob_store,
)

BUCKET = "alias-inbox-archive"


####################################################################
#
@pytest.fixture
def s3_bucket():
    """
    A moto mocked S3 with our bucket already created.
    """
    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        yield client


####################################################################
#
def test_local_blob_store(tmp_path):
    store = LocalBlobStore(tmp_path)
    store.put("emails/one.eml", b"one")
    store.put("emails/two.eml", b"two")
    assert store.get("emails/one.eml") == b"one"
    assert (tmp_path / "emails" / "two.eml").read_bytes() == b"two"
    assert store.get("emails/missing.eml") is None

    store.delete_many(["emails/one.eml", "emails/missing.eml"])
    assert store.get("emails/one.eml") is None
    assert store.get("emails/two.eml") == b"two"


####################################################################
#
def test_local_blob_store_rejects_escape(tmp_path):
    store = LocalBlobStore(tmp_path / "archive")
    with pytest.raises(ValueError):
        store.put("../outside.eml", b"nope")


####################################################################
#
def test_s3_blob_store(s3_bucket):
    store = S3BlobStore(BUCKET, region="us-east-1")
    store.put("emails/one.eml", b"Subject: one\r\n\r\n")
    assert store.get("emails/one.eml") == b"Subject: one\r\n\r\n"
    head = s3_bucket.head_object(Bucket=BUCKET, Key="emails/one.eml")
    assert head["ContentType"] == "message/rfc822"
    assert store.get("emails/nothing.eml") is None

    store.delete_many(["emails/one.eml", "emails/nothing.eml"])
    assert store.get("emails/one.eml") is None


####################################################################
#
def test_s3_blob_store_batches_deletes(s3_bucket, mocker):
    store = S3BlobStore(BUCKET, region="us-east-1")
    keys = [f"emails/{i}.eml" for i in range(2500)]
    for key in keys[:3]:
        store.put(key, b"x")
    spy = mocker.patch.object(
        store.s3_client, "delete_objects", wraps=store.s3_client.delete_objects
    )

    store.delete_many(keys)

    assert spy.call_count == 3
    sizes = [
        len(call.kwargs["Delete"]["Objects"]) for call in spy.call_args_list
    ]
    assert sizes == [1000, 1000, 500]
    assert s3_bucket.list_objects_v2(Bucket=BUCKET)["KeyCount"] == 0


####################################################################
#
def test_get_blob_store(settings, tmp_path, s3_bucket):
    settings.MAIL_ARCHIVE_BACKEND = ""
    assert get_blob_store() is None
    assert not archive_enabled()

    settings.MAIL_ARCHIVE_BACKEND = "local"
    settings.MAIL_ARCHIVE_DIR = str(tmp_path)
    assert isinstance(get_blob_store(), LocalBlobStore)
    assert archive_enabled()

    settings.MAIL_ARCHIVE_BACKEND = "S3"
    settings.MAIL_ARCHIVE_BUCKET = BUCKET
    assert isinstance(get_blob_store(), S3BlobStore)


####################################################################
#
def test_get_blob_store_misconfigured(settings):
    settings.MAIL_ARCHIVE_BACKEND = "local"
    settings.MAIL_ARCHIVE_DIR = ""
    with pytest.raises(ImproperlyConfigured):
        get_blob_store()

    settings.MAIL_ARCHIVE_BACKEND = "s3"
    settings.MAIL_ARCHIVE_BUCKET = ""
    with pytest.raises(ImproperlyConfigured):
        get_blob_store()

    settings.MAIL_ARCHIVE_BACKEND = "floppy"
    with pytest.raises(ImproperlyConfigured):
        get_blob_store()
