#!/usr/bin/env python
#
"""
Where we archive the raw bytes of accepted inbound messages.

Archival is optional. When `MAIL_ARCHIVE_BACKEND` is not set there is no
blob store and email records are saved without a `raw_key`. The two
backends are a directory on the local filesystem and an S3 compatible
bucket.
"""
# system imports
#
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

# 3rd party imports
#
import boto3
from botocore.exceptions import ClientError
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

# Project imports
#
from .utils import chunked

logger = logging.getLogger("alias_inbox.blobstore")


########################################################################
########################################################################
#
class BlobStore(ABC):
    """
    The narrow contract the rest of the app uses: put, get, and bulk
    delete by key.
    """

    # The most keys a single bulk delete call will be asked to remove. S3's
    # DeleteObjects refuses more than this.
    #
    MAX_DELETE_BATCH = 1000

    ####################################################################
    #
    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        raise NotImplementedError

    ####################################################################
    #
    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """
        The bytes stored under `key`, or None if there is no such blob.
        """
        raise NotImplementedError

    ####################################################################
    #
    @abstractmethod
    def delete_many(self, keys: List[str]) -> None:
        """
        Delete every blob in `keys`. Keys that do not exist are ignored.
        """
        raise NotImplementedError


########################################################################
########################################################################
#
class LocalBlobStore(BlobStore):
    """
    Blobs as files under a root directory. Keys may contain `/` and map
    on to sub-directories.
    """

    ####################################################################
    #
    def __init__(self, root: Path | str):
        self.root = Path(root)

    ####################################################################
    #
    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ValueError(f"blob key '{key}' escapes the archive root")
        return path

    ####################################################################
    #
    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    ####################################################################
    #
    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    ####################################################################
    #
    def delete_many(self, keys: List[str]) -> None:
        for key in keys:
            self._path(key).unlink(missing_ok=True)


########################################################################
########################################################################
#
class S3BlobStore(BlobStore):
    """
    Blobs as objects in an S3 (or S3 compatible, like MinIO or R2) bucket.
    """

    ####################################################################
    #
    def __init__(
        self,
        bucket_name: str,
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: str = "us-east-1",
    ):
        self.bucket_name = bucket_name
        self.s3_client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )
        logger.info(
            "S3 blob store: bucket=%s, endpoint=%s, region=%s",
            bucket_name,
            endpoint_url or "AWS S3",
            region,
        )

    ####################################################################
    #
    def put(self, key: str, data: bytes) -> None:
        self.s3_client.put_object(
            Bucket=self.bucket_name,
            Key=key,
            Body=data,
            ContentType="message/rfc822",
        )

    ####################################################################
    #
    def get(self, key: str) -> Optional[bytes]:
        try:
            resp = self.s3_client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("NoSuchKey", "404"):
                return None
            raise
        return resp["Body"].read()

    ####################################################################
    #
    def delete_many(self, keys: List[str]) -> None:
        for batch in chunked(keys, self.MAX_DELETE_BATCH):
            resp = self.s3_client.delete_objects(
                Bucket=self.bucket_name,
                Delete={
                    "Objects": [{"Key": k} for k in batch],
                    "Quiet": True,
                },
            )
            for err in resp.get("Errors", []):
                logger.warning(
                    "Unable to delete blob '%s': %s %s",
                    err.get("Key"),
                    err.get("Code"),
                    err.get("Message"),
                )


####################################################################
#
def get_blob_store() -> Optional[BlobStore]:
    """
    The blob store configured by the `MAIL_ARCHIVE_*` settings, or None if
    archival is turned off.
    """
    backend = (settings.MAIL_ARCHIVE_BACKEND or "").strip().lower()
    match backend:
        case "":
            return None
        case "local":
            if not settings.MAIL_ARCHIVE_DIR:
                raise ImproperlyConfigured(
                    "MAIL_ARCHIVE_DIR must be set for the local archive"
                )
            return LocalBlobStore(settings.MAIL_ARCHIVE_DIR)
        case "s3":
            if not settings.MAIL_ARCHIVE_BUCKET:
                raise ImproperlyConfigured(
                    "MAIL_ARCHIVE_BUCKET must be set for the s3 archive"
                )
            return S3BlobStore(
                bucket_name=settings.MAIL_ARCHIVE_BUCKET,
                endpoint_url=settings.MAIL_ARCHIVE_ENDPOINT_URL or None,
                access_key=settings.MAIL_ARCHIVE_ACCESS_KEY or None,
                secret_key=settings.MAIL_ARCHIVE_SECRET_KEY or None,
                region=settings.MAIL_ARCHIVE_REGION or "us-east-1",
            )
        case _:
            raise ImproperlyConfigured(
                f"Unknown MAIL_ARCHIVE_BACKEND '{backend}'"
            )


####################################################################
#
def archive_enabled() -> bool:
    return bool((settings.MAIL_ARCHIVE_BACKEND or "").strip())
