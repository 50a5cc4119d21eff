"""S3-compatible backend (AWS, Wasabi, MinIO, DigitalOcean Spaces).

Every object is written with ``ServerSideEncryption=AES256`` beneath the
application-level encryption. Provider failures are classified into the
:class:`~doc_vault.storage.base.FailureKind` buckets.
"""

from __future__ import annotations

import logging
from typing import Any

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from botocore.exceptions import ConnectionError as BotoConnectionError
from botocore.exceptions import HTTPClientError

from ..base import (
    AccessDeniedError,
    ObjectInfo,
    ObjectMetadata,
    ObjectNotFoundError,
    PutResult,
    StorageError,
    TransientStorageError,
    UnknownStorageError,
    validate_key,
)

try:
    import aioboto3
except ImportError:  # pragma: no cover - optional import
    aioboto3 = None  # type: ignore

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404", "NoSuchBucket"})
ACCESS_DENIED_CODES = frozenset(
    {
        "AccessDenied",
        "403",
        "Forbidden",
        "InvalidAccessKeyId",
        "SignatureDoesNotMatch",
        "AllAccessDisabled",
        "AccountProblem",
    }
)
TRANSIENT_CODES = frozenset(
    {
        "InternalError",
        "ServiceUnavailable",
        "SlowDown",
        "RequestTimeout",
        "RequestTimeTooSkewed",
        "Throttling",
        "ThrottlingException",
        "500",
        "502",
        "503",
        "504",
    }
)


def classify_error(exc: Exception, path: str | None = None) -> StorageError:
    """Map a botocore exception onto the storage failure taxonomy."""
    if isinstance(exc, ClientError):
        error = exc.response.get("Error", {}) or {}
        code = str(error.get("Code") or "")
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        message = error.get("Message") or str(exc)
        if code in NOT_FOUND_CODES or status == 404:
            return ObjectNotFoundError(message, path=path, provider_code=code or "404")
        if code in ACCESS_DENIED_CODES or status == 403:
            return AccessDeniedError(message, path=path, provider_code=code or "403")
        if code in TRANSIENT_CODES or (isinstance(status, int) and status >= 500):
            return TransientStorageError(message, path=path, provider_code=code or str(status))
        return UnknownStorageError(message, path=path, provider_code=code or None)
    if isinstance(exc, (BotoConnectionError, HTTPClientError)):
        return TransientStorageError(str(exc), path=path, provider_code=type(exc).__name__)
    if isinstance(exc, BotoCoreError):
        return UnknownStorageError(str(exc), path=path, provider_code=type(exc).__name__)
    return UnknownStorageError(str(exc), path=path)


class S3Backend:
    """Object store backed by an S3-compatible bucket.

    Args:
        bucket: Bucket name.
        region: Provider region.
        endpoint: Custom endpoint URL for non-AWS providers (Wasabi, MinIO).
        access_key: Access key id, or ``None`` to use the default chain.
        secret_key: Secret access key.
        path_style: Use path-style addressing (required by most S3 clones).
        storage_class: ``StorageClass`` applied on put.
    """

    def __init__(
        self,
        bucket: str,
        region: str = "us-east-1",
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        *,
        path_style: bool = True,
        storage_class: str = "STANDARD",
    ):
        if aioboto3 is None:
            raise ImportError("aioboto3 is required for S3Backend. Install it with: pip install aioboto3")
        self.bucket = bucket
        self.region = region
        self.endpoint = endpoint
        self.access_key = access_key
        self.secret_key = secret_key
        self.storage_class = storage_class
        self._config = Config(s3={"addressing_style": "path" if path_style else "auto"})
        self._session = aioboto3.Session()

    def _client(self):
        kwargs: dict[str, Any] = {"region_name": self.region, "config": self._config}
        if self.endpoint:
            kwargs["endpoint_url"] = self.endpoint
        if self.access_key and self.secret_key:
            kwargs["aws_access_key_id"] = self.access_key
            kwargs["aws_secret_access_key"] = self.secret_key
        return self._session.client("s3", **kwargs)

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> PutResult:
        validate_key(path)
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": path,
            "Body": data,
            "ContentType": content_type,
            "ServerSideEncryption": "AES256",
            "StorageClass": self.storage_class,
        }
        if metadata:
            params["Metadata"] = {k: str(v) for k, v in metadata.items()}
        try:
            async with self._client() as s3:
                result = await s3.put_object(**params)
        except (ClientError, BotoCoreError) as exc:
            raise classify_error(exc, path) from exc
        etag = (result.get("ETag") or "").strip('"') or None
        logger.info(
            "object stored",
            extra={"event": "storage.put", "path": path, "size": len(data)},
        )
        return PutResult(etag=etag, version_id=result.get("VersionId"))

    async def get(self, path: str) -> bytes:
        try:
            async with self._client() as s3:
                result = await s3.get_object(Bucket=self.bucket, Key=path)
                async with result["Body"] as stream:
                    return await stream.read()
        except (ClientError, BotoCoreError) as exc:
            raise classify_error(exc, path) from exc

    async def head(self, path: str) -> ObjectMetadata:
        try:
            async with self._client() as s3:
                result = await s3.head_object(Bucket=self.bucket, Key=path)
        except (ClientError, BotoCoreError) as exc:
            raise classify_error(exc, path) from exc
        return ObjectMetadata(
            path=path,
            size=int(result.get("ContentLength", 0)),
            content_type=result.get("ContentType"),
            metadata=dict(result.get("Metadata") or {}),
            last_modified=result.get("LastModified"),
            etag=(result.get("ETag") or "").strip('"') or None,
        )

    async def delete(self, path: str) -> bool:
        try:
            async with self._client() as s3:
                await s3.delete_object(Bucket=self.bucket, Key=path)
        except (ClientError, BotoCoreError) as exc:
            raise classify_error(exc, path) from exc
        return True

    async def exists(self, path: str) -> bool:
        try:
            async with self._client() as s3:
                await s3.head_object(Bucket=self.bucket, Key=path)
        except (ClientError, BotoCoreError) as exc:
            err = classify_error(exc, path)
            if isinstance(err, ObjectNotFoundError):
                return False
            raise err from exc
        return True

    async def list(self, prefix: str = "", max_keys: int = 1000) -> list[ObjectInfo]:
        try:
            async with self._client() as s3:
                result = await s3.list_objects_v2(
                    Bucket=self.bucket, Prefix=prefix, MaxKeys=max_keys
                )
        except (ClientError, BotoCoreError) as exc:
            raise classify_error(exc, prefix or None) from exc
        return [
            ObjectInfo(
                path=obj["Key"],
                size=int(obj.get("Size", 0)),
                last_modified=obj.get("LastModified"),
                etag=(obj.get("ETag") or "").strip('"') or None,
            )
            for obj in result.get("Contents", [])
        ]

    async def presigned_url(self, path: str, expires_in: int = 300) -> str:
        try:
            async with self._client() as s3:
                return await s3.generate_presigned_url(
                    "get_object",
                    Params={"Bucket": self.bucket, "Key": path},
                    ExpiresIn=int(expires_in),
                )
        except (ClientError, BotoCoreError) as exc:
            raise classify_error(exc, path) from exc
