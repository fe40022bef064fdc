"""S3-compatible object store."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..core.errors import StorageError
from .base import KeyParts, Store, build_key, content_type_for

logger = logging.getLogger(__name__)


class S3Store(Store):
    """
    Works with AWS S3, MinIO, LocalStack and other S3-compatible services.
    Locators are s3://bucket/key URIs.
    """

    name = "s3"

    def __init__(
        self,
        bucket: str,
        *,
        endpoint_url: Optional[str] = None,
        region: str = "us-east-1",
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        client: Any = None,
    ) -> None:
        if not bucket:
            raise ValueError("S3_BUCKET is required for the s3 store")
        self.bucket = bucket

        if client is None:
            client_kwargs: dict[str, Any] = {
                "service_name": "s3",
                "region_name": region,
                "config": Config(signature_version="s3v4"),
            }
            if endpoint_url:
                client_kwargs["endpoint_url"] = endpoint_url
            if access_key and secret_key:
                client_kwargs["aws_access_key_id"] = access_key
                client_kwargs["aws_secret_access_key"] = secret_key
            client = boto3.client(**client_kwargs)
        self.client = client

        logger.info("S3 store initialized: bucket=%s endpoint=%s region=%s", bucket, endpoint_url, region)

    def put(self, data: bytes, key_parts: KeyParts) -> str:
        key = build_key(key_parts)
        extra_args: dict[str, Any] = {
            "Metadata": {
                "applicationid": key_parts.id,
                "documenttype": key_parts.kind,
                "templateversion": key_parts.version,
                "generatedat": datetime.now(timezone.utc).isoformat(),
            }
        }
        content_type = content_type_for(key)
        if content_type:
            extra_args["ContentType"] = content_type

        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra_args)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"S3 upload failed for {key}: {e}") from e

        logger.info("Artifact stored in S3: bucket=%s key=%s size=%d", self.bucket, key, len(data))
        return f"s3://{self.bucket}/{key}"
