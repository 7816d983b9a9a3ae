"""
JSON blob storage on S3 for persisted token records.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import ClientError

from app.core.config import StorageSettings


class S3BlobClient:
    """Read and write small JSON documents under a key prefix."""

    def __init__(self, settings: StorageSettings) -> None:
        if not settings.bucket_name:
            raise ValueError("TOKEN_BUCKET_NAME is required for the s3 backend.")
        self._bucket = settings.bucket_name
        self._prefix = settings.bucket_prefix
        self._s3 = boto3.client("s3", region_name=settings.region_name)

    def _key(self, name: str) -> str:
        return f"{self._prefix}{name}.json"

    def put_json(self, name: str, document: Dict[str, Any]) -> None:
        self._s3.put_object(
            Bucket=self._bucket,
            Key=self._key(name),
            Body=json.dumps(document).encode("utf-8"),
            ContentType="application/json",
            ServerSideEncryption="AES256",
        )

    def get_json(self, name: str) -> Optional[Dict[str, Any]]:
        """Return the document, or None when the key does not exist."""
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=self._key(name))
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                return None
            raise
        return json.loads(response["Body"].read())


__all__ = ["S3BlobClient"]
