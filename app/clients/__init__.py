"""Expose constructed client wrappers."""

from .dynamodb import DynamoDBClient
from .hubspot_auth import HubSpotOAuthClient
from .s3_blobs import S3BlobClient
from .sqlite_store import SQLiteStore

__all__ = [
    "DynamoDBClient",
    "HubSpotOAuthClient",
    "S3BlobClient",
    "SQLiteStore",
]
