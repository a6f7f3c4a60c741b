"""
S3 file storage backend
Implements StorageBackend interface for AWS S3 (or compatible services)
"""

import boto3
from botocore.exceptions import ClientError
from typing import Optional
from urllib.parse import quote
import logging

from kbportal.config import settings
from kbportal.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class S3Storage(StorageBackend):
    """S3 file storage with account-scoped keys"""

    def __init__(
        self,
        bucket_name: str = None,
        aws_access_key_id: str = None,
        aws_secret_access_key: str = None,
        region_name: str = None,
        endpoint_url: str = None,
        public_base_url: str = None,
        s3_client=None
    ):
        """
        Initialize S3 storage backend

        Args:
            bucket_name: S3 bucket name
            aws_access_key_id: AWS access key (optional, uses env/IAM if not provided)
            aws_secret_access_key: AWS secret key (optional)
            region_name: AWS region (optional)
            endpoint_url: Custom S3 endpoint (for MinIO, DigitalOcean Spaces, etc.)
            public_base_url: CDN or custom domain serving the bucket (optional)
            s3_client: Pre-built boto3 client (optional)
        """
        self.bucket_name = bucket_name or settings.S3_BUCKET_NAME
        self.region_name = region_name or settings.S3_REGION
        self.endpoint_url = (endpoint_url or "").rstrip("/")
        self.public_base_url = (public_base_url or "").rstrip("/")

        if s3_client is None:
            s3_config = {}
            if aws_access_key_id:
                s3_config['aws_access_key_id'] = aws_access_key_id
            if aws_secret_access_key:
                s3_config['aws_secret_access_key'] = aws_secret_access_key
            if region_name:
                s3_config['region_name'] = region_name
            if endpoint_url:
                s3_config['endpoint_url'] = endpoint_url
            s3_client = boto3.client('s3', **s3_config)

        self.s3_client = s3_client

    def _check_owner(self, storage_path: str, account_id: str):
        if not storage_path.startswith(self.account_prefix(account_id)):
            raise PermissionError(f"Access denied: file does not belong to account {account_id}")

    def save(
        self,
        content: bytes,
        account_id: str,
        document_id: str,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        """Save file to S3 with account-scoped key"""
        s3_key = self.document_key(account_id, document_id, filename)

        extra_args = {
            'Metadata': {
                'account_id': str(account_id),
                'document_id': str(document_id)
            }
        }
        if content_type:
            extra_args['ContentType'] = content_type

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=content,
                **extra_args
            )
            logger.info(f"Uploaded file to S3: {s3_key}")
            return s3_key
        except ClientError as e:
            logger.error(f"Failed to upload to S3: {e}")
            raise

    def get_url(self, storage_path: str, account_id: str) -> str:
        """
        Non-expiring object URL

        Pre-signed URLs would expire while the indexed document still
        references them, so the plain object URL is returned instead.
        """
        self._check_owner(storage_path, account_id)
        key = quote(storage_path)

        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region_name}.amazonaws.com/{key}"

    def delete(self, storage_path: str, account_id: str):
        """Delete file from S3 with account verification"""
        self._check_owner(storage_path, account_id)

        try:
            self.s3_client.delete_object(
                Bucket=self.bucket_name,
                Key=storage_path
            )
            logger.info(f"Deleted file from S3: {storage_path}")
        except ClientError as e:
            logger.error(f"Failed to delete from S3: {e}")
            raise
