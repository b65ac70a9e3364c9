from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from vehiculos.core.config import Settings
from vehiculos.ingestion.errors import FeedConfigurationError, FeedSourceError

logger = logging.getLogger(__name__)


@dataclass
class FeedHandle:
    source: str
    name: str
    stream: BinaryIO

    def close(self) -> None:
        try:
            self.stream.close()
        except (OSError, BotoCoreError) as exc:
            logger.debug("Ignoring error while closing %s: %s", self.name, exc)


def build_s3_client(settings: Settings) -> Any:
    if not settings.aws_access_key_id or not settings.aws_secret_access_key:
        raise FeedConfigurationError(
            "AWS credentials (VEHICULOS_AWS_ACCESS_KEY_ID, VEHICULOS_AWS_SECRET_ACCESS_KEY) are not configured."
        )
    session = boto3.session.Session(
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=settings.aws_region,
    )
    return session.client("s3")


class S3FeedSource:
    """Newest feed object under a bucket prefix."""

    source = "remote"

    def __init__(self, client: Any, bucket: str | None, prefix: str = "price-updates/", extension: str = ".csv") -> None:
        self.client = client
        self.bucket = bucket
        self.prefix = prefix
        self.extension = extension

    @classmethod
    def from_settings(cls, settings: Settings) -> S3FeedSource:
        return cls(
            client=build_s3_client(settings),
            bucket=settings.aws_s3_bucket,
            prefix=settings.price_feed_prefix,
            extension=settings.price_feed_extension,
        )

    def latest_key(self) -> str | None:
        """Key with the newest LastModified; equal timestamps resolve to the greatest key."""
        paginator = self.client.get_paginator("list_objects_v2")
        best: tuple[Any, str] | None = None
        for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
            for item in page.get("Contents", []):
                key = item.get("Key") or ""
                if not key.endswith(self.extension):
                    continue
                rank = (item["LastModified"], key)
                if best is None or rank > best:
                    best = rank
        return best[1] if best else None

    def fetch_latest(self) -> FeedHandle | None:
        if not self.bucket:
            logger.warning("S3 bucket not configured, skipping remote price feed")
            return None
        location = f"s3://{self.bucket}/{self.prefix}"
        try:
            key = self.latest_key()
            if key is None:
                logger.info("No %s feed files found under %s", self.extension, location)
                return None
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise FeedSourceError(f"Failed to read price feed from {location}: {exc}") from exc
        logger.info("Selected remote price feed s3://%s/%s", self.bucket, key)
        return FeedHandle(source=self.source, name=f"s3://{self.bucket}/{key}", stream=response["Body"])


class LocalFeedSource:
    source = "local"

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def fetch_local_fallback(self) -> FeedHandle | None:
        if not self.path.is_file():
            logger.info("No local price feed at %s", self.path)
            return None
        try:
            stream = self.path.open("rb")
        except OSError as exc:
            raise FeedSourceError(f"Failed to open local price feed {self.path}: {exc}") from exc
        return FeedHandle(source=self.source, name=str(self.path), stream=stream)
