import io
from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

from vehiculos.core.config import Settings
from vehiculos.ingestion.errors import FeedConfigurationError, FeedSourceError
from vehiculos.ingestion.fetcher import LocalFeedSource, S3FeedSource, build_s3_client


class FakePaginator:
    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    def paginate(self, **kwargs):
        self.calls.append(kwargs)
        return iter(self.pages)


class FakeS3Client:
    def __init__(self, pages, bodies=None, list_error=None):
        self.paginator = FakePaginator(pages)
        self.bodies = bodies or {}
        self.list_error = list_error
        self.fetched = []

    def get_paginator(self, name):
        assert name == "list_objects_v2"
        if self.list_error:
            raise self.list_error
        return self.paginator

    def get_object(self, Bucket, Key):
        self.fetched.append((Bucket, Key))
        return {"Body": io.BytesIO(self.bodies.get(Key, b""))}


def _ts(minute: int) -> datetime:
    return datetime(2024, 1, 1, 12, minute, tzinfo=timezone.utc)


def test_fetch_latest_picks_newest_csv_across_pages():
    pages = [
        {"Contents": [{"Key": "price-updates/a.csv", "LastModified": _ts(1)}]},
        {
            "Contents": [
                {"Key": "price-updates/b.csv", "LastModified": _ts(5)},
                {"Key": "price-updates/c.json", "LastModified": _ts(9)},
            ]
        },
    ]
    client = FakeS3Client(pages, bodies={"price-updates/b.csv": b"vehicle_id,new_price\n"})
    source = S3FeedSource(client, "bucket", prefix="price-updates/")

    handle = source.fetch_latest()

    assert handle is not None
    assert handle.source == "remote"
    assert handle.name == "s3://bucket/price-updates/b.csv"
    assert handle.stream.read() == b"vehicle_id,new_price\n"
    assert client.paginator.calls == [{"Bucket": "bucket", "Prefix": "price-updates/"}]


def test_latest_key_tie_breaks_on_greatest_key():
    pages = [
        {
            "Contents": [
                {"Key": "price-updates/b.csv", "LastModified": _ts(3)},
                {"Key": "price-updates/a.csv", "LastModified": _ts(3)},
            ]
        }
    ]
    source = S3FeedSource(FakeS3Client(pages), "bucket")

    assert source.latest_key() == "price-updates/b.csv"


def test_fetch_latest_without_matching_objects_returns_none():
    client = FakeS3Client([{"Contents": [{"Key": "price-updates/readme.txt", "LastModified": _ts(1)}]}, {}])

    assert S3FeedSource(client, "bucket").fetch_latest() is None
    assert client.fetched == []


def test_fetch_latest_without_bucket_is_skipped():
    client = FakeS3Client([])

    assert S3FeedSource(client, None).fetch_latest() is None
    assert client.paginator.calls == []


def test_fetch_latest_wraps_client_errors():
    error = ClientError({"Error": {"Code": "AccessDenied", "Message": "denied"}}, "ListObjectsV2")
    source = S3FeedSource(FakeS3Client([], list_error=error), "bucket")

    with pytest.raises(FeedSourceError, match="s3://bucket/price-updates/"):
        source.fetch_latest()


def test_build_s3_client_requires_credentials():
    with pytest.raises(FeedConfigurationError):
        build_s3_client(Settings(aws_access_key_id=None, aws_secret_access_key=None))


def test_local_fallback_reads_file(tmp_path):
    path = tmp_path / "price-updates.csv"
    path.write_bytes(b"vehicle_id,new_price\nv1,10\n")

    handle = LocalFeedSource(path).fetch_local_fallback()

    assert handle is not None
    assert handle.source == "local"
    assert handle.name == str(path)
    assert handle.stream.read().startswith(b"vehicle_id")
    handle.close()


def test_local_fallback_missing_file(tmp_path):
    assert LocalFeedSource(tmp_path / "missing.csv").fetch_local_fallback() is None
