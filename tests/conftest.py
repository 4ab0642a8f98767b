from __future__ import annotations

import io
import threading
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import httpx
import piexif
import pytest
from PIL import Image
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from exif_harvest.services.config import Settings
from exif_harvest.services.store import MetadataStore


CATALOG_URL = "https://bucket.test/waldo"


class FakeRedis:
	"""In-memory stand-in for the handful of hash commands the store issues."""

	def __init__(self) -> None:
		self.hashes: Dict[str, Dict[str, str]] = {}
		self.close_calls = 0
		self.fail_writes = False
		self.unreachable = False
		self._lock = threading.Lock()

	def _check(self) -> None:
		if self.unreachable:
			raise RedisConnectionError("Connection refused")

	def exists(self, key: str) -> int:
		self._check()
		with self._lock:
			return int(key in self.hashes)

	def hset(self, key: str, mapping: Dict[str, str]) -> int:
		self._check()
		if self.fail_writes:
			raise ResponseError("WRONGTYPE Operation against a key holding the wrong kind of value")
		if not mapping:
			raise ResponseError("wrong number of arguments for 'hset' command")
		with self._lock:
			record = self.hashes.setdefault(key, {})
			added = len(set(mapping) - set(record))
			record.update({k: str(v) for k, v in mapping.items()})
			return added

	def hget(self, key: str, field: str) -> Optional[str]:
		self._check()
		with self._lock:
			return self.hashes.get(key, {}).get(field)

	def hgetall(self, key: str) -> Dict[str, str]:
		self._check()
		with self._lock:
			return dict(self.hashes.get(key, {}))

	def close(self) -> None:
		self.close_calls += 1


def jpeg_bytes(iso: int = 400, with_exif: bool = True) -> bytes:
	buf = io.BytesIO()
	img = Image.new("RGB", (16, 16), (200, 40, 40))
	if with_exif:
		exif = piexif.dump({
			"Exif": {
				piexif.ExifIFD.ISOSpeedRatings: iso,
				piexif.ExifIFD.FNumber: (28, 10),
				piexif.ExifIFD.DateTimeOriginal: b"2017:06:01 10:00:00",
			},
		})
		img.save(buf, format="JPEG", exif=exif)
	else:
		img.save(buf, format="JPEG")
	return buf.getvalue()


def app1_span(body: bytes) -> Tuple[int, int]:
	"""Start of the TIFF header inside the Exif APP1 segment, and the segment end."""
	marker = body.index(b"Exif\x00\x00")
	length = int.from_bytes(body[marker - 2:marker], "big")
	return marker + 6, marker - 2 + length


def corrupt_byte(body: bytes, offset: int, value: int) -> bytes:
	return body[:offset] + bytes([value]) + body[offset + 1:]


def png_bytes() -> bytes:
	buf = io.BytesIO()
	Image.new("RGB", (16, 16), (0, 0, 255)).save(buf, format="PNG")
	return buf.getvalue()


def bucket_listing(entries: Iterable[Tuple[str, int, str]]) -> str:
	contents = "".join(
		f"<Contents><Key>{name}</Key><LastModified>2017-06-01T10:00:00.000Z</LastModified>"
		f"<ETag>&quot;{etag}&quot;</ETag><Size>{size}</Size><StorageClass>STANDARD</StorageClass></Contents>"
		for name, size, etag in entries
	)
	return (
		'<?xml version="1.0" encoding="UTF-8"?>'
		'<ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">'
		f"<Name>waldo</Name><Prefix></Prefix><MaxKeys>1000</MaxKeys><IsTruncated>false</IsTruncated>{contents}"
		"</ListBucketResult>"
	)


class FakeBucket:
	"""Serves a bucket listing plus objects through ``httpx.MockTransport``."""

	def __init__(self) -> None:
		self.objects: Dict[str, Tuple[int, str, bytes]] = {}
		self.extra_entries: list = []
		self.blob_requests: list = []
		self.fail_names: set = set()
		self.manifest_status = 200
		self._lock = threading.Lock()

	def add(self, name: str, body: bytes, etag: str, status: int = 200, content_type: str = "image/jpeg", size: Optional[int] = None) -> None:
		self.objects[name] = (status, content_type, body)
		self.extra_entries.append((name, len(body) if size is None else size, etag))

	def listing(self) -> str:
		return bucket_listing(self.extra_entries)

	def handler(self, request: httpx.Request) -> httpx.Response:
		url = str(request.url)
		if url == CATALOG_URL:
			return httpx.Response(self.manifest_status, text=self.listing(), headers={"content-type": "application/xml"})
		name = url[len(CATALOG_URL) + 1:]
		with self._lock:
			self.blob_requests.append(name)
		if name in self.fail_names:
			raise httpx.ConnectError("connection reset", request=request)
		if name not in self.objects:
			return httpx.Response(404, text="<Error><Code>NoSuchKey</Code></Error>", headers={"content-type": "application/xml"})
		status, content_type, body = self.objects[name]
		return httpx.Response(status, content=body, headers={"content-type": content_type})

	def client(self) -> httpx.Client:
		return httpx.Client(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def fake_redis() -> FakeRedis:
	return FakeRedis()


@pytest.fixture
def store(fake_redis: FakeRedis) -> MetadataStore:
	return MetadataStore(fake_redis)


@pytest.fixture
def bucket() -> FakeBucket:
	return FakeBucket()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
	return Settings(
		catalog_url=CATALOG_URL,
		image_store=tmp_path / "images",
		status_dir=tmp_path / "jobs",
		workers=4,
	)
