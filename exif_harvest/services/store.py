from __future__ import annotations

import logging
from typing import Dict, Optional, Sequence

import redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from exif_harvest.services.errors import StoreUnavailable, StoreWriteFailure
from exif_harvest.services.metadata import group_pairs


logger = logging.getLogger(__name__)

_UNREACHABLE = (RedisConnectionError, RedisTimeoutError)


class MetadataStore:
	"""
	EXIF records in Redis, one hash per image under ``{prefix}{content_hash}``.

	The client is injected so callers own the connection scope; ``close`` is
	safe to call more than once.
	"""

	def __init__(self, client: redis.Redis, key_prefix: str = "i:") -> None:
		self.client = client
		self.key_prefix = key_prefix
		self._closed = False

	@classmethod
	def from_url(cls, url: str, key_prefix: str = "i:") -> "MetadataStore":
		return cls(redis.Redis.from_url(url, decode_responses=True), key_prefix=key_prefix)

	def key(self, content_hash: str) -> str:
		return f"{self.key_prefix}{content_hash}"

	@property
	def closed(self) -> bool:
		return self._closed

	def exists(self, content_hash: str) -> bool:
		try:
			return self.client.exists(self.key(content_hash)) == 1
		except RedisError as e:
			logger.error("Redis err: %s", e)
			raise StoreUnavailable(f"exists check failed for {self.key(content_hash)}: {e}") from e

	def write(self, content_hash: str, flat_fields: Sequence[str]) -> None:
		# single HSET keeps the record atomic; re-writing the same hash is a no-op in effect
		key = self.key(content_hash)
		try:
			self.client.hset(key, mapping=group_pairs(flat_fields))
		except _UNREACHABLE as e:
			logger.error("Redis err: %s", e)
			raise StoreUnavailable(f"write failed for {key}: {e}") from e
		except RedisError as e:
			raise StoreWriteFailure(f"write failed for {key}: {e}") from e

	def get_all(self, content_hash: str) -> Optional[Dict[str, str]]:
		try:
			data = self.client.hgetall(self.key(content_hash))
		except RedisError as e:
			raise StoreUnavailable(f"lookup failed for {self.key(content_hash)}: {e}") from e
		return data or None

	def get_field(self, content_hash: str, field: str) -> Optional[str]:
		try:
			return self.client.hget(self.key(content_hash), field)
		except RedisError as e:
			raise StoreUnavailable(f"lookup failed for {self.key(content_hash)}/{field}: {e}") from e

	def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		self.client.close()

	def __enter__(self) -> "MetadataStore":
		return self

	def __exit__(self, *exc) -> None:
		self.close()
