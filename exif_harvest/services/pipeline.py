"""
Ingestion pipeline: manifest -> classification -> bounded worker pool -> Redis.

Each submitted item returns exactly one ``ItemResult``; the run drains by
waiting on every submitted future and then releases the store once. A run
that submits nothing releases the store as soon as the manifest has been
classified.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import httpx

from exif_harvest.services.config import Settings
from exif_harvest.services.errors import MetadataParseFailure, StoreWriteFailure
from exif_harvest.services.fetcher import fetch_blob
from exif_harvest.services.manifest import read_manifest
from exif_harvest.services.metadata import extract_exif, flatten_fields, identify_format, is_jpeg
from exif_harvest.services.resolver import Action, ClassifiedItem, blob_path, classify
from exif_harvest.services.store import MetadataStore


logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
	STORED = "stored"
	TRANSPORT_FAILED = "transport_failed"
	FORMAT_MISMATCH = "format_mismatch"
	NO_METADATA = "no_metadata"
	PARSE_FAILED = "parse_failed"
	STORE_FAILED = "store_failed"


@dataclass(frozen=True)
class ItemResult:
	item: ClassifiedItem
	outcome: Outcome
	reason: str = ""

	@property
	def ok(self) -> bool:
		return self.outcome is Outcome.STORED


@dataclass
class RunSummary:
	accepted: int = 0
	skipped: int = 0
	submitted: int = 0
	fetched: int = 0
	outcomes: Counter = field(default_factory=Counter)

	def to_dict(self) -> Dict[str, object]:
		return {
			"accepted": self.accepted,
			"skipped": self.skipped,
			"submitted": self.submitted,
			"fetched": self.fetched,
			"outcomes": {o.value: n for o, n in self.outcomes.items()},
		}


class IngestPipeline:
	def __init__(self, settings: Settings, store: MetadataStore, client: Optional[httpx.Client] = None) -> None:
		self.settings = settings
		self.store = store
		self._owns_client = client is None
		self.client = client or httpx.Client(timeout=settings.request_timeout)
		self._released = False
		self._release_lock = threading.Lock()

	@property
	def image_store(self) -> Path:
		return self.settings.image_store

	def run(self) -> RunSummary:
		summary = RunSummary()
		try:
			self.image_store.mkdir(parents=True, exist_ok=True)
			logger.info("Set queue with workers = %d", self.settings.workers)
			with ThreadPoolExecutor(max_workers=self.settings.workers, thread_name_prefix="exif-worker") as pool:
				futures: List[Future] = []
				try:
					for descriptor in read_manifest(self.client, self.settings.catalog_url):
						summary.accepted += 1
						item = classify(descriptor, self.store, self.image_store)
						if item.action is Action.SKIP:
							summary.skipped += 1
							continue
						if item.action is Action.FETCH:
							summary.fetched += 1
						futures.append(pool.submit(self.process, item))
					summary.submitted = len(futures)
					if not futures:
						logger.info("nothing on the queue. closing redis")
						self.release()
						return summary
					for future in as_completed(futures):
						result = future.result()
						summary.outcomes[result.outcome] += 1
						logger.info(".finished processing:%s (%s)", result.item.descriptor.name, result.outcome.value)
				except BaseException:
					for future in futures:
						future.cancel()
					raise
			logger.info("all queue items have been processed")
			return summary
		finally:
			self.release()

	def release(self) -> None:
		with self._release_lock:
			if self._released:
				return
			self._released = True
		self.store.close()
		if self._owns_client:
			self.client.close()

	def process(self, item: ClassifiedItem) -> ItemResult:
		descriptor = item.descriptor
		if item.action is Action.FETCH:
			url = f"{self.settings.object_base_url}/{descriptor.name}"
			logger.info("pulling down image:[%s] size:[%s]", descriptor.name, descriptor.expected_size)
			fetched = fetch_blob(self.client, url, blob_path(self.image_store, descriptor))
			if not fetched.ok:
				return ItemResult(item, Outcome.TRANSPORT_FAILED, fetched.reason)
		else:
			logger.info("%s has the correct file size, extracting exif", descriptor.name)
		return self.extract_and_store(item)

	def extract_and_store(self, item: ClassifiedItem) -> ItemResult:
		descriptor = item.descriptor
		path = blob_path(self.image_store, descriptor)
		image_format = identify_format(path)
		if not is_jpeg(image_format):
			logger.error("file:[%s] is not valid JPG: [%s]", path, image_format)
			return ItemResult(item, Outcome.FORMAT_MISMATCH, image_format)
		try:
			fields = extract_exif(path)
			if not fields:
				logger.warning("no exif fields in %s, nothing stored", path)
				return ItemResult(item, Outcome.NO_METADATA)
			self.store.write(descriptor.content_hash, flatten_fields(fields))
		except MetadataParseFailure as e:
			if self.settings.fail_fast:
				raise
			logger.error("%s", e)
			return ItemResult(item, Outcome.PARSE_FAILED, str(e))
		except StoreWriteFailure as e:
			if self.settings.fail_fast:
				raise
			logger.error("%s", e)
			return ItemResult(item, Outcome.STORE_FAILED, str(e))
		return ItemResult(item, Outcome.STORED)


def run_ingest(settings: Settings, store: Optional[MetadataStore] = None, client: Optional[httpx.Client] = None) -> RunSummary:
	store = store or MetadataStore.from_url(settings.redis_url, key_prefix=settings.key_prefix)
	return IngestPipeline(settings, store, client=client).run()
