from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from exif_harvest.services.errors import FilesystemError
from exif_harvest.services.manifest import WorkDescriptor
from exif_harvest.services.store import MetadataStore


logger = logging.getLogger(__name__)


class Action(enum.Enum):
	SKIP = "skip"
	EXTRACT_ONLY = "extract_only"
	FETCH = "fetch"


@dataclass(frozen=True)
class ClassifiedItem:
	descriptor: WorkDescriptor
	action: Action
	local_size: Optional[int] = None

	@property
	def already_present(self) -> bool:
		return self.local_size is not None


def blob_path(image_store: Path, descriptor: WorkDescriptor) -> Path:
	return image_store / descriptor.name


def classify(descriptor: WorkDescriptor, store: MetadataStore, image_store: Path) -> ClassifiedItem:
	"""
	Decide what a descriptor needs.

	A hash already in the store always wins, even when the local blob is
	missing or wrong. Otherwise the local blob's size decides between
	re-downloading and extracting from the file on disk.
	"""
	if store.exists(descriptor.content_hash):
		logger.info("skipping key:%s as redis already has the hash:[%s]", descriptor.name, store.key(descriptor.content_hash))
		return ClassifiedItem(descriptor, Action.SKIP)

	path = blob_path(image_store, descriptor)
	try:
		size = path.stat().st_size
	except FileNotFoundError:
		logger.info("Not seen: [%s] before, adding it to the queue", descriptor.name)
		return ClassifiedItem(descriptor, Action.FETCH)
	except OSError as e:
		raise FilesystemError(f"cannot stat {path}: {e}") from e

	logger.info("We have %s already, size shouldBe:%s actual:%s", descriptor.name, descriptor.expected_size, size)
	if size == descriptor.expected_size:
		return ClassifiedItem(descriptor, Action.EXTRACT_ONLY, local_size=size)
	logger.info("%s was not fully downloaded, will try again..", descriptor.name)
	return ClassifiedItem(descriptor, Action.FETCH, local_size=size)
