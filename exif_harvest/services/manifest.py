from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Set, Union

import httpx
from bs4 import BeautifulSoup

from exif_harvest.services.errors import TransportError


logger = logging.getLogger(__name__)

SUPPORTED_EXTENSION = ".jpg"


@dataclass(frozen=True)
class WorkDescriptor:
	name: str
	expected_size: int
	content_hash: str


def _child_text(entry, tag: str) -> str:
	node = entry.find(tag, recursive=False)
	return node.get_text(strip=True) if node is not None else ""


def _parse_size(raw: str) -> Optional[int]:
	try:
		size = int(raw)
	except ValueError:
		return None
	return size if size >= 0 else None


def fetch_manifest(client: httpx.Client, url: str) -> bytes:
	try:
		response = client.get(url)
	except httpx.HTTPError as e:
		raise TransportError(f"manifest fetch failed for {url}: {e}") from e
	if response.status_code != 200:
		raise TransportError(f"manifest fetch for {url} returned status {response.status_code}")
	return response.content


def parse_manifest(document: Union[str, bytes]) -> Iterator[WorkDescriptor]:
	"""
	Yield one descriptor per ``Contents`` entry of an S3 bucket listing.

	Only ``.jpg`` keys (case-sensitive) are kept. Other extensions are dropped
	silently; malformed entries and repeated names are dropped with a warning.
	"""
	soup = BeautifulSoup(document, "xml")
	seen: Set[str] = set()
	for entry in soup.find_all("Contents"):
		name = _child_text(entry, "Key")
		if not name.endswith(SUPPORTED_EXTENSION):
			continue
		size = _parse_size(_child_text(entry, "Size"))
		content_hash = _child_text(entry, "ETag").replace('"', "")
		if size is None or not content_hash:
			logger.warning("Dropping malformed manifest entry: [%s]", name)
			continue
		if name in seen:
			logger.warning("Dropping repeated manifest entry: [%s] hash:[%s]", name, content_hash)
			continue
		seen.add(name)
		yield WorkDescriptor(name=name, expected_size=size, content_hash=content_hash)


def read_manifest(client: httpx.Client, url: str) -> Iterator[WorkDescriptor]:
	logger.info("Fetching manifest from %s", url)
	return parse_manifest(fetch_manifest(client, url))
