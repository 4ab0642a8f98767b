from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx


logger = logging.getLogger(__name__)

EXPECTED_STATUS = 200
EXPECTED_MEDIA_TYPE = "image/jpeg"


@dataclass
class FetchResult:
	url: str
	status_code: Optional[int] = None
	content_type: Optional[str] = None
	bytes_written: int = 0
	error: Optional[str] = None

	@property
	def status_ok(self) -> bool:
		return self.status_code == EXPECTED_STATUS

	@property
	def content_type_ok(self) -> bool:
		if not self.content_type:
			return False
		return self.content_type.split(";", 1)[0].strip().lower() == EXPECTED_MEDIA_TYPE

	@property
	def ok(self) -> bool:
		return self.error is None and self.status_ok and self.content_type_ok

	@property
	def reason(self) -> str:
		if self.error is not None:
			return f"request error: {self.error}"
		if not self.status_ok:
			return f"status code [{self.status_code}]"
		if not self.content_type_ok:
			return f"content type [{self.content_type}]"
		return "ok"


def fetch_blob(client: httpx.Client, url: str, dest: Path, chunk_size: int = 64 * 1024) -> FetchResult:
	"""
	Stream ``url`` into ``dest`` and report whether the response passed the gates.

	The body is written whatever the status or content type, so an interrupted
	or rejected transfer leaves a file that the next run will size-check and
	fetch again. Transport errors are captured in the result, never raised.
	"""
	result = FetchResult(url=url)
	dest.parent.mkdir(parents=True, exist_ok=True)
	try:
		with client.stream("GET", url) as response, dest.open("wb") as f:
			result.status_code = response.status_code
			result.content_type = response.headers.get("content-type")
			if not result.status_ok:
				logger.error("got status code:[%s] for image: %s type:[%s]", result.status_code, url, result.content_type)
			if not result.content_type_ok:
				logger.error("got contentType:[%s] for image: %s", result.content_type, url)
			# undecoded bytes, so the file size matches the listing Size
			for chunk in response.iter_raw(chunk_size):
				f.write(chunk)
				result.bytes_written += len(chunk)
	except httpx.HTTPError as e:
		result.error = str(e) or type(e).__name__
		logger.error("request error for %s: %s", url, result.error)
	return result
