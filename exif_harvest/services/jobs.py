from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from exif_harvest.services.config import Settings
from exif_harvest.services.pipeline import run_ingest
from exif_harvest.services.status_store import write_status


logger = logging.getLogger(__name__)

# one ingest per process: two runs would both write the same blob paths
_active_lock = threading.Lock()
_active_run_id: Optional[str] = None


def new_run_id() -> str:
	return "ingest_" + datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")


def claim_run(run_id: str) -> Optional[str]:
	"""Mark ``run_id`` as the active run; returns the id already running, if any."""
	global _active_run_id
	with _active_lock:
		if _active_run_id is not None:
			return _active_run_id
		_active_run_id = run_id
		return None


def release_run(run_id: str) -> None:
	global _active_run_id
	with _active_lock:
		if _active_run_id == run_id:
			_active_run_id = None


def active_run() -> Optional[str]:
	with _active_lock:
		return _active_run_id


def run_ingest_job(run_id: str, settings: Settings) -> None:
	"""Background entry point: runs one ingest and records its progress as job status."""
	status_dir = settings.status_dir
	try:
		write_status(status_dir, run_id, {"run_id": run_id, "status": "running", "catalog_url": settings.catalog_url})
		summary = run_ingest(settings)
		write_status(status_dir, run_id, {
			"run_id": run_id,
			"status": "completed",
			"catalog_url": settings.catalog_url,
			"summary": summary.to_dict(),
		})
	except Exception as e:
		logger.exception("ingest run %s failed", run_id)
		write_status(status_dir, run_id, {"run_id": run_id, "status": "error", "error": str(e)})
	finally:
		release_run(run_id)
