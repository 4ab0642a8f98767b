from __future__ import annotations

from typing import Iterator

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from exif_harvest.services.config import Settings, get_settings
from exif_harvest.services.jobs import claim_run, new_run_id, release_run, run_ingest_job
from exif_harvest.services.status_store import read_status, write_status
from exif_harvest.services.store import MetadataStore


pipeline_router = APIRouter(prefix="/pipeline", tags=["ingest"])
images_router = APIRouter(prefix="/images", tags=["lookup"])


def get_store(settings: Settings = Depends(get_settings)) -> Iterator[MetadataStore]:
	store = MetadataStore.from_url(settings.redis_url, key_prefix=settings.key_prefix)
	try:
		yield store
	finally:
		store.close()


@pipeline_router.post("/ingest", summary="Start a background ingest of the configured catalog")
def ingest(background_tasks: BackgroundTasks, settings: Settings = Depends(get_settings)):
	run_id = new_run_id()
	running = claim_run(run_id)
	if running is not None:
		raise HTTPException(status_code=409, detail={"message": "an ingest run is already in progress", "run_id": running})
	try:
		write_status(settings.status_dir, run_id, {"run_id": run_id, "status": "queued"})
	except OSError:
		release_run(run_id)
		raise
	background_tasks.add_task(run_ingest_job, run_id, settings)
	return {
		"run_id": run_id,
		"status": "queued",
		"catalog_url": settings.catalog_url,
		"status_endpoint": f"/pipeline/status/{run_id}",
	}


@pipeline_router.get("/status/{run_id}", summary="Get ingest run status")
def status(run_id: str, settings: Settings = Depends(get_settings)):
	return read_status(settings.status_dir, run_id)


@images_router.get("/{key}", summary="All EXIF fields stored for a content hash")
def lookup_key(key: str, store: MetadataStore = Depends(get_store)):
	data = store.get_all(key)
	if data is None:
		raise HTTPException(status_code=404, detail=f"key:[{key}] not found")
	return {"key": key, "fields": data}


@images_router.get("/{key}/{tag}", summary="A single EXIF field stored for a content hash")
def lookup_key_tag(key: str, tag: str, store: MetadataStore = Depends(get_store)):
	value = store.get_field(key, tag)
	if value is None:
		raise HTTPException(status_code=404, detail=f"key:[{key}] with tag:[{tag}] not found")
	return {"key": key, "tag": tag, "value": value}
