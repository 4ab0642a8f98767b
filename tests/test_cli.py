"""exif-lookup and exif-harvest command lines."""

from __future__ import annotations

import json

import pytest

from exif_harvest.scripts import ingest, lookup
from exif_harvest.services.errors import TransportError
from exif_harvest.services.pipeline import RunSummary
from exif_harvest.services.store import MetadataStore


@pytest.fixture
def lookup_store(fake_redis, monkeypatch):
	fake_redis.hashes["i:04057962cae0c5952196a2eceb6a5715"] = {"ISO": "400", "FNumber": "2.8"}
	opened = []

	def open_store():
		opened.append(MetadataStore(fake_redis))
		return opened[-1]

	monkeypatch.setattr(lookup, "_open_store", open_store)
	return opened


def test_lookup_without_args_prints_usage(lookup_store, capsys):
	lookup.main([])
	out = capsys.readouterr().out
	assert "usage: exif-lookup" in out
	assert "04057962cae0c5952196a2eceb6a5715 ISO" in out
	assert lookup_store == []


def test_lookup_key_prints_all_fields_as_json(lookup_store, capsys):
	lookup.main(["04057962cae0c5952196a2eceb6a5715"])
	out = capsys.readouterr().out
	assert out.startswith("results: ")
	assert json.loads(out[len("results: "):]) == {"ISO": "400", "FNumber": "2.8"}
	assert all(store.closed for store in lookup_store)


def test_lookup_key_and_tag_prints_value(lookup_store, capsys):
	lookup.main(["04057962cae0c5952196a2eceb6a5715", "ISO"])
	assert capsys.readouterr().out.strip() == 'results: "400"'
	assert lookup_store[0].closed


def test_lookup_not_found_messages(lookup_store, capsys):
	lookup.main(["missing"])
	lookup.main(["04057962cae0c5952196a2eceb6a5715", "LensModel"])
	out = capsys.readouterr().out.splitlines()
	assert out == [
		"key:[missing] not found",
		"key:[04057962cae0c5952196a2eceb6a5715] with tag:[LensModel] not found",
	]


def test_ingest_cli_applies_overrides(monkeypatch, capsys, tmp_path):
	seen = {}

	def fake_run(settings):
		seen["settings"] = settings
		return RunSummary(accepted=2, skipped=2)

	monkeypatch.setattr(ingest, "run_ingest", fake_run)

	code = ingest.main([
		"--workers", "3",
		"--image-store", str(tmp_path / "imgs"),
		"--key-prefix", "exif:",
		"--status-dir", str(tmp_path / "status"),
		"--fail-fast",
	])

	assert code == 0
	assert seen["settings"].workers == 3
	assert seen["settings"].image_store == tmp_path / "imgs"
	assert seen["settings"].fail_fast is True
	assert seen["settings"].key_prefix == "exif:"
	assert seen["settings"].status_dir == tmp_path / "status"
	assert json.loads(capsys.readouterr().out)["skipped"] == 2


def test_ingest_cli_reports_aborted_run(monkeypatch):
	def fake_run(settings):
		raise TransportError("manifest fetch returned status 503")

	monkeypatch.setattr(ingest, "run_ingest", fake_run)
	assert ingest.main([]) == 1
