from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Any


def write_status(status_dir: Path, run_id: str, data: Dict[str, Any]) -> None:
	status_dir.mkdir(parents=True, exist_ok=True)
	status_path = status_dir / f"{run_id}.json"
	tmp_path = status_path.with_suffix(".tmp")
	with tmp_path.open("w", encoding="utf-8") as f:
		json.dump(data, f, indent=2)
	tmp_path.replace(status_path)


def read_status(status_dir: Path, run_id: str) -> Dict[str, Any]:
	status_path = status_dir / f"{run_id}.json"
	if not status_path.exists():
		return {"run_id": run_id, "status": "unknown"}
	with status_path.open("r", encoding="utf-8") as f:
		return json.load(f)
