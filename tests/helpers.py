"""Builders for config files used across the test suite."""

from __future__ import annotations

import json
from pathlib import Path


def write_config(path: Path, actions: list[dict], **extra: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"version": "1.0.0", "actions": actions, **extra}))
    return path


def action(action_id: str, key: str, script: object = "echo hi", **fields: object) -> dict:
    return {
        "id": action_id,
        "description": f"{action_id} action",
        "key": key,
        "script": script,
        **fields,
    }
