from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any


def _normalize(payload: Any) -> Any:
    if isinstance(payload, str):
        return payload.replace("\r\n", "\n").replace("\r", "\n")
    if isinstance(payload, (list, tuple)):
        return [_normalize(item) for item in payload]
    if isinstance(payload, dict):
        return {str(key): _normalize(value) for key, value in payload.items()}
    if isinstance(payload, Path):
        return str(payload)
    if isinstance(payload, datetime):
        return payload.isoformat()
    return payload


def canonical_json_text(payload: Any) -> str:
    return json.dumps(_normalize(payload), sort_keys=True, ensure_ascii=True, separators=(",", ":"))
