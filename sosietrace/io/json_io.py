from __future__ import annotations
import json
import logging
from typing import Any, Dict, Iterable, List
from pathlib import Path
from sosietrace.core.errors import MalformedRecord
from sosietrace.core.sequence import PointSequence

logger = logging.getLogger(__name__)

def save_sequence(path: str | Path, sequence: PointSequence) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    data = {"schema_version": "1", "name": sequence.name, "points": sequence.to_records()}
    with p.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)

def load_sequence(path: str | Path) -> PointSequence:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise MalformedRecord(f"{p}: invalid JSON ({e})") from e
    if isinstance(data, dict) and "points" in data:
        seq = PointSequence.from_records(data["points"], name=str(data.get("name") or p.stem))
    elif isinstance(data, list):
        seq = PointSequence.from_records(data, name=p.stem)
    else:
        raise MalformedRecord(f"{p}: unrecognized trace JSON format")
    logger.debug("loaded %s: %d points, %d call points", p, seq.size(), seq.call_size())
    return seq

def load_exclusions(path: str | Path) -> List[str]:
    """One variable key per line; blank lines and '#' comments are ignored."""
    p = Path(path)
    if not p.exists():
        return []
    keys = []
    for line in p.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            keys.append(line)
    return keys

def save_exclusions(path: str | Path, keys: Iterable[str]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text("".join(f"{k}\n" for k in sorted(set(keys))), encoding="utf-8")

def save_json(path: str | Path, obj: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)
