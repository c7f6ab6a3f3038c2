from __future__ import annotations

import gzip
import json
from dataclasses import asdict
from pathlib import Path
from typing import Any, Mapping, TextIO

from .errors import OutputOpenError


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


def open_output(path: str | Path, role: str) -> TextIO:
    """Open an output file for writing, raising OutputOpenError on failure."""
    try:
        return open_textmaybe_gzip(path, "wt")
    except OSError as e:
        raise OutputOpenError(role, path) from e


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True)


def dataclass_to_jsonable(dc: Any) -> Mapping[str, Any]:
    return asdict(dc)


def format_number(x: float) -> str:
    # 15 significant digits; integral values print without a decimal point
    return f"{x:.15g}"
