from __future__ import annotations

import os
import re


def parse_id_set(raw: str | None) -> set[int]:
    if not raw:
        return set()
    out: set[int] = set()
    for tok in re.split(r"[\s,;]+", raw.strip()):
        if not tok:
            continue
        if re.fullmatch(r"\d{8,22}", tok):
            out.add(int(tok))
    return out


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return float(default)
    try:
        return float(raw.strip())
    except ValueError:
        print(f"[CFG] invalid {name}={raw!r}; falling back to {default!r}")
        return float(default)
