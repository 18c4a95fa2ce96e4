from __future__ import annotations

import json
import re
from typing import Any


def extract_json_array(text: str) -> list[Any]:
    """
    Strict-ish: tries json.loads; if it fails, extracts the first [...] block and loads that.
    Code fences around the payload are tolerated.
    """
    if not text:
        return []
    text = text.strip()
    text = re.sub(r"^```(?:json)?\s*|\s*```$", "", text, flags=re.I)

    try:
        data = json.loads(text)
        return data if isinstance(data, list) else []
    except ValueError:
        pass

    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end != -1 and end > start:
        try:
            data = json.loads(text[start : end + 1])
            return data if isinstance(data, list) else []
        except ValueError:
            return []

    return []
