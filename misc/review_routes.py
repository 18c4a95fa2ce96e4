from __future__ import annotations

import re


REVIEW_RE = re.compile(r"^\s*/?(?:review|複習|回顧|複習一下)\s*[!！?？。.]*\s*$", flags=re.I)


def is_review_request(text: str) -> bool:
    return bool(REVIEW_RE.match(text or ""))
