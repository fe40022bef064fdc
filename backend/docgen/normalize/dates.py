from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

# Dataverse returns Edm.Date as "2025-03-01" and Edm.DateTimeOffset as
# "2025-03-01T00:00:00Z" (optionally with fractional seconds / offset).
_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")


def to_iso_date(value: Any) -> Optional[str]:
    """
    Normalize a source date value to "YYYY-MM-DD" (time part dropped).

    None / "" -> None. Anything that is not a valid calendar date raises ValueError.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        raise ValueError(f"Invalid date value: {value!r}")

    s = value.strip()
    if not s:
        return None
    m = _ISO_RE.match(s)
    if not m:
        raise ValueError(f"Invalid date (YYYY-MM-DD) token: {s!r}")
    yyyy, mm, dd = map(int, m.groups())
    return date(yyyy, mm, dd).isoformat()  # may raise ValueError
