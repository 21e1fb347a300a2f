"""Content fingerprint of the in-horizon schedule, used to skip redundant runs."""

from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .types import ScheduleRow


def _canonical(row: ScheduleRow) -> dict[str, object]:
    return {
        "kind": row.kind.value,
        "row": row.row_number,
        "collection": row.collection,
        "sub_collection": row.sub_collection,
        "member_type": row.member_type,
        "member_key": row.member_key,
        "add_date": row.add_date.isoformat() if row.add_date else None,
        "add_hour": row.add_hour,
        "remove_date": row.remove_date.isoformat() if row.remove_date else None,
        "remove_hour": row.remove_hour,
        "input_errors": list(row.input_errors),
    }


def schedule_fingerprint(rows: Iterable[ScheduleRow]) -> str:
    """SHA-256 over the canonical JSON of ``rows``, independent of input order."""

    ordered = sorted(rows, key=lambda row: (row.kind.value, row.row_number))
    payload = [_canonical(row) for row in ordered]
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


__all__ = ["schedule_fingerprint"]
