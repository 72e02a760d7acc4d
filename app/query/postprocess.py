"""Result post-processing: post-fetch formulas, deferred filters, provenance."""

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from app.query.filters import apply_post_fetch_filters
from app.query.formulas import post_process
from app.query.vocabulary import EntityKind

PROVENANCE_KEY = "_provenance"


def finish(
    rows: Iterable[dict],
    formula_names: Iterable[str],
    filters: Iterable,
    kind: EntityKind,
    fetched_at: Optional[datetime] = None,
) -> List[dict]:
    """
    Finish fetched rows, keeping the order the data query produced.

    1. compute post-fetch formulas per row
    2. drop rows failing any deferred filter
    3. stamp each surviving row with ``{source, fetchedAt}``

    ``fetched_at`` is taken once per fetch so every row of a page carries the
    same timestamp.
    """
    kind = EntityKind(kind)
    fetched_at = fetched_at or datetime.now(timezone.utc)

    rows = post_process([dict(row) for row in rows], list(formula_names), kind)
    rows = apply_post_fetch_filters(rows, filters)

    provenance = {"source": kind.value, "fetchedAt": fetched_at.isoformat()}
    for row in rows:
        row[PROVENANCE_KEY] = dict(provenance)
    return rows
