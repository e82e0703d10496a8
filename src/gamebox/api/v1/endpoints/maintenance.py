# src/gamebox/api/v1/endpoints/maintenance.py
"""Catalogue maintenance jobs backed by IGDB.

Routes are hidden (404) unless the ``X-Maintenance-Secret`` header matches
the configured secret.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from gamebox.schemas.game import BackfillRequest, SeedRequest, SummaryBackfillRequest
from gamebox.services.games import backfill_parents, backfill_summaries, seed_games
from gamebox.services.igdb import IgdbConfigError, IgdbError

from ..dependencies import IgdbClientDep, SessionDep, require_maintenance_secret

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/maintenance",
    tags=["maintenance"],
    dependencies=[Depends(require_maintenance_secret)],
)


def _upstream_error(exc: IgdbError) -> HTTPException:
    if isinstance(exc, IgdbConfigError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.post("/backfill-games")
async def run_backfill(
    payload: BackfillRequest,
    db: SessionDep,
    igdb: IgdbClientDep,
) -> dict[str, Any]:
    """Link edition rows to their base games."""
    if payload.op != "parents":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unknown op")
    try:
        report = await backfill_parents(db, igdb, limit=payload.limit, dry_run=payload.dry_run)
    except IgdbError as exc:
        logger.error("[api/maintenance/backfill-games] %s", exc)
        raise _upstream_error(exc) from exc
    return report.to_payload()


@router.post("/backfill-summaries")
async def run_summary_backfill(
    payload: SummaryBackfillRequest,
    db: SessionDep,
    igdb: IgdbClientDep,
) -> dict[str, Any]:
    try:
        report = await backfill_summaries(db, igdb, limit=payload.limit, dry_run=payload.dry_run)
    except IgdbError as exc:
        logger.error("[api/maintenance/backfill-summaries] %s", exc)
        raise _upstream_error(exc) from exc
    return report.to_payload()


@router.post("/seed-games")
async def run_seed(payload: SeedRequest, db: SessionDep, igdb: IgdbClientDep) -> dict[str, Any]:
    """Import the best IGDB match for each name."""
    names = [name.strip() for name in payload.names if name and name.strip()]
    if not names:
        return {"items": []}
    try:
        rows = await seed_games(db, igdb, names)
    except IgdbError as exc:
        logger.error("[api/maintenance/seed-games] %s", exc)
        raise _upstream_error(exc) from exc
    return {"items": rows}
