# src/scroll_summit/api/v1/endpoints/contributions.py
"""Contribution ingestion and real-time snapshot endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from scroll_summit.db.time import now_ms
from scroll_summit.schemas.contribution import (
    ContributionCreate,
    ContributionOut,
    ScrollBatch,
    SnapshotOut,
)
from scroll_summit.services.contributions import ContributorPacer
from scroll_summit.services.contributors import register_contributor
from scroll_summit.services.state_store import UNKNOWN_REGION, normalize_region

from ..dependencies import RuntimeDep

router = APIRouter(tags=["contributions"])
logger = logging.getLogger(__name__)

# WebSocket close code for policy violations (RFC 6455).
WS_POLICY_VIOLATION = 1008


@router.post("/contributions", response_model=ContributionOut)
async def submit_contribution(
    contribution: ContributionCreate,
    runtime: RuntimeDep,
) -> ContributionOut:
    """Submit one scroll batch.

    Rejected batches still answer 200 with `status="rejected"`; only a store
    outage is reported as an error (503, safe to retry).
    """
    try:
        result = runtime.contributions.submit_contribution(
            contribution.contributor_id,
            contribution.region,
            contribution.delta_pixels,
            contribution.elapsed_ms,
        )
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(err),
        ) from err

    if result.status == "retry":
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Height store temporarily unavailable",
        )
    return ContributionOut(status=result.status, reason=result.reason)


@router.get("/snapshot", response_model=SnapshotOut)
async def get_snapshot(runtime: RuntimeDep) -> dict[str, Any]:
    """Return the latest global height, velocity and regional heights."""
    return runtime.contributions.get_snapshot()


@router.websocket("/ws")
async def scroll_socket(websocket: WebSocket, runtime: RuntimeDep) -> None:
    """Bidirectional channel: scroll batches in, snapshot ticks out.

    Query parameters:
        contributor_key: Opaque device or session key (required).
        region: Region code supplied by the geolocation layer (default XX).
    """
    contributor_key = websocket.query_params.get("contributor_key")
    try:
        region = normalize_region(websocket.query_params.get("region") or UNKNOWN_REGION)
    except ValueError:
        region = None
    if not contributor_key or region is None:
        await websocket.close(code=WS_POLICY_VIOLATION)
        return

    contributor_id, region = await asyncio.to_thread(
        register_contributor, runtime.session_factory, contributor_key, region
    )

    await websocket.accept()
    logger.info("Contributor connected: %s (%s)", contributor_id, region)

    contributions = runtime.contributions
    await websocket.send_json(
        {
            "type": "init",
            **contributions.get_snapshot(),
            "contributor": {"id": contributor_id, "region": region},
        }
    )

    async def push(message: dict[str, Any]) -> None:
        await websocket.send_json(message)

    runtime.broadcaster.subscribe(push)
    pacer = ContributorPacer(now_ms(), runtime.config.min_batch_interval_ms)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                batch = ScrollBatch.model_validate_json(raw)
            except ValidationError as e:
                logger.warning("Invalid scroll data from %s: %s", contributor_id, e.errors())
                continue

            received_at = now_ms()
            elapsed = pacer.elapsed(received_at)
            if elapsed is None:
                continue

            result = contributions.submit_contribution(
                contributor_id, region, batch.delta, elapsed
            )
            if result.accepted:
                pacer.mark_accepted(received_at)
            elif result.status == "retry":
                await websocket.send_json({"type": "retry", "reason": result.reason})
    except WebSocketDisconnect:
        logger.info("Contributor disconnected: %s", contributor_id)
    finally:
        runtime.broadcaster.unsubscribe(push)
