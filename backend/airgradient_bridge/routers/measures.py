"""
Measures & Metrics Router
=========================

The two doors into the bridge.

ALL ENDPOINTS:
-------------
POST /sensors/{token}/measures  - AirGradient sensor pushes a reading
GET  /metrics                   - Prometheus scrapes the latest reading

The token is whatever the sensor firmware puts in the URL, normally
"airgradient:<serial>". The part after the colon becomes the instance id.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from starlette.requests import ClientDisconnect

from airgradient_bridge.errors import MalformedInput, OutputWriteFailed
from airgradient_bridge.services import CONTENT_TYPE, ReadingBridge

logger = logging.getLogger(__name__)

router = APIRouter(tags=["airgradient"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================

def get_bridge(request: Request) -> ReadingBridge:
    """The ReadingBridge this app was built with (see create_app)."""
    return request.app.state.bridge


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/sensors/{token}/measures")
async def post_measures(
    token: str,
    request: Request,
    background_tasks: BackgroundTasks,
    bridge: ReadingBridge = Depends(get_bridge),
):
    """
    Accept one reading from a sensor.

    Body (JSON): wifi, pm02, rco2, atmp, rhum. Anything else is ignored.

    Returns an empty 200. The backup file is written after the response is
    sent, so a slow disk never slows the sensor down.
    """
    try:
        body = await request.body()
    except ClientDisconnect as e:
        raise MalformedInput("cannot read body") from e

    # ingest takes the cache's threading lock, keep it off the event loop
    reading = await run_in_threadpool(bridge.ingest, body, token)
    background_tasks.add_task(bridge.persist, reading)
    return Response(status_code=200)


@router.get("/metrics")
def get_metrics(bridge: ReadingBridge = Depends(get_bridge)):
    """
    Latest reading in Prometheus text format (all zeros if there is none).

    The encode step is the only output failure visible from here (500).
    Socket write errors after the response starts belong to the server.
    """
    text = bridge.render()
    try:
        content = text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise OutputWriteFailed("failed to write response") from e
    return Response(content=content, media_type=CONTENT_TYPE)
