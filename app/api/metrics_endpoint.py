"""Prometheus scrape endpoint.

Plain text exposition format, not JSON.  Besides the HTTP series it
carries the learning counters from app/core/metrics.py, e.g.

  badges_awarded_total{badge_type="assessment_perfect"} 12.0
  badge_check_failures_total{trigger="course_completed"} 0.0

Keep /metrics off the public ingress in production: it reveals request
rates and failure patterns.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
