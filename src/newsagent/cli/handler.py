"""
Trigger surface: turns an invocation event into a pipeline run and shapes
the response for the caller.
"""
import asyncio
import json
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from newsagent.core.entities import RunResult, RunStage, Trigger, utc_timestamp
from newsagent.services.config import load_config
from newsagent.services.logging import setup_logging
from newsagent.workflows.base import Pipeline
from newsagent.workflows.pipeline_factory import create_pipeline_from_config

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


def build_response(result: RunResult) -> Dict[str, Any]:
    """
    Scheduled triggers get a plain status object; direct triggers get an
    HTTP-shaped response. 500 only for a top-level failure.
    """
    status_code = 200 if result.succeeded else 500
    body: Dict[str, Any] = {
        "statusCode": status_code,
        "message": "NewsAgent completed successfully" if result.succeeded else "NewsAgent failed",
        "timestamp": result.timestamp,
        "source": "scheduled-event" if result.trigger == Trigger.SCHEDULED else "manual-invocation",
    }
    if result.succeeded:
        body["data"] = result.to_dict()
    else:
        body["error"] = result.error or "Unknown error"

    if result.trigger == Trigger.SCHEDULED:
        return body

    return {
        "statusCode": status_code,
        "headers": CORS_HEADERS,
        "body": json.dumps(body),
    }


def limits_from_event(event: Any) -> Dict[str, int]:
    """Optional per-source limits, e.g. {"limits": {"hacker-news": 10}}."""
    if not isinstance(event, dict):
        return {}
    raw = event.get("limits")
    if not raw and isinstance(event.get("body"), str):
        try:
            raw = (json.loads(event["body"]) or {}).get("limits")
        except (ValueError, AttributeError):
            raw = None
    if not isinstance(raw, dict):
        return {}

    limits = {}
    for name, value in raw.items():
        try:
            limits[str(name)] = int(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring invalid limit for {name}: {value!r}")
    return limits


def failed_result(trigger: Trigger, error: Exception) -> RunResult:
    now = datetime.now(timezone.utc)
    return RunResult(
        trigger=trigger,
        run_date=now.date().isoformat(),
        timestamp=utc_timestamp(now),
        stage=RunStage.FAILED,
        error=str(error) or error.__class__.__name__,
    )


async def run_event(pipeline: Pipeline, event: Any) -> Dict[str, Any]:
    trigger = Trigger.from_event(event)
    try:
        result = await pipeline.run(trigger, limits_from_event(event))
    except Exception as e:
        logger.exception(f"Pipeline raised: {e}")
        result = failed_result(trigger, e)
    return build_response(result)


@lru_cache(maxsize=1)
def get_pipeline() -> Pipeline:
    """Clients are built once per process and reused by warm invocations."""
    config = load_config()
    setup_logging(config.LOG_LEVEL)
    return create_pipeline_from_config(config)


def handler(event: Optional[Dict[str, Any]], context: Any = None) -> Dict[str, Any]:
    source = event.get("source") if isinstance(event, dict) else None
    logger.info(f"NewsAgent invoked (source={source or 'direct-invocation'})")

    if event is not None and not isinstance(event, dict):
        logger.error(f"Rejecting invocation with non-object event of type {type(event).__name__}")
        return build_response(failed_result(Trigger.DIRECT, ValueError("Invalid event: expected a JSON object")))

    try:
        pipeline = get_pipeline()
    except Exception as e:
        logger.exception(f"Failed to initialize pipeline: {e}")
        return build_response(failed_result(Trigger.from_event(event), e))

    return asyncio.run(run_event(pipeline, event))
