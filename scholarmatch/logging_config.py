import logging
import json
from datetime import datetime, timezone

logger = logging.getLogger("scholarmatch")
logger.setLevel(logging.INFO)

handler = logging.StreamHandler()
formatter = logging.Formatter(
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)
handler.setFormatter(formatter)
logger.addHandler(handler)


def log_event(action: str, message: str, extra: dict | None = None) -> None:
    payload = {"action": action, "message": message}
    if extra:
        payload.update(extra)
    logger.info(json.dumps(payload, default=str))


def log_failure(error_code: str, context: dict | None = None) -> dict:
    """
    Single entry point for failure logging.
    Returns a minimal payload you can also persist into a TrainingEvent.
    """
    payload = {
        "error_code": error_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if context:
        payload["context"] = context

    logger.error(json.dumps(payload, default=str))
    return payload


def log_training(scope: str, status: str, extra: dict | None = None) -> dict:
    payload = {
        "scope": scope,
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if extra:
        payload.update(extra)
    logger.info(json.dumps({"action": "TRAINING", **payload}, default=str))
    return payload
