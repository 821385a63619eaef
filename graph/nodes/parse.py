import json
from typing import Any, Dict
from graph.state import RelayState
from loguru import logger

PREVIEW_CHARS = 500

def _reject(state: RelayState, error: str, **extra: Any) -> RelayState:
    logger.warning(f"Rejected payload: {error}")
    state.setdefault("errors", []).append(error)
    response: Dict[str, Any] = {"ok": False, "error": error}
    response.update(extra)
    settings = state["settings"]
    if settings.debug:
        raw = state.get("raw_body") or b""
        debug = {
            "targetUrl": settings.target_url,
            "receivedBody": raw.decode("utf-8", errors="replace")[:PREVIEW_CHARS],
        }
        debug.update(settings.credential_facts())
        response["debug"] = debug
    state["status_code"] = 400
    state["response"] = response
    state["done"] = True
    return state

def parse(state: RelayState) -> RelayState:
    """Parse the JSON body and check the lead payload shape."""
    raw = state.get("raw_body") or b""

    if not raw.strip():
        return _reject(state, "Empty request body")

    try:
        payload = json.loads(raw)
    except ValueError as e:
        return _reject(state, "Invalid JSON payload", detail=str(e))

    if not isinstance(payload, dict):
        return _reject(state, "Payload must be a JSON object", detail=f"got {type(payload).__name__}")

    if state["settings"].strict_validation and not isinstance(payload.get("applicant"), dict):
        return _reject(state, "Payload missing required 'applicant' object")

    state["payload"] = payload
    state["done"] = False
    logger.info(f"Parsed payload {payload.get('requestId', 'unknown')} from {payload.get('source', 'unknown')}")
    return state
