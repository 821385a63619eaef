from typing import Any, Dict
from graph.state import RelayState
from loguru import logger

GATEWAY_STATUS = 502
TEXT_BODY_LIMIT = 2000

def _debug_block(state: RelayState) -> Dict[str, Any]:
    settings = state["settings"]
    block = {
        "targetUrl": settings.target_url,
        "sentPayload": state.get("payload"),
    }
    block.update(settings.credential_facts())
    return block

def respond(state: RelayState) -> RelayState:
    """Map the upstream outcome onto the relay's own response."""
    settings = state["settings"]
    status = state.get("upstream_status")
    body = state.get("upstream_body")

    if state.get("failure"):
        response = {"ok": False, "error": "Relay failed (network/runtime error)"}
        if settings.debug:
            response["debug"] = _debug_block(state)
            response["debug"]["details"] = state["failure"]
            response["debug"]["traceback"] = state.get("traceback")
        state["status_code"] = 500
        state["response"] = response
        return state

    if status is not None and 200 <= status < 300:
        logger.info(f"Relayed to CRM successfully ({status})")
        response = {"ok": True, "upstream": body}
        if settings.debug:
            response["debug"] = _debug_block(state)
        state["status_code"] = 200
        state["response"] = response
        return state

    # Upstream rejection: its status and body must reach the caller intact.
    if isinstance(body, str) and not settings.debug:
        body = body[:TEXT_BODY_LIMIT]

    error_msg = f"Upstream CRM rejected the request: {status}"
    logger.warning(error_msg)
    state.setdefault("errors", []).append(error_msg)

    response = {
        "ok": False,
        "error": "Upstream CRM rejected the request",
        "status": status,
        "upstreamBody": body,
    }
    if settings.debug:
        response["debug"] = _debug_block(state)

    state["status_code"] = status if settings.error_policy == "passthrough" else GATEWAY_STATUS
    state["response"] = response
    return state
