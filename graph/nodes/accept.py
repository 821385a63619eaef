from graph.state import RelayState
from loguru import logger

ALLOWED_METHODS = ["POST"]

def accept(state: RelayState) -> RelayState:
    """Gate the request on its method and on the relay's own configuration."""
    method = (state.get("method") or "").upper()
    logger.info(f"Relay received {method} request")

    if method == "OPTIONS":
        state["status_code"] = 204
        state["response"] = None
        state["done"] = True
        return state

    if method not in ALLOWED_METHODS:
        logger.warning(f"Rejected {method} request")
        state["status_code"] = 405
        state["response"] = {"ok": False, "error": "Method Not Allowed", "allowed": ALLOWED_METHODS}
        state["done"] = True
        return state

    settings = state["settings"]
    missing = settings.missing()
    if missing:
        error_msg = f"Missing required configuration: {missing}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        state["status_code"] = 500
        state["response"] = {"ok": False, "error": "Missing required configuration", "missing": missing}
        if settings.debug:
            state["response"]["hint"] = "Set CRM_BASE_URL and CRM_API_KEY in the deployment environment, then restart."
        state["done"] = True
        return state

    state["done"] = False
    return state
