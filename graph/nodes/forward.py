import traceback
from graph.state import RelayState
from tools.crm import CRMClient
from loguru import logger

async def forward(state: RelayState) -> RelayState:
    """Send the payload upstream. Exactly one outbound call, no retries."""
    client = CRMClient(state["settings"], transport=state.get("transport"))

    try:
        status, body = await client.submit_application(state["payload"])
        state["upstream_status"] = status
        state["upstream_body"] = body
        state["failure"] = None

    except Exception as e:
        error_msg = f"Upstream call failed: {e!r}"
        logger.error(error_msg)
        state.setdefault("errors", []).append(error_msg)
        state["upstream_status"] = None
        state["upstream_body"] = None
        state["failure"] = repr(e)
        state["traceback"] = traceback.format_exc()

    return state
