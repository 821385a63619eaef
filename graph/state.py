from typing import TypedDict, Optional, List, Dict, Any

class RelayState(TypedDict, total=False):
    """State shape for one pass through the relay workflow."""
    method: str
    raw_body: bytes                  # request body exactly as received
    settings: Any                    # RelaySettings
    transport: Any                   # optional httpx transport override
    payload: Dict[str, Any]          # parsed lead payload
    upstream_status: Optional[int]
    upstream_body: Any               # JSON when declared, else text
    failure: Optional[str]           # repr of a transport/runtime error
    traceback: Optional[str]
    status_code: int                 # relay's own response status
    response: Optional[Dict[str, Any]]  # None means "no body"
    errors: List[str]
    done: bool                       # short-circuit to END
