import os
import time
from typing import Optional
import httpx
from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from loguru import logger
from langgraph.graph import StateGraph, START, END
from dotenv import load_dotenv

# Import our modules
from graph.state import RelayState
from graph.nodes.accept import accept, ALLOWED_METHODS
from graph.nodes.parse import parse
from graph.nodes.forward import forward
from graph.nodes.respond import respond
from tools.settings import RelaySettings

# Load environment variables
load_dotenv()

# Configure logging
logger.add(os.getenv("LOG_FILE", "logs/relay.log"), rotation="1 day", retention="7 days", level="INFO")

RELAY_PATH = "/api/applications"
VERSION = "1.0.0"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

# Build the LangGraph workflow
def build_workflow():
    """Build the relay workflow."""
    workflow = StateGraph(RelayState)

    # Add nodes
    workflow.add_node("accept", accept)
    workflow.add_node("parse", parse)
    workflow.add_node("forward", forward)
    workflow.add_node("respond", respond)

    # Any gate that already produced a response ends the run
    def next_or_end(step: str):
        def decide(state: RelayState) -> str:
            return "end" if state.get("done") else step
        return decide

    workflow.add_edge(START, "accept")
    workflow.add_conditional_edges("accept", next_or_end("parse"), {"parse": "parse", "end": END})
    workflow.add_conditional_edges("parse", next_or_end("forward"), {"forward": "forward", "end": END})
    workflow.add_edge("forward", "respond")
    workflow.add_edge("respond", END)

    return workflow.compile()


def create_app(settings: Optional[RelaySettings] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> FastAPI:
    """Create the relay app. `transport` replaces the network for the upstream call."""
    settings = settings or RelaySettings()
    relay_graph = build_workflow()

    app = FastAPI(
        title="BALANCE Cipher Intake Relay",
        description="Relays funnel leads to the upstream CRM",
        version=VERSION
    )

    @app.api_route(RELAY_PATH, methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
    async def relay_application(req: Request):
        """
        Relay one lead application to the CRM.

        Expected payload:
        {
            "source": "balance-cypher-v2-clean",
            "requestId": "...",
            "startedAt": "2026-01-01T00:00:00+00:00",
            "tracking": {...},
            "applicant": {"firstName": "Ann", "lastName": "Lee", "email": "ann@example.com", ...}
        }
        """
        start_time = time.time()

        try:
            initial_state = {
                "method": req.method,
                "raw_body": await req.body(),
                "settings": settings,
                "transport": transport,
                "errors": [],
            }
            result = await relay_graph.ainvoke(initial_state)

            processing_time = time.time() - start_time
            logger.info(f"{req.method} {RELAY_PATH} -> {result['status_code']} in {processing_time:.2f}s")

            if result.get("response") is None:
                return Response(status_code=result["status_code"], headers=CORS_HEADERS)
            return JSONResponse(status_code=result["status_code"], content=result["response"], headers=CORS_HEADERS)

        except Exception as e:
            logger.error(f"Relay processing failed: {e!r}")
            content = {"ok": False, "error": "Relay failed (network/runtime error)"}
            if settings.debug:
                content["debug"] = {"details": repr(e)}
            return JSONResponse(status_code=500, content=content, headers=CORS_HEADERS)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "version": VERSION,
            "services": {
                "crm": "missing_configuration" if settings.missing() else "configured",
                "workflow": "ready"
            }
        }

    # Error handlers
    # Methods the route does not list (HEAD, TRACE, custom verbs) are refused by the router itself
    @app.exception_handler(StarletteHTTPException)
    async def relay_http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405 and request.url.path == RELAY_PATH:
            logger.warning(f"Rejected {request.method} request")
            return JSONResponse(
                status_code=405,
                content={"ok": False, "error": "Method Not Allowed", "allowed": ALLOWED_METHODS},
                headers=CORS_HEADERS
            )
        return await http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={"ok": False, "error": "Internal server error"},
            headers=CORS_HEADERS
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    # Create logs directory if it doesn't exist
    os.makedirs("logs", exist_ok=True)

    logger.info("Starting BALANCE Cipher Intake Relay")

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=True,
        log_level="info"
    )
