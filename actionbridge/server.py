from __future__ import annotations

import functools
import logging
import re
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from actionbridge.bridge import ActionBridge
from actionbridge.conditional import parse_if_then_else, parse_or_chains
from actionbridge.executor import SMART_DELAY
from actionbridge.types import dump
from actionbridge.utils import split_ids

logger = logging.getLogger(__name__)

VERSION = "0.1.0"
LIST_LIMIT = 100
SEARCH_LIMIT = 100
PATTERN_LIMIT = 5
SEGMENT_SEPARATORS = re.compile(r"[._-]")


class LocalhostOnlyMiddleware(BaseHTTPMiddleware):
    """Reject requests whose Host header does not name the loopback host."""

    ALLOWED_HOSTS = {"localhost", "127.0.0.1", "[::1]", "::1"}

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        host = _strip_port(request.headers.get("host", ""))
        if host not in self.ALLOWED_HOSTS:
            logger.warning("Rejected request for non-localhost host: %r", host)
            return JSONResponse(
                {"success": False, "error": "Only localhost connections are allowed"},
                status_code=403,
            )
        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response


def _strip_port(host: str) -> str:
    host = host.strip().lower()
    if host.startswith("["):
        return host.split("]", 1)[0] + "]"
    return host.rsplit(":", 1)[0] if host.count(":") == 1 else host


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def json_errors(endpoint: Callable[..., Any]) -> Callable[..., Any]:
    """Turn any exception escaping an endpoint into a 500 JSON answer."""

    @functools.wraps(endpoint)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return endpoint(*args, **kwargs)
        except Exception as exc:
            logger.exception("Error handling %s", endpoint.__name__)
            return _error(str(exc) or exc.__class__.__name__, 500)

    return wrapper


def _int_param(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool_param(raw: str | None) -> bool:
    return raw is not None and raw.strip().lower() == "true"


def search_ids(command_ids: list[str], query: str) -> list[str]:
    """Match by substring or by a `.`, `_` or `-` delimited segment prefix."""
    if not query:
        return []
    needle = query.lower()
    return [
        command_id
        for command_id in command_ids
        if needle in command_id.lower()
        or any(
            segment.lower().startswith(needle)
            for segment in SEGMENT_SEPARATORS.split(command_id)
        )
    ]


def create_app(bridge: ActionBridge) -> FastAPI:
    """Create FastAPI app exposing the bridge over local HTTP."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        bridge.start()
        logger.info("Action bridge listening on %s:%d", bridge.settings.host, bridge.settings.port)
        try:
            yield
        finally:
            bridge.close()

    app = FastAPI(title="Action Bridge", version=VERSION, lifespan=lifespan)
    app.add_middleware(LocalhostOnlyMiddleware)
    app.state.bridge = bridge

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {
            "status": "healthy",
            "service": "actionbridge",
            "version": VERSION,
            "port": bridge.settings.port,
        }

    @app.get("/list")
    @json_errors
    def list_actions() -> Any:
        command_ids = bridge.registry.list_ids()
        return {"actions": command_ids[:LIST_LIMIT], "count": len(command_ids)}

    @app.get("/check")
    @json_errors
    def check(action: str | None = None) -> Any:
        if not action:
            return _error("No action parameter", 400)
        exists = bridge.registry.exists(action)
        return {"exists": exists, "actionId": action, "available": exists}

    @app.get("/search")
    @json_errors
    def search(q: str = "") -> Any:
        matches = search_ids(bridge.registry.list_ids(), q)
        return {
            "query": q,
            "actions": matches[:SEARCH_LIMIT],
            "count": len(matches),
            "truncated": len(matches) > SEARCH_LIMIT,
        }

    @app.get("/explain")
    @json_errors
    def explain(action: str | None = None) -> Any:
        if not action:
            return _error("No action parameter provided", 400)
        if not bridge.registry.exists(action):
            return _error(f"Command not found: {action}", 404)
        classifier = bridge.classifier
        return {
            "actionId": action,
            "exists": True,
            "category": classifier.classify(action).value,
            # Own category delay; delay(action, None) is always 0.
            "smartDelay": classifier.settle_delay(action),
            "requirements": dump(classifier.requirements(action)),
            "description": classifier.describe(action),
        }

    @app.get("/execute")
    @json_errors
    def execute(
        action: str | None = None,
        actions: str | None = None,
        delay: str | None = None,
    ) -> Any:
        if action:
            return dump(bridge.engine.execute(action))
        if actions and (command_ids := split_ids(actions)):
            results = bridge.engine.execute_chain(command_ids, _int_param(delay, SMART_DELAY))
            return {
                "success": all(result.success for result in results),
                "actions": [result.command_id for result in results],
                "results": [dump(result) for result in results],
            }
        return _error("No action or actions parameter", 400)

    @app.get("/execute/conditional")
    @json_errors
    def execute_conditional(request: Request) -> Any:
        params = request.query_params
        actions = params.get("actions")
        force = _bool_param(params.get("force"))

        if actions is not None and "|" in actions:
            result = bridge.conditional.execute(parse_or_chains(actions), force=force)
            return dump(result)

        condition = parse_if_then_else(params.get("if"), params.get("then"), params.get("else"))
        if condition is not None:
            return dump(bridge.conditional.execute(condition, force=force))

        if actions and (command_ids := split_ids(actions)):
            outcome = bridge.engine.execute_chain(command_ids, SMART_DELAY, force=force)
            return {
                "success": force or all(result.success for result in outcome),
                "results": [dump(result) for result in outcome],
            }
        return _error("No valid conditional or actions provided", 400)

    @app.get("/history")
    @json_errors
    def history(limit: str | None = None) -> Any:
        entries = bridge.store.recent_history(_int_param(limit, 50))
        return {"history": [dump(entry) for entry in entries], "count": len(entries)}

    @app.post("/history/clear")
    @json_errors
    def clear_history() -> Any:
        bridge.store.clear()
        return {"success": True}

    @app.get("/stats")
    @json_errors
    def stats(action: str | None = None, limit: str | None = None) -> Any:
        if action:
            found = bridge.store.stats_for(action)
            if found is None:
                return {"error": f"No statistics available for action: {action}"}
            return dump(found)
        top = bridge.store.top_commands(_int_param(limit, 20))
        return {"topActions": [dump(item) for item in top], "count": len(top)}

    @app.get("/suggestions")
    @json_errors
    def suggestions() -> Any:
        patterns = bridge.store.common_patterns()[:PATTERN_LIMIT]
        return {
            "suggestions": bridge.store.suggestions(),
            "patterns": [dump(pattern) for pattern in patterns],
        }

    @app.get("/state/query")
    @json_errors
    def state_query(checks: str | None = None) -> Any:
        predicates = split_ids(checks or "")
        if not predicates:
            return _error("No checks parameter provided", 400)
        return bridge.evaluator.evaluate_all(predicates)

    @app.get("/state/toolwindows")
    @json_errors
    def tool_windows() -> Any:
        return bridge.ui.invoke_and_wait(bridge.context.tool_windows)

    @app.get("/state/enabled")
    @json_errors
    def enabled(actions: str | None = None) -> Any:
        command_ids = split_ids(actions or "")
        if not command_ids:
            return _error("No actions parameter provided", 400)
        return {
            command_id: bridge.evaluator.evaluate(f"{command_id}:enabled")
            for command_id in command_ids
        }

    return app
