# File: crawl_planner/server.py
"""crawl_planner.server: aiohttp-приложение с эндпоинтом ``POST /api/research/build-kb``.

* не-POST → 405 и заголовок ``Allow: POST``;
* тело не JSON-объект, URL отсутствует или некорректен → 400;
* иначе 200 и документ :meth:`BuildResult.to_dict`.
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator, Optional

from aiohttp import ClientSession, web

from crawl_planner.config import PlannerConfig
from crawl_planner.engine import Engine
from crawl_planner.errors import InvalidInput
from crawl_planner.logger import get_logger

__all__ = ["BUILD_KB_PATH", "ENGINE_KEY", "SESSION_KEY", "create_app"]

BUILD_KB_PATH = "/api/research/build-kb"

ENGINE_KEY = web.AppKey("engine", Engine)
SESSION_KEY = web.AppKey("session", ClientSession)

log = get_logger("server")


def _bad(message: str, status: int = 400, **headers: str) -> web.Response:
    return web.json_response({"ok": False, "error": message}, status=status, headers=headers or None)


async def _read_payload(request: web.Request) -> dict[str, Any]:
    try:
        raw = await request.text()
    except UnicodeDecodeError as exc:
        raise InvalidInput(f"Request body is not valid text: {exc.reason}") from exc
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidInput(f"Request body is not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise InvalidInput("Request body must be a JSON object")
    return payload


async def handle_build_kb(request: web.Request) -> web.Response:
    if request.method != "POST":
        return _bad("Method Not Allowed", 405, Allow="POST")

    engine = request.app[ENGINE_KEY]
    try:
        payload = await _read_payload(request)
        result = await engine.build_from_payload(payload, session=request.app[SESSION_KEY])
    except InvalidInput as exc:
        log.info("Rejected build-kb request: %s", exc)
        return _bad(str(exc) or "Invalid company URL", 400)

    return web.json_response(result.to_dict(), status=200)


async def _client_session(app: web.Application) -> AsyncIterator[None]:
    config = app[ENGINE_KEY].config
    app[SESSION_KEY] = ClientSession(headers={"User-Agent": config.user_agent}, raise_for_status=False)
    yield
    await app[SESSION_KEY].close()


def create_app(config: Optional[PlannerConfig] = None, engine: Optional[Engine] = None) -> web.Application:
    """Build the application; bypass rules are resolved once, here."""
    app = web.Application()
    app[ENGINE_KEY] = engine or Engine(config)
    app.cleanup_ctx.append(_client_session)
    app.router.add_route("*", BUILD_KB_PATH, handle_build_kb)
    return app
