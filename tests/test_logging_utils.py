"""
Tests for the request logging middleware.
"""
from unittest.mock import patch

import httpx
import pytest
from fastapi import FastAPI

from blog_cms.utils.logging_utils import RequestLoggingMiddleware


def make_app(slow_threshold_ms):
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware, slow_threshold_ms=slow_threshold_ms)

    @app.get("/ping")
    async def ping():
        return {"ok": True}

    return app


async def call(app, path="/ping"):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        return await client.get(path)


@pytest.mark.asyncio
async def test_request_is_logged_with_status_and_duration():
    with patch("blog_cms.utils.logging_utils.logger") as logger, patch(
        "blog_cms.utils.logging_utils.perf_logger"
    ) as perf_logger:
        response = await call(make_app(slow_threshold_ms=60_000))

    assert response.status_code == 200
    assert response.headers["X-Response-Time"].endswith("ms")
    args = logger.info.call_args.args
    assert args[1:4] == ("GET", "/ping", 200)
    perf_logger.warning.assert_not_called()


@pytest.mark.asyncio
async def test_slow_request_is_flagged():
    with patch("blog_cms.utils.logging_utils.logger"), patch(
        "blog_cms.utils.logging_utils.perf_logger"
    ) as perf_logger:
        await call(make_app(slow_threshold_ms=-1))

    perf_logger.warning.assert_called_once()
    assert perf_logger.warning.call_args.args[1:3] == ("GET", "/ping")


@pytest.mark.asyncio
async def test_error_responses_are_logged():
    with patch("blog_cms.utils.logging_utils.logger") as logger:
        response = await call(make_app(slow_threshold_ms=60_000), path="/missing")

    assert response.status_code == 404
    assert logger.info.call_args.args[3] == 404
