"""
FastAPI application for running the cloud function locally.

Every request is converted into the handler's event shape and the handler's
response envelope is returned as-is. Run with
`uvicorn --factory backend.app:create_app`.
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request, Response

from backend.config import get_settings
from backend.dependencies import build_services
from backend.router import ApiRouter

FORWARDED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def request_to_event(request: Request) -> dict:
    body = await request.body()
    return {
        "path": request.url.path,
        "method": request.method,
        "body": body.decode("utf-8") if body else None,
        "queryStringParameters": dict(request.query_params) or None,
    }


def create_app(router: Optional[ApiRouter] = None) -> FastAPI:
    if router is None:
        router = ApiRouter(build_services(get_settings()))
    app = FastAPI(title="Customer API (local)", version="0.1.0")

    @app.api_route("/{full_path:path}", methods=FORWARDED_METHODS)
    async def forward(request: Request) -> Response:
        result = router.handle(await request_to_event(request))
        return Response(
            content=result["body"],
            status_code=result["statusCode"],
            headers=result["headers"],
            media_type="application/json",
        )

    return app
