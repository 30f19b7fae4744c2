from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from . import proxy

router = APIRouter(tags=["GitHub"])

METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"]


def render(resp: proxy.ProxyResponse) -> Response:
    if resp.payload is None:
        return Response(status_code=resp.status, headers=resp.headers)
    return JSONResponse(
        resp.payload,
        status_code=resp.status,
        headers=resp.headers,
        media_type="application/json;charset=utf-8",
    )


@router.api_route("/{full_path:path}", methods=METHODS, include_in_schema=False)
async def dispatch(full_path: str, request: Request):
    req = proxy.ProxyRequest(
        method=request.method,
        path=request.url.path,
        query=dict(request.query_params),
        body=await request.body(),
        origin=request.headers.get("origin"),
    )
    # requests is blocking, keep it off the event loop.
    resp = await run_in_threadpool(proxy.handle, req, request.app.state.config, request.app.state.github)
    return render(resp)
