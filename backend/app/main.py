"""
FastAPI主应用入口
"""
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from app.core.config import settings
from app.api.v1 import api_router
from app.core.logging import setup_logging
from app.core.health import check_openai, check_playwright


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    setup_logging()
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="下单助手API：在用户监督下由视觉模型驱动浏览器完成网页任务",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# GZip压缩（截图 base64 较大）
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """为每个请求生成或透传 X-Request-ID，并写入 request.state"""
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    return response


def _error_response(detail: str, request_id: str | None = None) -> dict:
    body = {"detail": detail}
    if request_id:
        body["request_id"] = request_id
    return body


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """统一 HTTP 异常响应格式"""
    rid = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_response(
            detail=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
            request_id=rid,
        ),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """422 校验错误统一格式"""
    rid = getattr(request.state, "request_id", None)
    errs = exc.errors()
    detail = errs[0].get("msg", "请求参数校验失败") if errs else "请求参数校验失败"
    body = _error_response(detail=detail, request_id=rid)
    body["errors"] = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in errs]
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """未捕获异常统一格式"""
    rid = getattr(request.state, "request_id", None)
    return JSONResponse(
        status_code=500,
        content=_error_response(detail="服务器内部错误", request_id=rid),
    )


# 注册路由
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    """根路径"""
    return {
        "message": "下单助手API",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """健康检查：返回各依赖可用状态"""
    openai_ok, openai_msg = check_openai()
    playwright_ok, playwright_msg = check_playwright()
    all_ok = openai_ok and playwright_ok
    return JSONResponse(
        content={
            "status": "healthy" if all_ok else "degraded",
            "service": "order-assistant",
            "dependencies": {
                "openai": {"ok": openai_ok, "message": openai_msg},
                "playwright": {"ok": playwright_ok, "message": playwright_msg},
            },
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_excludes=["**/__pycache__/**", "**/*.pyc"],
    )
