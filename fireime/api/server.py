"""
FireIME FastAPI 服务

把一个 LookupSession 以 HTTP 接口暴露给界面层
"""

import os
import time
import uuid
from typing import List, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from fireime.engine import (
    LookupSession, create_session, EngineConfig, Preferences, Candidate,
    StoreUnavailable, StatementPrepareFailed, get_api_logger,
)

# 初始化日志
logger = get_api_logger()


# ===== 请求/响应模型 =====

class CandidateItem(BaseModel):
    """候选项"""
    code: str
    text: str
    type: str = "wb"


class LookupRequest(BaseModel):
    """查询请求"""
    code: str = Field(..., description="已输入的编码")
    page: int = Field(1, description="页码", ge=1)


class LookupResponse(BaseModel):
    """查询响应"""
    code: str
    page: int
    kind: str
    has_next: bool
    candidates: List[CandidateItem]


class PromoteRequest(BaseModel):
    """调频请求"""
    code: str = Field(..., min_length=1, description="编码")
    candidate: CandidateItem
    learn: bool = Field(True, description="选词时是否调频")


class PromoteResponse(BaseModel):
    success: bool


class ConfigModel(BaseModel):
    """偏好设置"""
    codeMode: Optional[str] = None
    candidateCount: Optional[int] = Field(None, ge=1)
    zKeyQuery: Optional[bool] = None


class HealthResponse(BaseModel):
    """健康检查响应"""
    status: str
    version: str


# ===== 全局会话 =====
session: Optional[LookupSession] = None
preferences: Optional[Preferences] = None


def init_session(prefs: Preferences = None) -> LookupSession:
    """初始化全局会话（测试时可传入自己的偏好）"""
    global session, preferences
    preferences = prefs or Preferences(EngineConfig(log_json=os.getenv("LOG_JSON", "0") == "1"))
    session = create_session(preferences=preferences)
    return session


def shutdown_session():
    global session
    if session is not None:
        session.close()
    session = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info("=" * 50)
    logger.info("FireIME API 服务启动")
    if session is None:
        prefs_path = os.getenv("FIREIME_PREFS")
        prefs = Preferences.load(prefs_path) if prefs_path else None
        try:
            init_session(prefs)
            logger.info(f"  词库: {session.store.path}")
        except (StoreUnavailable, StatementPrepareFailed) as e:
            logger.error(f"查询会话初始化失败: {e}")
    logger.info("=" * 50)

    yield

    logger.info("正在关闭查询会话...")
    shutdown_session()
    logger.info("FireIME API 服务已停止")


# ===== FastAPI 应用 =====
app = FastAPI(
    title="FireIME API",
    description="五笔 / 拼音候选查询引擎 API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===== 请求日志中间件 =====

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """记录所有请求"""
    request_id = str(uuid.uuid4())[:8]
    start_time = time.perf_counter()

    client_ip = request.client.host if request.client else "unknown"
    logger.info(f"[{request_id}] --> {request.method} {request.url.path} | IP: {client_ip}",
                extra={"request_id": request_id})

    try:
        response = await call_next(request)

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code
        log_level = "info" if status_code < 400 else "warning" if status_code < 500 else "error"
        getattr(logger, log_level)(
            f"[{request_id}] <-- {status_code} | {elapsed_ms:.2f}ms",
            extra={"request_id": request_id, "duration_ms": round(elapsed_ms, 2)},
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{elapsed_ms:.2f}ms"
        return response

    except Exception as e:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"[{request_id}] <-- ERROR | {elapsed_ms:.2f}ms | {type(e).__name__}: {e}",
                     extra={"request_id": request_id})
        raise


def _require_session() -> LookupSession:
    if session is None:
        logger.error("查询会话未就绪，拒绝请求")
        raise HTTPException(status_code=503, detail="查询会话未就绪")
    return session


# ===== API 路由 =====
# 会话内部用锁串行化，这里用同步函数交给线程池执行

@app.get("/health", response_model=HealthResponse)
def health_check():
    """健康检查"""
    from fireime import __version__
    return HealthResponse(
        status="healthy" if session is not None and session.is_ready else "not_ready",
        version=__version__,
    )


@app.post("/lookup", response_model=LookupResponse)
def lookup(request: LookupRequest):
    """按编码查询一页候选"""
    current = _require_session()
    try:
        result = current.lookup(request.code, request.page)
    except StoreUnavailable as e:
        logger.error(f"查询失败: code='{request.code}', error={e}")
        raise HTTPException(status_code=503, detail=str(e))
    except StatementPrepareFailed as e:
        logger.error(f"查询失败: code='{request.code}', error={e}")
        raise HTTPException(status_code=500, detail=str(e))

    logger.debug(f"查询: '{request.code}' p{request.page} -> {[c.text for c in result.candidates[:3]]}")
    return LookupResponse(
        code=request.code,
        page=result.page,
        kind=result.kind.value,
        has_next=result.has_next,
        candidates=[CandidateItem(code=c.code, text=c.text, type=c.type) for c in result.candidates],
    )


@app.post("/promote", response_model=PromoteResponse)
def promote(request: PromoteRequest):
    """把候选调为该编码的首选"""
    current = _require_session()
    candidate = Candidate(**request.candidate.model_dump())
    return PromoteResponse(success=current.promote(request.code, candidate))


@app.post("/select", response_model=PromoteResponse)
def select(request: PromoteRequest):
    """候选被选中"""
    current = _require_session()
    candidate = Candidate(**request.candidate.model_dump())
    return PromoteResponse(success=current.select(request.code, candidate, learn=request.learn))


@app.get("/config", response_model=ConfigModel)
def get_config():
    _require_session()
    return ConfigModel(**preferences.to_dict())


@app.put("/config", response_model=ConfigModel)
def update_config(request: ConfigModel):
    """修改偏好，codeMode / candidateCount 变化时重建查询语句"""
    _require_session()
    changes = request.model_dump(exclude_none=True)
    try:
        preferences.update(**changes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StatementPrepareFailed as e:
        raise HTTPException(status_code=500, detail=str(e))
    if preferences.path:
        preferences.save()
    logger.info(f"偏好已更新: {changes}")
    return ConfigModel(**preferences.to_dict())


@app.get("/stats")
def get_stats():
    """获取统计信息"""
    current = _require_session()
    stats = current.get_stats()
    stats['cache_size'] = len(current.cache)
    return stats


# ===== 启动入口 =====

def main():
    import uvicorn

    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "3000"))
    log_level = os.getenv("LOG_LEVEL", "info").lower()

    logger.info(f"启动 FireIME API 服务: http://{host}:{port}")
    logger.info(f"API 文档: http://{host}:{port}/docs")

    uvicorn.run(
        "fireime.api.server:app",
        host=host,
        port=port,
        reload=False,
        workers=1,
        log_level=log_level,
    )


if __name__ == "__main__":
    main()
