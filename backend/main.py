# inference-bench/backend/main.py
"""
InferenceBench 백엔드 메인 애플리케이션 파일

이 파일은 FastAPI 애플리케이션의 진입점으로,
모든 라우터를 통합하고 미들웨어와 예외 처리기를 설정합니다.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy import text
from starlette.responses import Response

from app.api.v1.router import api_router
from app.core.config import settings
from app.db.session import engine, init_db
from app.utils.exceptions import (
    InferenceBenchException,
    format_error_response,
    get_http_status_code,
)
from app.utils.logger import logger, log_request, log_response, log_error

# Prometheus 메트릭 정의
REQUEST_COUNT = Counter(
    'inferencebench_requests_total',
    'Total number of requests',
    ['method', 'endpoint', 'status']
)
REQUEST_DURATION = Histogram(
    'inferencebench_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint']
)
ERROR_COUNT = Counter(
    'inferencebench_errors_total',
    'Total number of handled application errors',
    ['error_code', 'retryable']
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 생명주기 관리

    시작 시: 데이터베이스 테이블 생성
    종료 시: 커넥션 풀 정리
    """
    logger.info("🚀 InferenceBench 백엔드 서버를 시작합니다...")

    await init_db()

    yield

    logger.info("🛑 InferenceBench 백엔드 서버를 종료합니다...")
    await engine.dispose()


# FastAPI 애플리케이션 인스턴스 생성
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="LLM 추론 벤치마크 성능 집계 및 순위 API",
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
    redoc_url=f"{settings.API_PREFIX}/redoc",
    lifespan=lifespan
)

# CORS 미들웨어 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def endpoint_label(request: Request) -> str:
    """메트릭 라벨용 엔드포인트 (매칭된 라우트 템플릿, 매칭 실패 시 고정값)"""
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


# 요청 처리 시간 측정 미들웨어
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """
    각 요청에 요청 ID를 부여하고 처리 시간을 측정
    접근 로그와 Prometheus 메트릭도 함께 기록
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id

    log_request(
        request_id=request_id,
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
        query=str(request.query_params) or None
    )

    start_time = time.time()

    # 요청 처리
    response = await call_next(request)

    # 처리 시간 계산
    process_time = time.time() - start_time

    response.headers["X-Process-Time"] = str(process_time)
    response.headers["X-Request-ID"] = request_id

    log_response(request_id=request_id, status_code=response.status_code, response_time=process_time)

    # Prometheus 메트릭 기록
    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=endpoint_label(request),
        status=response.status_code
    ).inc()

    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=endpoint_label(request)
    ).observe(process_time)

    return response


# 애플리케이션 예외 처리기
@app.exception_handler(InferenceBenchException)
async def inference_bench_exception_handler(request: Request, exc: InferenceBenchException):
    """
    애플리케이션 예외를 상태 코드와 에러 응답으로 변환

    재시도 가능한 예외에 대기 시간이 있으면 Retry-After 헤더를 추가합니다.
    """
    status_code = get_http_status_code(exc)
    request_id = getattr(request.state, "request_id", None)

    ERROR_COUNT.labels(error_code=exc.error_code or "UNKNOWN_ERROR", retryable=str(exc.retryable)).inc()

    if status_code >= 500:
        log_error(
            error_type=exc.error_code or type(exc).__name__,
            error_message=exc.message,
            request_id=request_id,
            path=request.url.path
        )
    else:
        logger.warning(f"요청 거부 ({status_code}): {exc.message}")

    headers = {}
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)

    return JSONResponse(
        status_code=status_code,
        content=format_error_response(exc),
        headers=headers
    )


# 전역 예외 처리기
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    처리되지 않은 예외를 캐치하고 적절한 에러 응답 반환
    """
    logger.error(
        f"처리되지 않은 예외 발생: {exc}",
        exc_info=True,
        extra={
            "request_method": request.method,
            "request_url": str(request.url),
            "client_host": request.client.host if request.client else None
        }
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": "내부 서버 오류가 발생했습니다.",
            "type": "internal_server_error"
        }
    )


# API 라우터 등록
app.include_router(api_router, prefix=settings.API_PREFIX)


# 루트 엔드포인트
@app.get("/", response_model=Dict[str, Any])
async def root():
    """
    API 루트 엔드포인트
    서버 상태 및 기본 정보 반환
    """
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": f"{settings.API_PREFIX}/docs",
        "health": "/health"
    }


# 헬스체크 엔드포인트
@app.get("/health")
async def health_check():
    """
    헬스체크 엔드포인트
    데이터베이스 연결을 확인하고, 실패 시 503을 반환합니다.
    """
    timestamp = time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    except Exception as e:
        logger.error(f"헬스체크 데이터베이스 연결 실패: {str(e)}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": "unavailable", "timestamp": timestamp},
            headers={"Retry-After": str(settings.DATABASE_RETRY_AFTER)}
        )

    return {"status": "healthy", "database": "ok", "timestamp": timestamp}


# Prometheus 메트릭 엔드포인트
@app.get("/metrics")
async def metrics():
    """
    Prometheus 메트릭 엔드포인트
    모니터링 시스템에서 사용
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


if __name__ == "__main__":
    import uvicorn

    # 개발 서버 실행
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
