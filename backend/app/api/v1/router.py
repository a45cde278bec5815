# inference-bench/backend/app/api/v1/router.py
"""
API 라우터 통합 모듈

모든 API 엔드포인트를 하나의 라우터로 통합합니다.
"""

from fastapi import APIRouter

from app.api.v1 import performance, configurations, uploads, admin

# 메인 API 라우터 생성
api_router = APIRouter()

# 각 모듈의 라우터 포함
api_router.include_router(
    performance.router,
    prefix="/performance",
    tags=["performance"]
)

api_router.include_router(
    configurations.router,
    tags=["configurations"]
)

api_router.include_router(
    uploads.router,
    tags=["uploads"]
)

api_router.include_router(
    admin.router,
    prefix="/admin",
    tags=["admin"]
)
