# inference-bench/backend/app/api/v1/performance.py
"""
그룹 성능 API 엔드포인트

모델별 최고 하드웨어 플랫폼과 최고 구성 순위를 제공합니다.
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import grouped_performance_query, with_request_timeout
from app.db.session import get_db
from app.schemas.performance import GroupedPerformanceResponse
from app.services.performance_service import GroupedPerformanceQuery, performance_service
from app.utils.exceptions import InferenceBenchException
from app.utils.logger import logger

# API 라우터 생성
router = APIRouter(
    responses={
        400: {"description": "Invalid query parameter"},
        503: {"description": "Store temporarily unavailable"},
        504: {"description": "Aggregation timed out"}
    }
)


@router.get("/grouped", response_model=GroupedPerformanceResponse)
async def get_grouped_performance(
    query: GroupedPerformanceQuery = Depends(grouped_performance_query),
    db: AsyncSession = Depends(get_db)
) -> GroupedPerformanceResponse:
    """
    그룹 성능 조회

    모델마다 정렬 기준에 따라 하드웨어 플랫폼별 최고 구성과
    전체 최고 플랫폼을 선택하고, 필터 통과 현황을 함께 반환합니다.

    Args:
        query: 검증된 조회 조건
        db: 데이터베이스 세션

    Returns:
        GroupedPerformanceResponse: 순위가 매겨진 모델 목록
    """
    try:
        response = await with_request_timeout(
            performance_service.get_grouped_performance(db, query),
            name="그룹 성능 집계"
        )

        logger.info(
            f"그룹 성능 조회: benchmark={response.benchmark_used}, "
            f"sort={response.sort_by.value}/{response.sort_direction.value}, 모델 {response.total_count}개"
        )
        return response

    except InferenceBenchException:
        raise
    except Exception as e:
        logger.error(f"그룹 성능 조회 중 오류: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="그룹 성능 조회 중 오류가 발생했습니다."
        )
