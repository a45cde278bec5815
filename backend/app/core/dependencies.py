# inference-bench/backend/app/core/dependencies.py
"""
의존성 주입 모듈

조회 파라미터 검증과 요청 제한 시간, 저장소 오류 변환 등
API 핸들러가 공통으로 사용하는 의존성들을 정의합니다.
"""

import asyncio
from typing import Awaitable, Optional, TypeVar

from fastapi import Query
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.services.performance_service import GroupedPerformanceQuery, performance_service
from app.utils.exceptions import ExceptionHandler, RequestTimeoutError
from app.utils.logger import logger

T = TypeVar("T")


async def grouped_performance_query(
    benchmark: Optional[str] = Query(
        default=None,
        description="품질 점수 벤치마크 (none, mmlu, gsm8k, humaneval, hellaswag, truthfulqa)"
    ),
    min_quality: Optional[float] = Query(default=None, description="최소 품질 점수"),
    min_speed: Optional[float] = Query(default=None, description="최소 초당 토큰 수"),
    max_memory_gb: Optional[float] = Query(default=None, description="최대 메모리 사용량 (GB)"),
    hardware_categories: Optional[str] = Query(
        default=None,
        description="콤마로 구분된 하드웨어 카테고리"
    ),
    sort_by: Optional[str] = Query(
        default=None,
        description="정렬 기준 (model_name, quality, speed, memory, efficiency)"
    ),
    sort_direction: Optional[str] = Query(default=None, description="정렬 방향 (asc, desc)")
) -> GroupedPerformanceQuery:
    """
    그룹 성능 조회 파라미터 의존성

    저장소를 읽기 전에 파라미터를 검증합니다.
    숫자 형식이 잘못된 값은 FastAPI가 422로 거부합니다.

    Raises:
        ValidationError: 파라미터 값이 유효하지 않은 경우
    """
    return performance_service.build_query(
        benchmark=benchmark,
        min_quality=min_quality,
        min_speed=min_speed,
        max_memory_gb=max_memory_gb,
        hardware_categories=hardware_categories,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )


async def with_request_timeout(
    operation: Awaitable[T],
    name: str,
    timeout: Optional[float] = None
) -> T:
    """
    조회 작업에 요청 제한 시간 적용

    제한 시간을 넘기면 진행 중인 작업을 취소하고 부분 결과는 버립니다.
    저장소 오류는 재시도 가능 여부가 표시된 예외로 변환합니다.

    Args:
        operation: 실행할 코루틴
        name: 로그용 작업 이름
        timeout: 제한 시간 (초, 기본값은 REQUEST_TIMEOUT_SECONDS)

    Returns:
        작업 결과

    Raises:
        RequestTimeoutError: 제한 시간 초과
        ServiceUnavailableError: 저장소 연결 실패 또는 커넥션 풀 고갈
    """
    limit = timeout or settings.REQUEST_TIMEOUT_SECONDS

    try:
        return await asyncio.wait_for(operation, timeout=limit)

    except asyncio.TimeoutError:
        logger.warning(f"{name} 처리 시간 초과 ({limit}초), 결과를 폐기합니다.")
        raise RequestTimeoutError(
            f"{name} did not complete within {limit} seconds",
            timeout_seconds=limit
        )

    except SQLAlchemyError as e:
        logger.error(f"{name} 저장소 오류: {str(e)}")
        raise ExceptionHandler.handle_database_errors(e, retry_after=settings.DATABASE_RETRY_AFTER)
