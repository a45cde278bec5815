# inference-bench/backend/app/api/v1/uploads.py
"""
업로드 API 엔드포인트

실험 결과(TestRun + 메트릭)와 모델 변형 품질 점수를 기록합니다.
"""

from fastapi import APIRouter, HTTPException, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import get_db
from app.schemas.upload import BenchmarkUpload, ExperimentUpload, UploadResponse
from app.services.upload_service import upload_service
from app.utils.exceptions import ExceptionHandler, InferenceBenchException
from app.utils.logger import logger

# API 라우터 생성
router = APIRouter(
    responses={
        400: {"description": "Inconsistent upload data"},
        409: {"description": "Concurrent upload conflict"},
        500: {"description": "Internal server error"}
    }
)


@router.post("/experiments", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_experiment(
    data: ExperimentUpload,
    db: AsyncSession = Depends(get_db)
) -> UploadResponse:
    """
    실험 결과 업로드

    Args:
        data: 실험 데이터
        db: 데이터베이스 세션

    Returns:
        UploadResponse: 생성된 TestRun 정보
    """
    try:
        return await upload_service.upload_experiment(db, data)

    except InferenceBenchException:
        raise
    except SQLAlchemyError as e:
        raise ExceptionHandler.handle_database_errors(e, retry_after=settings.DATABASE_RETRY_AFTER)
    except Exception as e:
        logger.error(f"실험 업로드 중 오류: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="실험 업로드 중 오류가 발생했습니다."
        )


@router.post("/benchmarks", response_model=UploadResponse)
async def upload_benchmarks(
    data: BenchmarkUpload,
    db: AsyncSession = Depends(get_db)
) -> UploadResponse:
    """
    품질 점수 업로드

    같은 카테고리/벤치마크의 기존 점수는 교체됩니다.

    Args:
        data: 모델 변형 식별 정보와 점수
        db: 데이터베이스 세션

    Returns:
        UploadResponse: 대상 모델 변형 정보
    """
    try:
        return await upload_service.upload_benchmarks(db, data)

    except InferenceBenchException:
        raise
    except SQLAlchemyError as e:
        raise ExceptionHandler.handle_database_errors(e, retry_after=settings.DATABASE_RETRY_AFTER)
    except Exception as e:
        logger.error(f"품질 점수 업로드 중 오류: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="품질 점수 업로드 중 오류가 발생했습니다."
        )
