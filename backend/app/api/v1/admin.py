# inference-bench/backend/app/api/v1/admin.py
"""
관리 API 엔드포인트
"""

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.session import get_db
from app.schemas.admin import MergeReportResponse
from app.services.quantization import merge_duplicate_variants
from app.utils.exceptions import ExceptionHandler, InferenceBenchException, QuantizationMergeError
from app.utils.logger import logger

# API 라우터 생성
router = APIRouter(
    responses={
        500: {"description": "Merge failed and was rolled back"},
        503: {"description": "Store temporarily unavailable"}
    }
)


@router.post("/merge-quantizations", response_model=MergeReportResponse)
async def merge_quantizations(db: AsyncSession = Depends(get_db)) -> MergeReportResponse:
    """
    접미사 중복 양자화 변형 병합

    "-GGUF" 같은 컨테이너 접미사가 붙은 모델 변형을 정규 변형으로
    합치고 TestRun 라벨을 정규화합니다. 전체가 하나의 트랜잭션이며
    다시 실행하면 아무것도 변경하지 않습니다.

    Returns:
        MergeReportResponse: 병합 결과
    """
    try:
        report = await merge_duplicate_variants(db)

        if report.changed:
            logger.info(
                f"양자화 병합 완료: 변형 {report.merged_variants}개, "
                f"TestRun {report.renamed_test_runs}건 정규화"
            )
        else:
            logger.info("양자화 병합: 변경 사항 없음")

        return MergeReportResponse(**report.to_dict())

    except InferenceBenchException:
        raise
    except SQLAlchemyError as e:
        error = ExceptionHandler.handle_database_errors(e, retry_after=settings.DATABASE_RETRY_AFTER)
        if error.retryable:
            raise error
        raise QuantizationMergeError(
            "Quantization merge failed and was rolled back",
            details={"original_error": str(e)}
        )
    except Exception as e:
        logger.error(f"양자화 병합 중 오류: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="양자화 병합 중 오류가 발생했습니다."
        )
