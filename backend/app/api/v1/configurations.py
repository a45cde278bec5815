# inference-bench/backend/app/api/v1/configurations.py
"""
구성 조회 API 엔드포인트

개별 테스트 실행(구성) 목록, 상세, 두 구성 비교와
모델+하드웨어 분석을 제공합니다.
"""

from typing import List

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import with_request_timeout
from app.db.session import get_db
from app.schemas.analysis import ModelHardwareAnalysis
from app.schemas.configuration import (
    ConfigurationComparison,
    ConfigurationDetail,
    ConfigurationListItem,
)
from app.services.analysis_service import analysis_service
from app.services.configuration_service import configuration_service
from app.utils.exceptions import InferenceBenchException
from app.utils.logger import logger

# API 라우터 생성
router = APIRouter(
    responses={
        404: {"description": "Configuration not found"},
        500: {"description": "Internal server error"}
    }
)


@router.get("/configurations", response_model=List[ConfigurationListItem])
async def list_configurations(db: AsyncSession = Depends(get_db)) -> List[ConfigurationListItem]:
    """
    완료된 구성 목록 조회 (최신순)

    Args:
        db: 데이터베이스 세션

    Returns:
        List[ConfigurationListItem]: 구성 목록
    """
    try:
        return await with_request_timeout(
            configuration_service.list_configurations(db),
            name="구성 목록 조회"
        )

    except InferenceBenchException:
        raise
    except Exception as e:
        logger.error(f"구성 목록 조회 중 오류: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="구성 목록 조회 중 오류가 발생했습니다."
        )


@router.get("/configurations/{config_id}", response_model=ConfigurationDetail)
async def get_configuration(
    config_id: str,
    db: AsyncSession = Depends(get_db)
) -> ConfigurationDetail:
    """
    구성 상세 조회

    Args:
        config_id: 구성(TestRun) ID
        db: 데이터베이스 세션

    Returns:
        ConfigurationDetail: 구성 요약, 품질 카테고리 점수, 시스템 정보
    """
    try:
        return await with_request_timeout(
            configuration_service.get_detail(db, config_id),
            name="구성 상세 조회"
        )

    except InferenceBenchException:
        raise
    except Exception as e:
        logger.error(f"구성 상세 조회 중 오류: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="구성 상세 조회 중 오류가 발생했습니다."
        )


@router.get("/comparison", response_model=ConfigurationComparison)
async def compare_configurations(
    config_a: str = Query(..., description="비교할 첫 번째 구성 ID"),
    config_b: str = Query(..., description="비교할 두 번째 구성 ID"),
    db: AsyncSession = Depends(get_db)
) -> ConfigurationComparison:
    """
    두 구성 비교

    카테고리별 점수 차이는 config_b - config_a 입니다.
    """
    try:
        return await with_request_timeout(
            configuration_service.compare(db, config_a, config_b),
            name="구성 비교"
        )

    except InferenceBenchException:
        raise
    except Exception as e:
        logger.error(f"구성 비교 중 오류: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="구성 비교 중 오류가 발생했습니다."
        )


@router.get("/analysis/{model_name}/{gpu_model}", response_model=ModelHardwareAnalysis)
async def analyze_model_hardware(
    model_name: str,
    gpu_model: str,
    lora: str = Query(default="", description="LoRA 어댑터 (빈 값은 기본 모델)"),
    db: AsyncSession = Depends(get_db)
) -> ModelHardwareAnalysis:
    """
    모델+하드웨어 분석

    백엔드/양자화별 최고 지표와 통합 색상 범위가 적용된
    히트맵 데이터를 반환합니다.

    Args:
        model_name: 모델 이름
        gpu_model: GPU 모델
        lora: LoRA 어댑터
        db: 데이터베이스 세션

    Returns:
        ModelHardwareAnalysis: 분석 결과
    """
    try:
        return await with_request_timeout(
            analysis_service.analyze(db, model_name, gpu_model, lora_adapter=lora),
            name="모델+하드웨어 분석"
        )

    except InferenceBenchException:
        raise
    except Exception as e:
        logger.error(f"모델+하드웨어 분석 중 오류: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail="모델+하드웨어 분석 중 오류가 발생했습니다."
        )
