# inference-bench/backend/app/services/performance_store.py
"""
성능/품질 저장소 조회 인터페이스

집계 엔진이 사용하는 읽기 전용 조회 함수들입니다.
조회 결과는 요청 단위의 불변 스냅샷(RunSnapshot, VariantQuality)으로
변환되어 이후 단계는 데이터베이스에 접근하지 않습니다.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.hardware import HardwareProfile
from app.models.model_variant import ModelVariant
from app.models.quality_score import (
    MMLUScore,
    GSM8KScore,
    HumanEvalScore,
    HellaSwagScore,
    TruthfulQAScore,
)
from app.models.test_run import TestRun
from app.schemas.performance import NO_BENCHMARK


# 잘 알려진 성능 메트릭 이름
TOKENS_PER_SECOND = "tokens_per_second"
MEMORY_USAGE_GB = "memory_usage_gb"
GPU_POWER_WATTS = "gpu_power_watts"
TTFT_P95_MS = "ttft_p95_ms"
TPOT_P95_MS = "tpot_p95_ms"
ITL_P95_MS = "itl_p95_ms"
MODEL_LOADING_TIME = "model_loading_time"
PROMPT_PROCESSING_SPEED = "prompt_processing_speed"

# 초당 토큰 / 와트 = 줄당 토큰
JOULES_PER_KWH = 3_600_000


def tokens_per_kwh(tokens_per_second: Optional[float], power_watts: Optional[float]) -> Optional[float]:
    """kWh당 토큰 수 (속도나 전력이 없거나 전력이 0 이하이면 None)"""
    if tokens_per_second is None or power_watts is None or power_watts <= 0:
        return None
    return tokens_per_second * JOULES_PER_KWH / power_watts


@dataclass(frozen=True)
class RunSnapshot:
    """TestRun과 하드웨어 프로파일, 메트릭을 합친 읽기 전용 스냅샷"""
    id: str
    model_name: str
    quantization: str
    lora_adapter: str
    backend: str
    gpu_model: str
    cpu_model: str
    cpu_arch: str
    timestamp: Optional[datetime] = None
    backend_version: Optional[str] = None
    gpu_memory_gb: Optional[float] = None
    concurrent_requests: Optional[int] = None
    max_context_length: Optional[int] = None
    load_pattern: Optional[str] = None
    dataset_name: Optional[str] = None
    gpu_power_limit_watts: Optional[int] = None
    status: str = "completed"
    metrics: Dict[str, float] = field(default_factory=dict)

    @property
    def hardware_label(self) -> str:
        return f"{self.gpu_model} / {self.cpu_model}"

    def metric(self, name: str) -> Optional[float]:
        return self.metrics.get(name)


@dataclass(frozen=True)
class VariantQuality:
    """모델 변형의 선택된 벤치마크 품질 점수"""
    model_name: str
    quantization: str
    lora_adapter: str
    score: Optional[float]


def snapshot_run(run: TestRun) -> RunSnapshot:
    """
    ORM TestRun을 스냅샷으로 변환

    hardware_profile과 metrics가 미리 로드되어 있어야 합니다.
    같은 이름의 메트릭이 여러 개면 가장 나중에 저장된 값을 사용합니다.
    """
    hardware = run.hardware_profile
    metrics = {
        metric.metric_name: metric.value
        for metric in sorted(run.metrics, key=lambda m: m.id or 0)
    }

    return RunSnapshot(
        id=str(run.id),
        model_name=run.model_name,
        quantization=run.quantization,
        lora_adapter=run.lora_adapter or "",
        backend=run.backend,
        backend_version=run.backend_version,
        gpu_model=hardware.gpu_model if hardware else "",
        gpu_memory_gb=hardware.gpu_memory_gb if hardware else None,
        cpu_model=hardware.cpu_model if hardware else "",
        cpu_arch=hardware.cpu_arch if hardware else "",
        concurrent_requests=run.concurrent_requests,
        max_context_length=run.max_context_length,
        load_pattern=run.load_pattern,
        dataset_name=run.dataset_name,
        gpu_power_limit_watts=run.gpu_power_limit_watts,
        status=run.status,
        timestamp=run.timestamp,
        metrics=metrics,
    )


async def fetch_run_snapshots(
    db: AsyncSession,
    model_name: Optional[str] = None,
    gpu_model: Optional[str] = None,
    completed_only: bool = True
) -> List[RunSnapshot]:
    """
    TestRun 스냅샷 조회

    Args:
        db: 데이터베이스 세션
        model_name: 모델 이름 필터
        gpu_model: GPU 모델 필터
        completed_only: 완료된 실행만 조회할지 여부

    Returns:
        List[RunSnapshot]: 스냅샷 목록
    """
    query = (
        select(TestRun)
        .join(HardwareProfile, TestRun.hardware_profile_id == HardwareProfile.id)
        .options(selectinload(TestRun.metrics), selectinload(TestRun.hardware_profile))
    )

    if completed_only:
        query = query.where(TestRun.status == "completed")
    if model_name is not None:
        query = query.where(TestRun.model_name == model_name)
    if gpu_model is not None:
        query = query.where(HardwareProfile.gpu_model == gpu_model)

    result = await db.execute(query)
    return [snapshot_run(run) for run in result.scalars().all()]


async def fetch_test_run(db: AsyncSession, run_id) -> Optional[TestRun]:
    """하드웨어 프로파일과 메트릭을 포함한 TestRun 단건 조회"""
    result = await db.execute(
        select(TestRun)
        .where(TestRun.id == run_id)
        .options(selectinload(TestRun.metrics), selectinload(TestRun.hardware_profile))
    )
    return result.scalar_one_or_none()


def _quality_expression(benchmark: str):
    """벤치마크별 (점수 테이블, 변형당 품질 값 SQL 식)"""
    if benchmark == "mmlu":
        return MMLUScore, func.avg(MMLUScore.score)
    if benchmark == "gsm8k":
        return GSM8KScore, func.max(GSM8KScore.accuracy * 100)
    if benchmark == "humaneval":
        return HumanEvalScore, func.max(HumanEvalScore.pass_at_1)
    if benchmark == "hellaswag":
        return HellaSwagScore, func.max(HellaSwagScore.accuracy)
    if benchmark == "truthfulqa":
        return TruthfulQAScore, func.max(TruthfulQAScore.truthful_score)
    return None


async def fetch_variant_qualities(db: AsyncSession, benchmark: str) -> List[VariantQuality]:
    """
    모델 변형별 품질 점수 조회

    변형마다 한 행만 반환합니다. 점수가 없는 변형은 포함되지 않으며
    "none" 모드에서는 빈 목록을 반환합니다.

    Args:
        db: 데이터베이스 세션
        benchmark: 정규화된 벤치마크 이름

    Returns:
        List[VariantQuality]: 변형별 품질 점수
    """
    if benchmark == NO_BENCHMARK:
        return []

    expression = _quality_expression(benchmark)
    if expression is None:
        return []

    score_model, quality = expression
    result = await db.execute(
        select(
            ModelVariant.model_name,
            ModelVariant.quantization,
            ModelVariant.lora_adapter,
            quality.label("quality"),
        )
        .join(score_model, score_model.model_variant_id == ModelVariant.id)
        .group_by(
            ModelVariant.id,
            ModelVariant.model_name,
            ModelVariant.quantization,
            ModelVariant.lora_adapter,
        )
    )

    return [
        VariantQuality(
            model_name=row.model_name,
            quantization=row.quantization,
            lora_adapter=row.lora_adapter or "",
            score=float(row.quality) if row.quality is not None else None,
        )
        for row in result.all()
    ]


async def fetch_model_variants(
    db: AsyncSession,
    model_name: str,
    lora_adapter: Optional[str] = None
) -> List[ModelVariant]:
    """
    모델의 변형 목록을 모든 품질 점수와 함께 조회

    Args:
        db: 데이터베이스 세션
        model_name: 모델 이름
        lora_adapter: LoRA 어댑터 필터 (None이면 전체)

    Returns:
        List[ModelVariant]: 점수가 로드된 변형 목록
    """
    query = (
        select(ModelVariant)
        .where(ModelVariant.model_name == model_name)
        .options(
            selectinload(ModelVariant.mmlu_scores),
            selectinload(ModelVariant.gsm8k_score),
            selectinload(ModelVariant.humaneval_score),
            selectinload(ModelVariant.hellaswag_score),
            selectinload(ModelVariant.truthfulqa_score),
            selectinload(ModelVariant.generic_scores),
        )
        .order_by(ModelVariant.quantization)
    )
    if lora_adapter is not None:
        query = query.where(ModelVariant.lora_adapter == lora_adapter)

    result = await db.execute(query)
    return list(result.scalars().all())
