# inference-bench/backend/app/services/configuration_service.py
"""
구성(TestRun) 조회 및 비교 서비스
"""

import uuid
from typing import Dict, List, Optional

import numpy as np
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.model_variant import ModelVariant
from app.models.test_run import TestRun
from app.schemas.configuration import (
    CategoryComparison,
    CategoryScore,
    ConfigurationComparison,
    ConfigurationDetail,
    ConfigurationListItem,
    ConfigurationSummary,
    PerformanceSummary,
    SystemInfo,
)
from app.services.analysis_service import pick_variants_by_quantization
from app.services.hardware_classifier import classify_hardware
from app.services.performance_store import (
    RunSnapshot,
    fetch_model_variants,
    fetch_run_snapshots,
    fetch_test_run,
    fetch_variant_qualities,
    snapshot_run,
    tokens_per_kwh,
    TOKENS_PER_SECOND,
    MEMORY_USAGE_GB,
    GPU_POWER_WATTS,
    TTFT_P95_MS,
    TPOT_P95_MS,
    ITL_P95_MS,
    MODEL_LOADING_TIME,
    PROMPT_PROCESSING_SPEED,
)
from app.services.quantization import canonicalize_quantization
from app.services.variant_aggregator import VariantAggregator
from app.utils.exceptions import ResourceNotFoundError


def category_scores(variant: Optional[ModelVariant]) -> List[CategoryScore]:
    """
    변형의 품질 점수를 카테고리 목록으로 변환

    MMLU는 카테고리마다 "MMLU - {category}", 나머지 계열은 한 항목씩 만듭니다.
    """
    if variant is None:
        return []

    categories = [
        CategoryScore(
            name=f"MMLU - {score.category}",
            score=score.score,
            total_questions=score.total_questions,
        )
        for score in sorted(variant.mmlu_scores, key=lambda s: s.category)
    ]

    if variant.gsm8k_score is not None:
        categories.append(CategoryScore(
            name="GSM8K",
            score=variant.gsm8k_score.accuracy * 100,
            total_questions=variant.gsm8k_score.total_problems,
        ))
    if variant.humaneval_score is not None:
        categories.append(CategoryScore(name="HumanEval", score=variant.humaneval_score.pass_at_1))
    if variant.hellaswag_score is not None:
        categories.append(CategoryScore(
            name="HellaSwag",
            score=variant.hellaswag_score.accuracy,
            total_questions=variant.hellaswag_score.total_questions,
        ))
    if variant.truthfulqa_score is not None:
        categories.append(CategoryScore(
            name="TruthfulQA",
            score=variant.truthfulqa_score.truthful_score,
            total_questions=variant.truthfulqa_score.total_questions,
        ))
    for generic in sorted(variant.generic_scores, key=lambda s: s.benchmark_name):
        categories.append(CategoryScore(name=generic.benchmark_name, score=generic.overall_score))

    return categories


def mmlu_overall(variant: Optional[ModelVariant]) -> Optional[float]:
    if variant is None or not variant.mmlu_scores:
        return None
    return float(np.mean([score.score for score in variant.mmlu_scores]))


def performance_summary(run: RunSnapshot) -> PerformanceSummary:
    speed = run.metric(TOKENS_PER_SECOND)
    power = run.metric(GPU_POWER_WATTS)
    return PerformanceSummary(
        tokens_per_second=speed,
        memory_gb=run.metric(MEMORY_USAGE_GB),
        gpu_power_watts=power,
        tokens_per_kwh=tokens_per_kwh(speed, power),
        ttft_p95_ms=run.metric(TTFT_P95_MS),
        tpot_p95_ms=run.metric(TPOT_P95_MS),
        itl_p95_ms=run.metric(ITL_P95_MS),
        model_loading_time=run.metric(MODEL_LOADING_TIME),
        prompt_processing_speed=run.metric(PROMPT_PROCESSING_SPEED),
    )


class ConfigurationService:
    """구성 조회 및 비교 서비스"""

    async def list_configurations(self, db: AsyncSession) -> List[ConfigurationListItem]:
        """
        완료된 구성 목록 조회 (최신순)

        Returns:
            List[ConfigurationListItem]: MMLU 전체 점수가 포함된 구성 목록
        """
        runs = await fetch_run_snapshots(db)
        aggregator = VariantAggregator(await fetch_variant_qualities(db, "mmlu"))

        items = []
        for run in runs:
            quantization = canonicalize_quantization(run.quantization)
            items.append(ConfigurationListItem(
                id=run.id,
                model_name=run.model_name,
                quantization=quantization,
                lora_adapter=run.lora_adapter,
                backend=run.backend,
                hardware=run.hardware_label,
                hardware_category=classify_hardware(run.gpu_model, run.cpu_arch, run.cpu_model),
                overall_score=aggregator.lookup((run.model_name, quantization, run.lora_adapter)),
                tokens_per_second=run.metric(TOKENS_PER_SECOND),
                memory_gb=run.metric(MEMORY_USAGE_GB),
                timestamp=run.timestamp,
            ))

        items.sort(key=lambda item: (item.timestamp, item.id), reverse=True)
        return items

    async def _load(self, db: AsyncSession, config_id: str):
        """구성과 대표 변형 조회"""
        try:
            run_id = uuid.UUID(str(config_id))
        except ValueError:
            run_id = None

        run: Optional[TestRun] = await fetch_test_run(db, run_id) if run_id else None
        if run is None:
            raise ResourceNotFoundError(
                f"Configuration not found: {config_id}",
                resource_type="configuration",
                resource_id=str(config_id)
            )

        snapshot = snapshot_run(run)
        quantization = canonicalize_quantization(snapshot.quantization)
        variants = pick_variants_by_quantization(
            await fetch_model_variants(db, snapshot.model_name, snapshot.lora_adapter)
        )
        return run, snapshot, variants.get(quantization)

    @staticmethod
    def _summary(snapshot: RunSnapshot, variant: Optional[ModelVariant]) -> ConfigurationSummary:
        return ConfigurationSummary(
            id=snapshot.id,
            model_name=snapshot.model_name,
            quantization=canonicalize_quantization(snapshot.quantization),
            lora_adapter=snapshot.lora_adapter,
            backend=snapshot.backend,
            backend_version=snapshot.backend_version,
            hardware=snapshot.hardware_label,
            hardware_category=classify_hardware(snapshot.gpu_model, snapshot.cpu_arch, snapshot.cpu_model),
            overall_score=mmlu_overall(variant),
            concurrent_requests=snapshot.concurrent_requests,
            max_context_length=snapshot.max_context_length,
            load_pattern=snapshot.load_pattern,
            dataset_name=snapshot.dataset_name,
            gpu_power_limit_watts=snapshot.gpu_power_limit_watts,
            status=snapshot.status,
            timestamp=snapshot.timestamp,
            performance=performance_summary(snapshot),
        )

    async def get_detail(self, db: AsyncSession, config_id: str) -> ConfigurationDetail:
        """
        구성 상세 조회

        Raises:
            ResourceNotFoundError: 구성 ID가 없는 경우
        """
        run, snapshot, variant = await self._load(db, config_id)
        hardware = run.hardware_profile

        summary = self._summary(snapshot, variant)
        summary.notes = run.notes

        return ConfigurationDetail(
            config=summary,
            categories=category_scores(variant),
            system_info=SystemInfo(
                gpu_model=hardware.gpu_model,
                gpu_memory_gb=hardware.gpu_memory_gb,
                cpu_model=hardware.cpu_model,
                cpu_arch=hardware.cpu_arch,
                ram_gb=hardware.ram_gb,
                ram_type=hardware.ram_type,
                virtualization_type=hardware.virtualization_type,
                optimizations=list(hardware.optimizations or []),
            ),
        )

    async def compare(self, db: AsyncSession, config_a: str, config_b: str) -> ConfigurationComparison:
        """
        두 구성의 품질 카테고리와 성능 지표 비교

        Raises:
            ResourceNotFoundError: 구성 ID 중 하나라도 없는 경우
        """
        _, snapshot_a, variant_a = await self._load(db, config_a)
        _, snapshot_b, variant_b = await self._load(db, config_b)

        scores_a: Dict[str, float] = {c.name: c.score for c in category_scores(variant_a)}
        scores_b: Dict[str, float] = {c.name: c.score for c in category_scores(variant_b)}

        categories = []
        for name in sorted(set(scores_a) | set(scores_b)):
            score_a = scores_a.get(name)
            score_b = scores_b.get(name)
            categories.append(CategoryComparison(
                name=name,
                score_a=score_a,
                score_b=score_b,
                difference=(score_b - score_a) if score_a is not None and score_b is not None else None,
            ))

        return ConfigurationComparison(
            config_a=self._summary(snapshot_a, variant_a),
            config_b=self._summary(snapshot_b, variant_b),
            categories=categories,
        )


# 전역 서비스 인스턴스
configuration_service = ConfigurationService()
