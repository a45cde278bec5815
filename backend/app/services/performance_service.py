# inference-bench/backend/app/services/performance_service.py
"""
그룹 성능 집계 서비스

저장소 스냅샷을 읽은 뒤 변형 집계 -> 필터 -> 순위 단계를 거쳐
모델 -> 최고 하드웨어 플랫폼 -> 최고 구성 계층 응답을 만듭니다.
저장소 조회 이후의 모든 단계는 동기 순수 함수이며 요청 간
상태를 공유하지 않습니다.
"""

import time
from dataclasses import dataclass
from typing import Iterable, List, Optional

from prometheus_client import Histogram
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.schemas.performance import (
    BestConfig,
    GroupedModelPerformance,
    GroupedPerformanceResponse,
    HardwarePlatformResult,
    NO_BENCHMARK,
    SortBy,
    SortDirection,
)
from app.services.filter_pipeline import FilterCriteria, run_filter_pipeline
from app.services.performance_store import (
    RunSnapshot,
    VariantQuality,
    fetch_run_snapshots,
    fetch_variant_qualities,
)
from app.services.ranking import PlatformSelection, default_direction, rank_models
from app.services.variant_aggregator import RunRecord, VariantAggregator
from app.utils.logger import logger
from app.utils.validators import PerformanceQueryValidator


AGGREGATION_DURATION = Histogram(
    'inferencebench_aggregation_duration_seconds',
    'Grouped performance aggregation duration in seconds (excluding store reads)',
    ['benchmark']
)


@dataclass(frozen=True)
class GroupedPerformanceQuery:
    """검증이 끝난 그룹 성능 조회 조건"""
    benchmark: str
    requested_benchmark: str
    criteria: FilterCriteria
    sort_by: SortBy
    sort_direction: SortDirection


def to_best_config(record: RunRecord) -> BestConfig:
    return BestConfig(
        id=record.test_run_id,
        quantization=record.quantization,
        lora_adapter=record.lora_adapter,
        quality_score=record.quality_score,
        tokens_per_second=record.tokens_per_second,
        memory_gb=record.memory_gb,
        tokens_per_kwh=record.tokens_per_kwh,
        gpu_power_watts=record.gpu_power_watts,
        backend=record.backend,
        hardware=record.hardware,
        hardware_category=record.hardware_category,
        concurrent_requests=record.concurrent_requests,
        max_context_length=record.max_context_length,
        load_pattern=record.load_pattern,
        dataset_name=record.dataset_name,
        gpu_power_limit_watts=record.gpu_power_limit_watts,
        timestamp=record.timestamp,
    )


def to_platform_result(selection: PlatformSelection) -> HardwarePlatformResult:
    return HardwarePlatformResult(
        hardware=selection.hardware,
        hardware_category=selection.hardware_category,
        best_config=to_best_config(selection.best_config),
        total_configs=selection.total_configs,
    )


class PerformanceService:
    """
    그룹 성능 집계 서비스

    모델별로 하드웨어 플랫폼을 묶고 정렬 기준에 따라
    플랫폼별 최고 구성과 모델별 최고 플랫폼을 선택합니다.
    """

    def build_query(
        self,
        benchmark: Optional[str] = None,
        min_quality: Optional[float] = None,
        min_speed: Optional[float] = None,
        max_memory_gb: Optional[float] = None,
        hardware_categories: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_direction: Optional[str] = None
    ) -> GroupedPerformanceQuery:
        """
        요청 파라미터 검증 및 조회 조건 생성

        저장소를 읽기 전에 호출되어 잘못된 파라미터를 즉시 거부합니다.

        Raises:
            ValidationError: 파라미터가 유효하지 않은 경우
        """
        validator = PerformanceQueryValidator
        requested = benchmark if benchmark is not None else settings.DEFAULT_BENCHMARK
        resolved = validator.resolve_benchmark(requested, default=settings.DEFAULT_BENCHMARK)

        if resolved == NO_BENCHMARK and requested.lower() != NO_BENCHMARK:
            logger.warning(f"알 수 없는 벤치마크 '{requested}', 품질 점수 없이 집계합니다.")

        criteria = FilterCriteria(
            min_quality=validator.validate_non_negative(min_quality, "min_quality"),
            min_speed=validator.validate_non_negative(min_speed, "min_speed"),
            max_memory_gb=validator.validate_non_negative(max_memory_gb, "max_memory_gb"),
            hardware_categories=validator.parse_hardware_categories(hardware_categories),
        )

        resolved_sort, direction = validator.validate_sort(sort_by, sort_direction)

        return GroupedPerformanceQuery(
            benchmark=resolved,
            requested_benchmark=requested,
            criteria=criteria,
            sort_by=resolved_sort,
            sort_direction=direction or default_direction(resolved_sort),
        )

    def compute_grouped(
        self,
        runs: Iterable[RunSnapshot],
        qualities: Iterable[VariantQuality],
        query: GroupedPerformanceQuery
    ) -> GroupedPerformanceResponse:
        """
        스냅샷으로부터 그룹 성능 응답 계산

        Args:
            runs: TestRun 스냅샷
            qualities: 변형별 품질 점수
            query: 검증된 조회 조건

        Returns:
            GroupedPerformanceResponse: 순위가 매겨진 모델 목록
        """
        aggregation = VariantAggregator(qualities).aggregate(runs)
        filtered = run_filter_pipeline(aggregation, query.criteria)
        rankings = rank_models(filtered.records, query.sort_by, query.sort_direction, filtered.counts)

        models: List[GroupedModelPerformance] = []
        for ranking in rankings:
            counts = ranking.counts
            models.append(GroupedModelPerformance(
                model_name=ranking.model_name,
                qualifying_platforms=counts.qualifying_platforms if counts else len(ranking.platforms),
                total_hardware_platforms=counts.total_hardware_platforms if counts else len(ranking.platforms),
                qualifying_quantizations=counts.qualifying_quantizations if counts else 0,
                total_quantizations=counts.total_quantizations if counts else 0,
                best_hardware=to_platform_result(ranking.best_platform),
                all_hardware_platforms=[to_platform_result(p) for p in ranking.platforms],
            ))

        logger.debug(
            f"그룹 성능 집계: 실행 {len(aggregation.records)}건, "
            f"필터 통과 {len(filtered.records)}건, 모델 {len(models)}개"
        )

        return GroupedPerformanceResponse(
            models=models,
            total_count=len(models),
            benchmark_used=query.benchmark,
            sort_by=query.sort_by,
            sort_direction=query.sort_direction,
        )

    async def get_grouped_performance(
        self,
        db: AsyncSession,
        query: GroupedPerformanceQuery
    ) -> GroupedPerformanceResponse:
        """
        저장소를 읽고 그룹 성능 응답 생성

        Args:
            db: 데이터베이스 세션
            query: 검증된 조회 조건

        Returns:
            GroupedPerformanceResponse: 그룹 성능 응답
        """
        runs = await fetch_run_snapshots(db)
        qualities = await fetch_variant_qualities(db, query.benchmark)

        start_time = time.perf_counter()
        response = self.compute_grouped(runs, qualities, query)
        AGGREGATION_DURATION.labels(benchmark=query.benchmark).observe(time.perf_counter() - start_time)

        return response


# 전역 서비스 인스턴스
performance_service = PerformanceService()
