# inference-bench/backend/app/services/filter_pipeline.py
"""
필터 파이프라인

결합된 실행 레코드에 품질/속도/메모리/하드웨어 카테고리 조건을
적용하고, 필터 전 전체 집합 대비 통과한 플랫폼/양자화 수를 집계합니다.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from app.schemas.performance import HardwareCategory
from app.services.variant_aggregator import AggregationResult, ModelUniverse, RunRecord


@dataclass(frozen=True)
class FilterCriteria:
    """필터 조건 (None 또는 빈 집합은 조건 없음)"""
    min_quality: Optional[float] = None
    min_speed: Optional[float] = None
    max_memory_gb: Optional[float] = None
    hardware_categories: FrozenSet[HardwareCategory] = frozenset()

    def accepts(self, record: RunRecord) -> bool:
        """
        레코드가 모든 조건을 만족하는지 확인

        알 수 없는 품질/속도는 양수 최솟값 조건을 만족하지 못하고,
        알 수 없는 메모리는 최대 메모리 조건에 걸리지 않습니다.
        """
        if self.min_quality is not None and self.min_quality > 0:
            if record.quality_score is None or record.quality_score < self.min_quality:
                return False

        if self.min_speed is not None and self.min_speed > 0:
            if record.tokens_per_second is None or record.tokens_per_second < self.min_speed:
                return False

        if self.max_memory_gb is not None and record.memory_gb is not None:
            if record.memory_gb > self.max_memory_gb:
                return False

        if self.hardware_categories and record.hardware_category not in self.hardware_categories:
            return False

        return True


@dataclass
class TransparencyCounts:
    """전체 대비 조건을 통과한 플랫폼/양자화 수"""
    qualifying_platforms: int
    total_hardware_platforms: int
    qualifying_quantizations: int
    total_quantizations: int


@dataclass
class FilterResult:
    """필터 결과 (레코드가 남은 모델만 counts에 포함)"""
    records: List[RunRecord]
    counts: Dict[str, TransparencyCounts] = field(default_factory=dict)

    @property
    def model_names(self) -> List[str]:
        return sorted(self.counts)


def apply_filters(records: Iterable[RunRecord], criteria: FilterCriteria) -> List[RunRecord]:
    return [record for record in records if criteria.accepts(record)]


def run_filter_pipeline(aggregation: AggregationResult, criteria: FilterCriteria) -> FilterResult:
    """
    집계 결과에 필터 적용

    Args:
        aggregation: 변형 집계 결과 (필터 전 전체 집합 포함)
        criteria: 필터 조건

    Returns:
        FilterResult: 통과한 레코드와 모델별 투명성 카운트
    """
    survivors = apply_filters(aggregation.records, criteria)

    platforms: Dict[str, Set[str]] = {}
    quantizations: Dict[str, Set[str]] = {}
    for record in survivors:
        platforms.setdefault(record.model_name, set()).add(record.hardware)
        quantizations.setdefault(record.model_name, set()).add(record.quantization)

    counts: Dict[str, TransparencyCounts] = {}
    for model_name, qualifying in platforms.items():
        universe = aggregation.universes.get(model_name) or ModelUniverse(model_name=model_name)
        counts[model_name] = TransparencyCounts(
            qualifying_platforms=len(qualifying),
            total_hardware_platforms=universe.total_hardware_platforms,
            qualifying_quantizations=len(quantizations[model_name]),
            total_quantizations=universe.total_quantizations,
        )

    return FilterResult(records=survivors, counts=counts)
