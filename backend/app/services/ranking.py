# inference-bench/backend/app/services/ranking.py
"""
순위 및 선택 엔진

1. 모델+하드웨어 플랫폼마다 정렬 기준으로 최고 구성을 고르고
2. 모델마다 최고 플랫폼을 고른 뒤
3. 모델 목록을 최고 플랫폼 값으로 정렬합니다.

동점은 최신 timestamp, 그 다음 TestRun ID 오름차순으로 결정합니다.
알 수 없는 값(None)은 정렬 방향과 관계없이 항상 마지막입니다.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union

from app.schemas.performance import HardwareCategory, SortBy, SortDirection
from app.services.filter_pipeline import TransparencyCounts
from app.services.variant_aggregator import RunRecord


# 정렬 방향 미지정 시 기본값
DEFAULT_SORT_DIRECTIONS: Dict[SortBy, SortDirection] = {
    SortBy.QUALITY: SortDirection.DESC,
    SortBy.SPEED: SortDirection.DESC,
    SortBy.EFFICIENCY: SortDirection.DESC,
    SortBy.MEMORY: SortDirection.ASC,
    SortBy.MODEL_NAME: SortDirection.ASC,
}

SortValue = Union[float, str, None]

_OLDEST = datetime.min


def default_direction(sort_by: SortBy) -> SortDirection:
    return DEFAULT_SORT_DIRECTIONS[sort_by]


def sort_value(record: RunRecord, sort_by: SortBy) -> SortValue:
    """정렬 기준에 해당하는 레코드 값 (없으면 None)"""
    if sort_by == SortBy.MODEL_NAME:
        return record.model_name
    if sort_by == SortBy.QUALITY:
        return record.quality_score
    if sort_by == SortBy.SPEED:
        return record.tokens_per_second
    if sort_by == SortBy.MEMORY:
        return record.memory_gb
    if sort_by == SortBy.EFFICIENCY:
        return record.tokens_per_kwh
    return None


def _timestamp_key(record: RunRecord) -> datetime:
    value = record.timestamp
    if value is None:
        return _OLDEST
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def order_records(
    records: Iterable[RunRecord],
    sort_by: SortBy,
    direction: SortDirection
) -> List[RunRecord]:
    """
    레코드를 우선순위 순으로 정렬

    안정 정렬을 역순으로 겹쳐 적용해 (값, 최신 timestamp, ID 오름차순)
    사전식 순서를 만듭니다. 값이 없는 레코드는 방향과 무관하게 뒤에 둡니다.

    Args:
        records: 실행 레코드
        sort_by: 정렬 기준
        direction: 정렬 방향

    Returns:
        List[RunRecord]: 첫 번째 원소가 최고 우선순위
    """
    ordered = sorted(records, key=lambda r: r.test_run_id)
    ordered.sort(key=_timestamp_key, reverse=True)

    known = [r for r in ordered if sort_value(r, sort_by) is not None]
    unknown = [r for r in ordered if sort_value(r, sort_by) is None]

    known.sort(key=lambda r: sort_value(r, sort_by), reverse=direction == SortDirection.DESC)
    return known + unknown


def select_best(
    records: Iterable[RunRecord],
    sort_by: SortBy,
    direction: SortDirection
) -> Optional[RunRecord]:
    ordered = order_records(records, sort_by, direction)
    return ordered[0] if ordered else None


@dataclass
class PlatformSelection:
    """하드웨어 플랫폼 하나의 최고 구성"""
    hardware: str
    hardware_category: HardwareCategory
    best_config: RunRecord
    total_configs: int


@dataclass
class ModelRanking:
    """모델 하나의 선택 결과"""
    model_name: str
    best_platform: PlatformSelection
    platforms: List[PlatformSelection]
    counts: Optional[TransparencyCounts] = None

    def sort_value(self, sort_by: SortBy) -> SortValue:
        return sort_value(self.best_platform.best_config, sort_by)


def select_platforms(
    records: Iterable[RunRecord],
    sort_by: SortBy,
    direction: SortDirection
) -> List[PlatformSelection]:
    """
    한 모델의 레코드를 하드웨어 라벨로 묶어 플랫폼별 최고 구성 선택

    반환 목록은 플랫폼 최고 구성의 우선순위 순이며,
    첫 번째 원소가 모델의 최고 플랫폼입니다.
    """
    groups: Dict[str, List[RunRecord]] = {}
    for record in records:
        groups.setdefault(record.hardware, []).append(record)

    selections = {}
    for hardware, group in groups.items():
        best = select_best(group, sort_by, direction)
        selections[best.test_run_id] = PlatformSelection(
            hardware=hardware,
            hardware_category=best.hardware_category,
            best_config=best,
            total_configs=len(group),
        )

    winners = order_records(
        [selection.best_config for selection in selections.values()],
        sort_by,
        direction
    )
    return [selections[winner.test_run_id] for winner in winners]


def rank_models(
    records: Iterable[RunRecord],
    sort_by: SortBy,
    direction: SortDirection,
    counts: Optional[Dict[str, TransparencyCounts]] = None
) -> List[ModelRanking]:
    """
    모델 단위 순위 계산

    Args:
        records: 필터를 통과한 레코드
        sort_by: 정렬 기준
        direction: 정렬 방향
        counts: 모델별 투명성 카운트

    Returns:
        List[ModelRanking]: 모델 순위 (값이 같으면 모델 이름 오름차순)
    """
    by_model: Dict[str, List[RunRecord]] = {}
    for record in records:
        by_model.setdefault(record.model_name, []).append(record)

    rankings = []
    for model_name in sorted(by_model):
        platforms = select_platforms(by_model[model_name], sort_by, direction)
        rankings.append(ModelRanking(
            model_name=model_name,
            best_platform=platforms[0],
            platforms=platforms,
            counts=(counts or {}).get(model_name),
        ))

    known = [r for r in rankings if r.sort_value(sort_by) is not None]
    unknown = [r for r in rankings if r.sort_value(sort_by) is None]
    known.sort(key=lambda r: r.sort_value(sort_by), reverse=direction == SortDirection.DESC)

    return known + unknown
