# inference-bench/backend/app/services/heatmap.py
"""
히트맵 데이터 및 통합 색상 범위 계산

모델+하드웨어 조합 하나에 대해 (백엔드, 양자화, 전력 제한, 동시 요청 수)
셀별 지표를 모으고, 함께 표시되는 모든 양자화에 걸쳐 지표마다
하나의 (min, max) 범위를 계산합니다.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from app.services.performance_store import (
    RunSnapshot,
    TOKENS_PER_SECOND,
    TTFT_P95_MS,
    TPOT_P95_MS,
    ITL_P95_MS,
    GPU_POWER_WATTS,
    tokens_per_kwh,
)
from app.services.quantization import canonicalize_quantization


HEATMAP_METRICS = ("speed", "ttft", "tpot", "itl", "efficiency")

# 효율 표시 단위: 백만 토큰/kWh
EFFICIENCY_DISPLAY_DIVISOR = 1_000_000

# 범위가 max의 10% 미만이면 중앙값 기준 ±20%로 확장
NARROW_RANGE_RATIO = 0.1
EXPANSION_RATIO = 0.2

SERIES_SEPARATOR = "||"

# 전력 제한/동시 요청 수 미기록 시 기본값
DEFAULT_POWER_LIMIT = 0
DEFAULT_CONCURRENCY = 1

Grid = Dict[str, Dict[str, Dict[str, float]]]


@dataclass(frozen=True)
class Scale:
    """색상 범위"""
    min: float
    max: float


def unify_scale(values: Iterable[float]) -> Optional[Scale]:
    """
    값 전체에 대한 단일 색상 범위 계산

    min == max이면 [v*0.8, v*1.2] (v == 0이면 [0, 1]),
    범위가 max의 10% 미만이면 중앙값 기준 ±20%로 확장합니다.

    Args:
        values: 모든 양자화에 걸친 지표 값

    Returns:
        Optional[Scale]: 값이 없으면 None
    """
    data = np.asarray([v for v in values if v is not None], dtype=float)
    data = data[np.isfinite(data)]
    if data.size == 0:
        return None

    low = float(np.min(data))
    high = float(np.max(data))

    if low == high:
        if low == 0:
            return Scale(min=0.0, max=1.0)
        bounds = sorted((low * (1 - EXPANSION_RATIO), low * (1 + EXPANSION_RATIO)))
        return Scale(min=bounds[0], max=bounds[1])

    if (high - low) < NARROW_RANGE_RATIO * abs(high):
        mid = (low + high) / 2
        bounds = sorted((mid * (1 - EXPANSION_RATIO), mid * (1 + EXPANSION_RATIO)))
        return Scale(min=bounds[0], max=bounds[1])

    return Scale(min=low, max=high)


def series_key(backend: str, quantization: str) -> str:
    return f"{backend}{SERIES_SEPARATOR}{quantization}"


@dataclass
class HeatmapCell:
    """(백엔드, 양자화, 전력 제한, 동시 요청 수) 셀 집계값"""
    backend: str
    quantization: str
    power_limit: int
    concurrency: int
    speed: Optional[float] = None
    ttft: Optional[float] = None
    tpot: Optional[float] = None
    itl: Optional[float] = None
    gpu_power_watts: Optional[float] = None

    @property
    def tokens_per_kwh(self) -> Optional[float]:
        return tokens_per_kwh(self.speed, self.gpu_power_watts)

    @property
    def efficiency(self) -> Optional[float]:
        value = self.tokens_per_kwh
        return value / EFFICIENCY_DISPLAY_DIVISOR if value is not None else None

    def value(self, metric: str) -> Optional[float]:
        return getattr(self, metric)


def _reduce(values: List[float], reducer) -> Optional[float]:
    return float(reducer(np.asarray(values, dtype=float))) if values else None


def build_cells(runs: Iterable[RunSnapshot]) -> List[HeatmapCell]:
    """
    실행 스냅샷을 셀 단위로 집계

    같은 셀의 실행들은 최대 속도, 최소 지연 시간, 평균 전력으로 합칩니다.
    """
    buckets: Dict[Tuple[str, str, int, int], Dict[str, List[float]]] = {}

    for run in runs:
        key = (
            run.backend,
            canonicalize_quantization(run.quantization),
            run.gpu_power_limit_watts if run.gpu_power_limit_watts is not None else DEFAULT_POWER_LIMIT,
            run.concurrent_requests if run.concurrent_requests is not None else DEFAULT_CONCURRENCY,
        )
        bucket = buckets.setdefault(key, {"speed": [], "ttft": [], "tpot": [], "itl": [], "power": []})

        for name, metric in (
            ("speed", TOKENS_PER_SECOND),
            ("ttft", TTFT_P95_MS),
            ("tpot", TPOT_P95_MS),
            ("itl", ITL_P95_MS),
            ("power", GPU_POWER_WATTS),
        ):
            value = run.metric(metric)
            if value is not None:
                bucket[name].append(value)

    cells = []
    for (backend, quantization, power_limit, concurrency), bucket in buckets.items():
        cells.append(HeatmapCell(
            backend=backend,
            quantization=quantization,
            power_limit=power_limit,
            concurrency=concurrency,
            speed=_reduce(bucket["speed"], np.max),
            ttft=_reduce(bucket["ttft"], np.min),
            tpot=_reduce(bucket["tpot"], np.min),
            itl=_reduce(bucket["itl"], np.min),
            gpu_power_watts=_reduce(bucket["power"], np.mean),
        ))

    return cells


@dataclass
class HeatmapPayload:
    """히트맵 응답 데이터"""
    quantizations: List[str]
    power_limits: List[int]
    concurrent_requests: List[int]
    grids: Dict[str, Grid] = field(default_factory=dict)
    scales: Dict[str, Optional[Scale]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "quantizations": self.quantizations,
            "power_limits": self.power_limits,
            "concurrent_requests": self.concurrent_requests,
            **{f"{metric}_data": self.grids.get(metric, {}) for metric in HEATMAP_METRICS},
            "scales": {
                metric: ({"min": scale.min, "max": scale.max} if scale else None)
                for metric, scale in self.scales.items()
            },
        }


def compute_unified_scales(grids: Dict[str, Grid]) -> Dict[str, Optional[Scale]]:
    """
    지표별 통합 범위 계산

    Args:
        grids: 지표 -> 시리즈 -> 전력 제한 -> 동시 요청 수 -> 값

    Returns:
        Dict[str, Optional[Scale]]: 지표별 범위 (모든 시리즈 공통)
    """
    scales = {}
    for metric in HEATMAP_METRICS:
        values = [
            value
            for by_power in grids.get(metric, {}).values()
            for by_concurrency in by_power.values()
            for value in by_concurrency.values()
        ]
        scales[metric] = unify_scale(values)
    return scales


def build_heatmap(cells: Iterable[HeatmapCell], series_order: Optional[List[str]] = None) -> HeatmapPayload:
    """
    셀 목록으로 히트맵 데이터 구성

    Args:
        cells: 집계된 셀
        series_order: 시리즈 키 표시 순서 (없으면 이름순)

    Returns:
        HeatmapPayload: 지표별 격자와 통합 범위
    """
    cells = list(cells)
    grids: Dict[str, Grid] = {metric: {} for metric in HEATMAP_METRICS}
    power_limits = set()
    concurrencies = set()

    for cell in cells:
        series = series_key(cell.backend, cell.quantization)
        power_limits.add(cell.power_limit)
        concurrencies.add(cell.concurrency)

        for metric in HEATMAP_METRICS:
            value = cell.value(metric)
            if value is None:
                continue
            grids[metric].setdefault(series, {}).setdefault(str(cell.power_limit), {})[str(cell.concurrency)] = value

    present = {series_key(cell.backend, cell.quantization) for cell in cells}
    if series_order:
        quantizations = [key for key in series_order if key in present]
        quantizations += sorted(present - set(quantizations))
    else:
        quantizations = sorted(present)

    return HeatmapPayload(
        quantizations=quantizations,
        power_limits=sorted(power_limits),
        concurrent_requests=sorted(concurrencies),
        grids=grids,
        scales=compute_unified_scales(grids),
    )
