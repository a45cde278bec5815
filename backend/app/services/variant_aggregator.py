# inference-bench/backend/app/services/variant_aggregator.py
"""
모델 변형 집계기

하드웨어별 TestRun 스냅샷과 변형별 품질 점수를
(model_name, quantization, lora_adapter) 키로 결합합니다.
품질 점수는 키마다 한 번만 결정되어 해당 키의 모든 실행에
같은 값이 붙습니다.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from app.schemas.performance import HardwareCategory
from app.services.hardware_classifier import classify_hardware
from app.services.performance_store import (
    RunSnapshot,
    VariantQuality,
    TOKENS_PER_SECOND,
    MEMORY_USAGE_GB,
    GPU_POWER_WATTS,
    tokens_per_kwh,
)
from app.services.quantization import canonicalize_quantization


VariantKey = Tuple[str, str, str]

# 실제 하드웨어가 아닌 자리표시자 프로파일
PLACEHOLDER_HARDWARE_MARKERS = ("Generic", "Benchmark Only")


@dataclass(frozen=True)
class RunRecord:
    """성능 지표와 품질 점수가 결합된 실행 레코드"""
    test_run_id: str
    model_name: str
    quantization: str
    lora_adapter: str
    backend: str
    hardware: str
    hardware_category: HardwareCategory
    quality_score: Optional[float] = None
    tokens_per_second: Optional[float] = None
    memory_gb: Optional[float] = None
    gpu_power_watts: Optional[float] = None
    tokens_per_kwh: Optional[float] = None
    concurrent_requests: Optional[int] = None
    max_context_length: Optional[int] = None
    load_pattern: Optional[str] = None
    dataset_name: Optional[str] = None
    gpu_power_limit_watts: Optional[int] = None
    timestamp: Optional[datetime] = None

    @property
    def variant_key(self) -> VariantKey:
        return (self.model_name, self.quantization, self.lora_adapter)


@dataclass
class ModelUniverse:
    """필터 적용 전 모델별 플랫폼/양자화 집합"""
    model_name: str
    hardware_platforms: Set[str] = field(default_factory=set)
    quantizations: Set[str] = field(default_factory=set)

    @property
    def total_hardware_platforms(self) -> int:
        return len(self.hardware_platforms)

    @property
    def total_quantizations(self) -> int:
        return len(self.quantizations)


@dataclass
class AggregationResult:
    """집계 결과"""
    records: List[RunRecord]
    universes: Dict[str, ModelUniverse]
    quality_resolutions: int = 0


def is_placeholder_hardware(run: RunSnapshot) -> bool:
    return any(
        marker in run.gpu_model or marker in run.cpu_model
        for marker in PLACEHOLDER_HARDWARE_MARKERS
    )


class VariantAggregator:
    """
    변형 단위 품질 점수 결합기

    저장된 변형 여러 개가 같은 정규 키로 모이면 이미 정규 라벨로
    저장된 변형의 점수를 우선합니다 (병합 결과와 동일한 규칙).
    """

    def __init__(self, qualities: Iterable[VariantQuality]):
        self._index: Dict[VariantKey, Optional[float]] = {}
        canonical_owned: Set[VariantKey] = set()

        for quality in qualities:
            canonical = canonicalize_quantization(quality.quantization)
            key = (quality.model_name, canonical, quality.lora_adapter or "")
            spelled_canonically = canonical == quality.quantization

            if key in canonical_owned:
                continue
            if key in self._index and not spelled_canonically:
                continue

            self._index[key] = quality.score
            if spelled_canonically:
                canonical_owned.add(key)

    def lookup(self, key: VariantKey) -> Optional[float]:
        return self._index.get(key)

    @staticmethod
    def is_eligible(run: RunSnapshot) -> bool:
        """집계 대상 여부 (완료 상태, 실제 하드웨어, 속도 또는 메모리 존재)"""
        if run.status != "completed":
            return False
        if is_placeholder_hardware(run):
            return False
        return run.metric(TOKENS_PER_SECOND) is not None or run.metric(MEMORY_USAGE_GB) is not None

    def aggregate(self, runs: Iterable[RunSnapshot]) -> AggregationResult:
        """
        실행 스냅샷을 품질 점수와 결합

        Args:
            runs: TestRun 스냅샷

        Returns:
            AggregationResult: 결합된 레코드와 모델별 전체 집합
        """
        resolved: Dict[VariantKey, Optional[float]] = {}
        records: List[RunRecord] = []
        universes: Dict[str, ModelUniverse] = {}

        for run in runs:
            if not self.is_eligible(run):
                continue

            quantization = canonicalize_quantization(run.quantization)
            key = (run.model_name, quantization, run.lora_adapter or "")

            # 키당 한 번만 결정
            if key not in resolved:
                resolved[key] = self.lookup(key)
            quality = resolved[key]

            speed = run.metric(TOKENS_PER_SECOND)
            power = run.metric(GPU_POWER_WATTS)

            record = RunRecord(
                test_run_id=run.id,
                model_name=run.model_name,
                quantization=quantization,
                lora_adapter=run.lora_adapter or "",
                backend=run.backend,
                hardware=run.hardware_label,
                hardware_category=classify_hardware(run.gpu_model, run.cpu_arch, run.cpu_model),
                quality_score=quality,
                tokens_per_second=speed,
                memory_gb=run.metric(MEMORY_USAGE_GB),
                gpu_power_watts=power,
                tokens_per_kwh=tokens_per_kwh(speed, power),
                concurrent_requests=run.concurrent_requests,
                max_context_length=run.max_context_length,
                load_pattern=run.load_pattern,
                dataset_name=run.dataset_name,
                gpu_power_limit_watts=run.gpu_power_limit_watts,
                timestamp=run.timestamp,
            )
            records.append(record)

            universe = universes.setdefault(run.model_name, ModelUniverse(model_name=run.model_name))
            universe.hardware_platforms.add(record.hardware)
            universe.quantizations.add(record.quantization)

        return AggregationResult(
            records=records,
            universes=universes,
            quality_resolutions=len(resolved),
        )
