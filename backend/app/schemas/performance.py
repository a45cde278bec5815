# inference-bench/backend/app/schemas/performance.py
"""
그룹별 성능 조회 관련 스키마
"""

from enum import Enum
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel


# 품질 점수 선택자 ("none"은 품질 없이 성능만 비교)
NO_BENCHMARK = "none"
QUALITY_BENCHMARKS = ("mmlu", "gsm8k", "humaneval", "hellaswag", "truthfulqa")


class HardwareCategory(str, Enum):
    """하드웨어 카테고리"""
    CONSUMER_GPU = "consumer_gpu"
    DATACENTER_GPU = "datacenter_gpu"
    CONSUMER_CPU = "consumer_cpu"
    DATACENTER_CPU = "datacenter_cpu"


class SortBy(str, Enum):
    """정렬 기준"""
    MODEL_NAME = "model_name"
    QUALITY = "quality"
    SPEED = "speed"
    MEMORY = "memory"
    EFFICIENCY = "efficiency"


class SortDirection(str, Enum):
    """정렬 방향"""
    ASC = "asc"
    DESC = "desc"


class BestConfig(BaseModel):
    """플랫폼 대표 구성 (알 수 없는 값은 null)"""
    id: str
    quantization: str
    lora_adapter: str = ""
    quality_score: Optional[float] = None
    tokens_per_second: Optional[float] = None
    memory_gb: Optional[float] = None
    tokens_per_kwh: Optional[float] = None
    gpu_power_watts: Optional[float] = None
    backend: str
    hardware: str
    hardware_category: HardwareCategory
    concurrent_requests: Optional[int] = None
    max_context_length: Optional[int] = None
    load_pattern: Optional[str] = None
    dataset_name: Optional[str] = None
    gpu_power_limit_watts: Optional[int] = None
    timestamp: Optional[datetime] = None


class HardwarePlatformResult(BaseModel):
    """하드웨어 플랫폼별 최고 구성"""
    hardware: str
    hardware_category: HardwareCategory
    best_config: BestConfig
    total_configs: int


class GroupedModelPerformance(BaseModel):
    """모델별 그룹 성능"""
    model_name: str
    qualifying_platforms: int
    total_hardware_platforms: int
    qualifying_quantizations: int
    total_quantizations: int
    best_hardware: HardwarePlatformResult
    all_hardware_platforms: List[HardwarePlatformResult]


class GroupedPerformanceResponse(BaseModel):
    """그룹 성능 조회 응답"""
    models: List[GroupedModelPerformance]
    total_count: int
    benchmark_used: str
    sort_by: SortBy
    sort_direction: SortDirection
