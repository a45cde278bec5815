# inference-bench/backend/app/schemas/analysis.py
"""
모델+하드웨어 분석 관련 스키마
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field


# 시리즈 키("backend||quantization") -> 전력 제한 -> 동시 요청 수 -> 값
MetricGrid = Dict[str, Dict[str, Dict[str, float]]]


class QuantizationSummary(BaseModel):
    """백엔드+양자화 조합별 최고 지표"""
    quantization: str
    backend: str
    best_speed: Optional[float] = None
    best_ttft: Optional[float] = None
    best_tokens_per_kwh: Optional[float] = None
    quality_score: Optional[float] = None
    configuration_count: int
    category_scores: Dict[str, float] = Field(default_factory=dict)


class BackendGroup(BaseModel):
    """백엔드별 양자화 요약 묶음"""
    backend: str
    quantizations: List[QuantizationSummary]


class HeatmapScale(BaseModel):
    """지표별 통합 색상 범위"""
    min: float
    max: float


class HeatmapData(BaseModel):
    """히트맵 데이터 (효율은 백만 토큰/kWh 단위)"""
    quantizations: List[str]
    power_limits: List[int]
    concurrent_requests: List[int]
    speed_data: MetricGrid
    ttft_data: MetricGrid
    tpot_data: MetricGrid
    itl_data: MetricGrid
    efficiency_data: MetricGrid
    scales: Dict[str, Optional[HeatmapScale]]


class ModelHardwareAnalysis(BaseModel):
    """모델+하드웨어 분석 응답"""
    model_name: str
    gpu_model: str
    lora_adapter: str = ""
    quantizations: List[QuantizationSummary]
    backends: List[BackendGroup]
    heatmap_data: HeatmapData
