# inference-bench/backend/app/schemas/configuration.py
"""
구성(TestRun) 상세 및 비교 관련 스키마
"""

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel

from app.schemas.performance import HardwareCategory


class ConfigurationListItem(BaseModel):
    """구성 목록 항목"""
    id: str
    model_name: str
    quantization: str
    lora_adapter: str = ""
    backend: str
    hardware: str
    hardware_category: HardwareCategory
    overall_score: Optional[float] = None
    tokens_per_second: Optional[float] = None
    memory_gb: Optional[float] = None
    timestamp: datetime


class PerformanceSummary(BaseModel):
    """구성의 성능 지표"""
    tokens_per_second: Optional[float] = None
    memory_gb: Optional[float] = None
    gpu_power_watts: Optional[float] = None
    tokens_per_kwh: Optional[float] = None
    ttft_p95_ms: Optional[float] = None
    tpot_p95_ms: Optional[float] = None
    itl_p95_ms: Optional[float] = None
    model_loading_time: Optional[float] = None
    prompt_processing_speed: Optional[float] = None


class ConfigurationSummary(BaseModel):
    """구성 요약"""
    id: str
    model_name: str
    quantization: str
    lora_adapter: str = ""
    backend: str
    backend_version: Optional[str] = None
    hardware: str
    hardware_category: HardwareCategory
    overall_score: Optional[float] = None
    concurrent_requests: Optional[int] = None
    max_context_length: Optional[int] = None
    load_pattern: Optional[str] = None
    dataset_name: Optional[str] = None
    gpu_power_limit_watts: Optional[int] = None
    status: str
    timestamp: datetime
    notes: Optional[str] = None
    performance: PerformanceSummary


class CategoryScore(BaseModel):
    """카테고리별 품질 점수"""
    name: str
    score: float
    total_questions: Optional[int] = None


class SystemInfo(BaseModel):
    """하드웨어 프로파일 정보"""
    gpu_model: str
    gpu_memory_gb: Optional[float] = None
    cpu_model: str
    cpu_arch: str
    ram_gb: Optional[float] = None
    ram_type: Optional[str] = None
    virtualization_type: Optional[str] = None
    optimizations: List[str] = []


class ConfigurationDetail(BaseModel):
    """구성 상세 응답"""
    config: ConfigurationSummary
    categories: List[CategoryScore]
    system_info: SystemInfo


class CategoryComparison(BaseModel):
    """카테고리 단위 비교"""
    name: str
    score_a: Optional[float] = None
    score_b: Optional[float] = None
    difference: Optional[float] = None


class ConfigurationComparison(BaseModel):
    """두 구성 비교 응답"""
    config_a: ConfigurationSummary
    config_b: ConfigurationSummary
    categories: List[CategoryComparison]
