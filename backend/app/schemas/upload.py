# inference-bench/backend/app/schemas/upload.py
"""
실험/벤치마크 업로드 관련 스키마
"""

from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field


class HardwareProfileInput(BaseModel):
    """하드웨어 프로파일 입력"""
    gpu_model: str = Field(..., min_length=1, max_length=255)
    gpu_memory_gb: Optional[float] = Field(default=None, ge=0)
    cpu_model: str = Field(..., min_length=1, max_length=255)
    cpu_arch: str = Field(..., min_length=1, max_length=100)
    ram_gb: Optional[float] = Field(default=None, gt=0)
    ram_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    virtualization_type: Optional[str] = None
    optimizations: List[str] = Field(default_factory=list)


class MetricInput(BaseModel):
    """성능 메트릭 입력"""
    metric_name: str = Field(..., min_length=1, max_length=100)
    value: float = Field(..., ge=0)
    unit: Optional[str] = Field(default=None, max_length=50)


class MMLUCategoryInput(BaseModel):
    """MMLU 카테고리 점수 입력 (0~100)"""
    category: str = Field(..., min_length=1, max_length=100)
    score: float = Field(..., ge=0, le=100)
    total_questions: Optional[int] = Field(default=None, gt=0)
    correct_answers: Optional[int] = Field(default=None, ge=0)


class GSM8KInput(BaseModel):
    """GSM8K 점수 입력 (accuracy는 0~1)"""
    accuracy: float = Field(..., ge=0, le=1)
    problems_solved: Optional[int] = Field(default=None, ge=0)
    total_problems: Optional[int] = Field(default=None, gt=0)


class HumanEvalInput(BaseModel):
    """HumanEval 점수 입력"""
    pass_at_1: float = Field(..., ge=0)
    pass_at_10: Optional[float] = Field(default=None, ge=0)
    pass_at_100: Optional[float] = Field(default=None, ge=0)


class HellaSwagInput(BaseModel):
    """HellaSwag 점수 입력"""
    accuracy: float = Field(..., ge=0)
    total_questions: Optional[int] = Field(default=None, gt=0)
    correct_answers: Optional[int] = Field(default=None, ge=0)


class TruthfulQAInput(BaseModel):
    """TruthfulQA 점수 입력"""
    truthful_score: float = Field(..., ge=0)
    truthful_and_informative_score: Optional[float] = Field(default=None, ge=0)
    total_questions: Optional[int] = Field(default=None, gt=0)


class GenericBenchmarkInput(BaseModel):
    """기타 벤치마크 점수 입력"""
    benchmark_name: str = Field(..., min_length=1, max_length=100)
    overall_score: float
    sub_scores: Optional[Dict[str, Any]] = None


class QualityScoresInput(BaseModel):
    """벤치마크 계열별 품질 점수 묶음"""
    mmlu: Optional[List[MMLUCategoryInput]] = None
    gsm8k: Optional[GSM8KInput] = None
    humaneval: Optional[HumanEvalInput] = None
    hellaswag: Optional[HellaSwagInput] = None
    truthfulqa: Optional[TruthfulQAInput] = None
    generic: Optional[List[GenericBenchmarkInput]] = None


class ExperimentUpload(BaseModel):
    """실험(TestRun) 업로드 요청"""
    model_name: str = Field(..., min_length=1, max_length=255)
    quantization: str = Field(..., min_length=1, max_length=100)
    lora_adapter: str = Field(default="", max_length=255)
    backend: str = Field(..., min_length=1, max_length=100)
    backend_version: Optional[str] = None
    hardware: HardwareProfileInput
    concurrent_requests: Optional[int] = Field(default=None, ge=1)
    max_context_length: Optional[int] = Field(default=None, ge=1)
    load_pattern: Optional[str] = None
    dataset_name: Optional[str] = None
    gpu_power_limit_watts: Optional[int] = Field(default=None, ge=0)
    status: Literal["pending", "running", "completed", "failed", "cancelled"] = "completed"
    timestamp: Optional[datetime] = None
    notes: Optional[str] = None
    performance_metrics: List[MetricInput] = Field(default_factory=list)
    quality_scores: Optional[QualityScoresInput] = None


class BenchmarkUpload(BaseModel):
    """품질 점수 업로드 요청"""
    model_name: str = Field(..., min_length=1, max_length=255)
    quantization: str = Field(..., min_length=1, max_length=100)
    lora_adapter: str = Field(default="", max_length=255)
    scores: QualityScoresInput


class UploadResponse(BaseModel):
    """업로드 결과"""
    id: str
    model_variant_id: Optional[str] = None
    quantization: str
    message: str
    warnings: List[str] = Field(default_factory=list)
