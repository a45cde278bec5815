# inference-bench/backend/app/schemas/admin.py
"""
관리 작업 관련 스키마
"""

from typing import List
from pydantic import BaseModel, Field


class MergedVariant(BaseModel):
    """병합된 변형 한 건"""
    model_name: str
    lora_adapter: str
    source_quantization: str
    target_quantization: str
    reassigned_scores: int
    discarded_scores: int
    target_created: bool


class MergeReportResponse(BaseModel):
    """양자화 병합 결과"""
    renamed_test_runs: int
    merged_variants: int
    created_variants: int
    reassigned_scores: int
    discarded_scores: int
    details: List[MergedVariant] = Field(default_factory=list)
