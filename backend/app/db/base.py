# inference-bench/backend/app/db/base.py
"""
데이터베이스 베이스 설정
"""

# 모든 모델을 import하여 Base.metadata에 등록
from app.models.base import Base
from app.models.model_variant import ModelVariant
from app.models.hardware import HardwareProfile
from app.models.test_run import TestRun, PerformanceMetric
from app.models.quality_score import (
    MMLUScore,
    GSM8KScore,
    HumanEvalScore,
    HellaSwagScore,
    TruthfulQAScore,
    GenericBenchmarkScore,
)

__all__ = [
    "Base",
    "ModelVariant",
    "HardwareProfile",
    "TestRun",
    "PerformanceMetric",
    "MMLUScore",
    "GSM8KScore",
    "HumanEvalScore",
    "HellaSwagScore",
    "TruthfulQAScore",
    "GenericBenchmarkScore",
]
