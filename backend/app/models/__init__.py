# inference-bench/backend/app/models/__init__.py
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
    QUALITY_SCORE_MODELS,
)

__all__ = [
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
    "QUALITY_SCORE_MODELS",
]
