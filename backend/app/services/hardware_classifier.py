# inference-bench/backend/app/services/hardware_classifier.py
"""
하드웨어 분류기

GPU 모델/CPU 아키텍처 문자열을 네 가지 하드웨어 카테고리 중
하나로 분류합니다. 규칙은 위에서부터 순서대로 평가되며
처음 일치하는 규칙이 결과를 결정합니다.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from app.schemas.performance import HardwareCategory


DATACENTER_GPU_PATTERNS: Tuple[str, ...] = ("A100", "H100", "L40", "L4", "V100", "T4")
CONSUMER_GPU_PATTERNS: Tuple[str, ...] = ("RTX", "GTX")
CPU_ONLY_NAMES: Tuple[str, ...] = ("CPU Only", "N/A")
CPU_ONLY_PREFIX = "CPU"
DATACENTER_CPU_PATTERNS: Tuple[str, ...] = ("Xeon", "EPYC")


@dataclass(frozen=True)
class ClassificationRule:
    """분류 규칙 (gpu 문자열 판별 함수 + 결과 결정 함수)"""
    name: str
    matches: Callable[[str], bool]
    resolve: Callable[[str], HardwareCategory]


def _contains_any(value: str, patterns: Tuple[str, ...]) -> bool:
    return any(pattern in value for pattern in patterns)


def is_cpu_only(gpu_model: Optional[str]) -> bool:
    """GPU 없이 CPU로만 실행된 프로파일인지 여부"""
    gpu = gpu_model or ""
    return gpu in CPU_ONLY_NAMES or gpu.startswith(CPU_ONLY_PREFIX)


def _classify_cpu(cpu_text: str) -> HardwareCategory:
    if _contains_any(cpu_text, DATACENTER_CPU_PATTERNS):
        return HardwareCategory.DATACENTER_CPU
    return HardwareCategory.CONSUMER_CPU


HARDWARE_RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        name="datacenter_gpu",
        matches=lambda gpu: _contains_any(gpu, DATACENTER_GPU_PATTERNS),
        resolve=lambda cpu: HardwareCategory.DATACENTER_GPU,
    ),
    ClassificationRule(
        name="consumer_gpu",
        matches=lambda gpu: _contains_any(gpu, CONSUMER_GPU_PATTERNS),
        resolve=lambda cpu: HardwareCategory.CONSUMER_GPU,
    ),
    ClassificationRule(
        name="cpu_only",
        matches=is_cpu_only,
        resolve=_classify_cpu,
    ),
)

# 어떤 규칙에도 해당하지 않는 GPU 문자열
FALLBACK_CATEGORY = HardwareCategory.CONSUMER_GPU


def classify_hardware(
    gpu_model: Optional[str],
    cpu_arch: Optional[str],
    cpu_model: Optional[str] = None
) -> HardwareCategory:
    """
    하드웨어 카테고리 분류

    빈 문자열이나 None을 포함한 모든 입력에 대해 네 카테고리 중
    하나를 반환합니다.

    Args:
        gpu_model: GPU 모델 문자열
        cpu_arch: CPU 아키텍처 문자열
        cpu_model: CPU 모델 문자열 (CPU 전용 판별 시 함께 검사)

    Returns:
        HardwareCategory: 분류 결과
    """
    gpu = gpu_model or ""
    cpu_text = f"{cpu_arch or ''} {cpu_model or ''}"

    for rule in HARDWARE_RULES:
        if rule.matches(gpu):
            return rule.resolve(cpu_text)

    return FALLBACK_CATEGORY
