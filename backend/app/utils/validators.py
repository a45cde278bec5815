# inference-bench/backend/app/utils/validators.py
"""
데이터 검증 유틸리티

조회 파라미터와 업로드 데이터에 대한 검증 함수들을 제공합니다.
집계 작업 전에 호출되어 잘못된 요청을 즉시 거부합니다.
"""

import math
import re
from collections import Counter
from typing import FrozenSet, List, Optional, Tuple

from app.schemas.performance import (
    HardwareCategory,
    NO_BENCHMARK,
    QUALITY_BENCHMARKS,
    SortBy,
    SortDirection,
)
from app.utils.exceptions import ValidationError


BENCHMARK_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")

# 업로드 경고 기준값
UNUSUAL_TOKENS_PER_SECOND = 1000.0
UNUSUAL_MEMORY_GB = 200.0


class PerformanceQueryValidator:
    """그룹 성능 조회 파라미터 검증"""

    @staticmethod
    def resolve_benchmark(name: Optional[str], default: str = "mmlu") -> str:
        """
        벤치마크 이름 검증 및 정규화

        형식이 올바르지만 알 수 없는 이름은 "none"으로 대체합니다.

        Args:
            name: 요청된 벤치마크 이름
            default: 이름이 없을 때 사용할 기본값

        Returns:
            str: 소문자로 정규화된 벤치마크 이름 또는 "none"

        Raises:
            ValidationError: 이름 형식이 잘못된 경우
        """
        if name is None:
            name = default

        if not BENCHMARK_NAME_PATTERN.match(name):
            raise ValidationError(
                "Benchmark name must be 1-64 characters of letters, digits, '_' or '-'",
                field="benchmark",
                value=name
            )

        normalized = name.lower()
        if normalized == NO_BENCHMARK or normalized in QUALITY_BENCHMARKS:
            return normalized

        return NO_BENCHMARK

    @staticmethod
    def parse_hardware_categories(raw: Optional[str]) -> FrozenSet[HardwareCategory]:
        """
        콤마로 구분된 하드웨어 카테고리 파싱

        Args:
            raw: "consumer_gpu,datacenter_gpu" 형식 문자열

        Returns:
            FrozenSet[HardwareCategory]: 카테고리 집합 (비어 있으면 전체)

        Raises:
            ValidationError: 알 수 없는 카테고리가 포함된 경우
        """
        if raw is None:
            return frozenset()

        categories = set()
        for token in raw.split(","):
            token = token.strip()
            if not token:
                continue
            try:
                categories.add(HardwareCategory(token.lower()))
            except ValueError:
                raise ValidationError(
                    f"Invalid hardware category: {token}",
                    field="hardware_categories",
                    value=token,
                    details={"allowed": [c.value for c in HardwareCategory]}
                )

        return frozenset(categories)

    @staticmethod
    def validate_non_negative(value: Optional[float], field: str) -> Optional[float]:
        """
        0 이상의 유한한 수치 필터 검증

        Raises:
            ValidationError: 음수 또는 NaN/무한대인 경우
        """
        if value is None:
            return None

        if not math.isfinite(value):
            raise ValidationError(f"{field} must be a finite number", field=field, value=str(value))

        if value < 0:
            raise ValidationError(f"{field} must be >= 0", field=field, value=value)

        return value

    @staticmethod
    def validate_sort(
        sort_by: Optional[str],
        sort_direction: Optional[str],
        default_sort: SortBy = SortBy.QUALITY
    ) -> Tuple[SortBy, Optional[SortDirection]]:
        """
        정렬 파라미터 검증

        Returns:
            Tuple[SortBy, Optional[SortDirection]]: 방향이 없으면 None

        Raises:
            ValidationError: 알 수 없는 정렬 기준 또는 방향
        """
        try:
            resolved_sort = SortBy(sort_by.lower()) if sort_by else default_sort
        except ValueError:
            raise ValidationError(
                f"Invalid sort_by: {sort_by}",
                field="sort_by",
                value=sort_by,
                details={"allowed": [s.value for s in SortBy]}
            )

        if not sort_direction:
            return resolved_sort, None

        try:
            resolved_direction = SortDirection(sort_direction.lower())
        except ValueError:
            raise ValidationError(
                f"Invalid sort_direction: {sort_direction}",
                field="sort_direction",
                value=sort_direction,
                details={"allowed": [d.value for d in SortDirection]}
            )

        return resolved_sort, resolved_direction


class UploadValidator:
    """업로드 데이터 검증"""

    @staticmethod
    def validate_hardware(gpu_model: str, gpu_memory_gb: Optional[float]) -> bool:
        """
        하드웨어 프로파일 일관성 검증

        Raises:
            ValidationError: CPU 전용 시스템에 GPU 메모리가 지정된 경우
        """
        if gpu_model in ("CPU Only", "N/A") and gpu_memory_gb:
            raise ValidationError(
                "GPU memory should be 0 for CPU-only systems",
                field="hardware.gpu_memory_gb",
                value=gpu_memory_gb
            )
        return True

    @staticmethod
    def validate_answer_counts(
        correct: Optional[int],
        total: Optional[int],
        field: str
    ) -> bool:
        """
        정답 수가 전체 문항 수를 넘지 않는지 검증

        Raises:
            ValidationError: correct > total 인 경우
        """
        if correct is not None and total is not None and correct > total:
            raise ValidationError(
                "correct_answers cannot be greater than total_questions",
                field=field,
                value=correct
            )
        return True

    @staticmethod
    def collect_metric_warnings(metrics: List[Tuple[str, float]]) -> List[str]:
        """
        치명적이지 않은 메트릭 이상 징후 수집

        Args:
            metrics: (메트릭 이름, 값) 목록

        Returns:
            List[str]: 경고 메시지
        """
        warnings = []
        names = [name for name, _ in metrics]

        duplicated = sorted(name for name, count in Counter(names).items() if count > 1)
        if duplicated:
            warnings.append(f"Duplicate performance metrics detected: {', '.join(duplicated)}")

        if "tokens_per_second" not in names:
            warnings.append("Missing tokens_per_second metric")
        if "memory_usage_gb" not in names:
            warnings.append("Missing memory_usage_gb metric")

        for name, value in metrics:
            if name == "tokens_per_second" and value > UNUSUAL_TOKENS_PER_SECOND:
                warnings.append(f"Unusually high tokens_per_second: {value}")
            elif name == "memory_usage_gb" and value > UNUSUAL_MEMORY_GB:
                warnings.append(f"Unusually high memory_usage_gb: {value}")

        return warnings
