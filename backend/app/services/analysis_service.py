# inference-bench/backend/app/services/analysis_service.py
"""
모델+하드웨어 분석 서비스

모델 하나와 GPU 하나의 조합에 대해 백엔드/양자화별 최고 지표와
통합 색상 범위가 적용된 히트맵 데이터를 제공합니다.
"""

from typing import Dict, Iterable, List, Optional

import numpy as np
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.model_variant import ModelVariant
from app.schemas.analysis import (
    BackendGroup,
    HeatmapData,
    ModelHardwareAnalysis,
    QuantizationSummary,
)
from app.services.heatmap import HeatmapCell, build_cells, build_heatmap, series_key
from app.services.performance_store import fetch_model_variants, fetch_run_snapshots
from app.services.quantization import canonicalize_quantization, quantization_sort_key
from app.utils.exceptions import ResourceNotFoundError
from app.utils.logger import logger


def has_quality_scores(variant: ModelVariant) -> bool:
    return bool(
        variant.mmlu_scores
        or variant.gsm8k_score
        or variant.humaneval_score
        or variant.hellaswag_score
        or variant.truthfulqa_score
        or variant.generic_scores
    )


def pick_variants_by_quantization(variants: Iterable[ModelVariant]) -> Dict[str, ModelVariant]:
    """
    정규 양자화 라벨별 대표 변형 선택

    그룹 성능 집계와 같은 규칙을 따릅니다. 점수가 있는 변형을 먼저 고르고,
    그 중 정규 라벨로 저장된 변형을 우선합니다. 병합 전 점수가 접미사
    변형에만 있으면 접미사 변형이 선택됩니다.
    """
    chosen: Dict[str, ModelVariant] = {}
    for variant in variants:
        canonical = canonicalize_quantization(variant.quantization)
        rank = (has_quality_scores(variant), variant.quantization == canonical)
        current = chosen.get(canonical)
        if current is None or rank > (has_quality_scores(current), current.quantization == canonical):
            chosen[canonical] = variant
    return chosen


def mmlu_category_scores(variant: Optional[ModelVariant]) -> Dict[str, float]:
    if variant is None:
        return {}
    return {score.category: score.score for score in variant.mmlu_scores}


def _best(values: List[Optional[float]], reducer) -> Optional[float]:
    known = [v for v in values if v is not None]
    return float(reducer(np.asarray(known, dtype=float))) if known else None


class AnalysisService:
    """모델+하드웨어 분석 서비스"""

    def summarize(
        self,
        cells: List[HeatmapCell],
        variants: Dict[str, ModelVariant]
    ) -> List[QuantizationSummary]:
        """
        (백엔드, 양자화)별 요약 계산

        Args:
            cells: 히트맵 셀
            variants: 정규 양자화 라벨별 대표 변형

        Returns:
            List[QuantizationSummary]: 백엔드, 양자화 표시 순서로 정렬된 요약
        """
        grouped: Dict[tuple, List[HeatmapCell]] = {}
        for cell in cells:
            grouped.setdefault((cell.backend, cell.quantization), []).append(cell)

        summaries = []
        for (backend, quantization), group in grouped.items():
            categories = mmlu_category_scores(variants.get(quantization))
            quality = float(np.mean(list(categories.values()))) if categories else None

            summaries.append(QuantizationSummary(
                quantization=quantization,
                backend=backend,
                best_speed=_best([c.speed for c in group], np.max),
                best_ttft=_best([c.ttft for c in group], np.min),
                best_tokens_per_kwh=_best([c.tokens_per_kwh for c in group], np.max),
                quality_score=quality,
                configuration_count=len(group),
                category_scores=categories,
            ))

        summaries.sort(key=lambda s: (s.backend, quantization_sort_key(s.quantization)))
        return summaries

    @staticmethod
    def group_by_backend(summaries: List[QuantizationSummary]) -> List[BackendGroup]:
        groups: List[BackendGroup] = []
        for summary in summaries:
            if groups and groups[-1].backend == summary.backend:
                groups[-1].quantizations.append(summary)
            else:
                groups.append(BackendGroup(backend=summary.backend, quantizations=[summary]))
        return groups

    async def analyze(
        self,
        db: AsyncSession,
        model_name: str,
        gpu_model: str,
        lora_adapter: str = ""
    ) -> ModelHardwareAnalysis:
        """
        모델+하드웨어 분석

        Args:
            db: 데이터베이스 세션
            model_name: 모델 이름
            gpu_model: GPU 모델
            lora_adapter: LoRA 어댑터 (빈 문자열은 기본 모델)

        Returns:
            ModelHardwareAnalysis: 요약과 히트맵 데이터

        Raises:
            ResourceNotFoundError: 일치하는 완료된 실행이 없는 경우
        """
        runs = await fetch_run_snapshots(db, model_name=model_name, gpu_model=gpu_model)
        runs = [run for run in runs if (run.lora_adapter or "") == lora_adapter]

        if not runs:
            raise ResourceNotFoundError(
                "No test runs found for this model+hardware combination",
                resource_type="model_hardware",
                resource_id=f"{model_name}/{gpu_model}"
            )

        variants = pick_variants_by_quantization(
            await fetch_model_variants(db, model_name, lora_adapter)
        )

        cells = build_cells(runs)
        summaries = self.summarize(cells, variants)
        heatmap = build_heatmap(
            cells,
            series_order=[series_key(s.backend, s.quantization) for s in summaries]
        )

        logger.debug(
            f"분석 완료: {model_name} / {gpu_model} - 실행 {len(runs)}건, 셀 {len(cells)}개"
        )

        return ModelHardwareAnalysis(
            model_name=model_name,
            gpu_model=gpu_model,
            lora_adapter=lora_adapter,
            quantizations=summaries,
            backends=self.group_by_backend(summaries),
            heatmap_data=HeatmapData(**heatmap.to_dict()),
        )


# 전역 서비스 인스턴스
analysis_service = AnalysisService()
