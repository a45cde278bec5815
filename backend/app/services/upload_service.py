# inference-bench/backend/app/services/upload_service.py
"""
실험/벤치마크 업로드 서비스

파싱이 끝난 업로드 데이터를 저장소에 기록합니다. 양자화 라벨은
기록 시점에 정규화되며, 모델 변형과 하드웨어 프로파일은 이미 있으면
재사용합니다. 업로드 하나가 하나의 트랜잭션입니다.
"""

from typing import List, Optional, Tuple

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.hardware import HardwareProfile
from app.models.model_variant import ModelVariant
from app.models.quality_score import (
    MMLUScore,
    GSM8KScore,
    HumanEvalScore,
    HellaSwagScore,
    TruthfulQAScore,
    GenericBenchmarkScore,
)
from app.models.test_run import TestRun, PerformanceMetric
from app.schemas.upload import (
    BenchmarkUpload,
    ExperimentUpload,
    HardwareProfileInput,
    QualityScoresInput,
    UploadResponse,
)
from app.services.quantization import canonicalize_quantization
from app.utils.logger import logger, log_audit
from app.utils.validators import UploadValidator


class UploadService:
    """업로드 데이터 기록 서비스"""

    async def get_or_create_variant(
        self,
        db: AsyncSession,
        model_name: str,
        quantization: str,
        lora_adapter: str = ""
    ) -> Tuple[ModelVariant, bool]:
        """
        모델 변형 조회 또는 생성

        Args:
            db: 데이터베이스 세션
            model_name: 모델 이름
            quantization: 정규화된 양자화 라벨
            lora_adapter: LoRA 어댑터

        Returns:
            Tuple[ModelVariant, bool]: (변형, 새로 생성했는지 여부)
        """
        result = await db.execute(
            select(ModelVariant).where(
                ModelVariant.model_name == model_name,
                ModelVariant.quantization == quantization,
                ModelVariant.lora_adapter == lora_adapter,
            )
        )
        variant = result.scalar_one_or_none()
        if variant is not None:
            return variant, False

        variant = ModelVariant(model_name=model_name, quantization=quantization, lora_adapter=lora_adapter)
        db.add(variant)
        await db.flush()
        return variant, True

    async def get_or_create_hardware(self, db: AsyncSession, hardware: HardwareProfileInput) -> HardwareProfile:
        """
        하드웨어 프로파일 조회 또는 생성

        (gpu_model, cpu_model, cpu_arch, ram_gb, ram_type)이 같으면 같은 프로파일입니다.
        """
        query = select(HardwareProfile).where(
            HardwareProfile.gpu_model == hardware.gpu_model,
            HardwareProfile.cpu_model == hardware.cpu_model,
            HardwareProfile.cpu_arch == hardware.cpu_arch,
        )
        query = query.where(
            HardwareProfile.ram_gb.is_(None) if hardware.ram_gb is None
            else HardwareProfile.ram_gb == hardware.ram_gb
        )
        query = query.where(
            HardwareProfile.ram_type.is_(None) if hardware.ram_type is None
            else HardwareProfile.ram_type == hardware.ram_type
        )

        result = await db.execute(query.limit(1))
        profile = result.scalar_one_or_none()
        if profile is not None:
            return profile

        profile = HardwareProfile(
            gpu_model=hardware.gpu_model,
            gpu_memory_gb=hardware.gpu_memory_gb,
            cpu_model=hardware.cpu_model,
            cpu_arch=hardware.cpu_arch,
            ram_gb=hardware.ram_gb,
            ram_type=hardware.ram_type,
            virtualization_type=hardware.virtualization_type,
            optimizations=list(hardware.optimizations),
        )
        db.add(profile)
        await db.flush()
        return profile

    @staticmethod
    def validate_scores(scores: QualityScoresInput) -> None:
        """점수 묶음의 문항 수 일관성 검증"""
        for index, mmlu in enumerate(scores.mmlu or []):
            UploadValidator.validate_answer_counts(
                mmlu.correct_answers, mmlu.total_questions, f"mmlu[{index}].correct_answers"
            )
        if scores.gsm8k:
            UploadValidator.validate_answer_counts(
                scores.gsm8k.problems_solved, scores.gsm8k.total_problems, "gsm8k.problems_solved"
            )
        if scores.hellaswag:
            UploadValidator.validate_answer_counts(
                scores.hellaswag.correct_answers, scores.hellaswag.total_questions, "hellaswag.correct_answers"
            )

    async def store_quality_scores(
        self,
        db: AsyncSession,
        variant: ModelVariant,
        scores: QualityScoresInput
    ) -> int:
        """
        변형의 품질 점수 기록

        같은 행 키(MMLU 카테고리, 벤치마크 이름, 단일 행 계열)의 기존 점수는
        새 값으로 교체합니다.

        Returns:
            int: 기록된 점수 행 수
        """
        written = 0
        variant_id = variant.id

        for mmlu in scores.mmlu or []:
            await db.execute(
                delete(MMLUScore).where(
                    MMLUScore.model_variant_id == variant_id,
                    MMLUScore.category == mmlu.category,
                )
            )
            db.add(MMLUScore(
                model_variant_id=variant_id,
                category=mmlu.category,
                score=mmlu.score,
                total_questions=mmlu.total_questions,
                correct_answers=mmlu.correct_answers,
            ))
            written += 1

        single_rows = (
            (GSM8KScore, scores.gsm8k),
            (HumanEvalScore, scores.humaneval),
            (HellaSwagScore, scores.hellaswag),
            (TruthfulQAScore, scores.truthfulqa),
        )
        for score_model, payload in single_rows:
            if payload is None:
                continue
            await db.execute(delete(score_model).where(score_model.model_variant_id == variant_id))
            db.add(score_model(model_variant_id=variant_id, **payload.model_dump()))
            written += 1

        for generic in scores.generic or []:
            await db.execute(
                delete(GenericBenchmarkScore).where(
                    GenericBenchmarkScore.model_variant_id == variant_id,
                    GenericBenchmarkScore.benchmark_name == generic.benchmark_name,
                )
            )
            db.add(GenericBenchmarkScore(
                model_variant_id=variant_id,
                benchmark_name=generic.benchmark_name,
                overall_score=generic.overall_score,
                sub_scores=generic.sub_scores,
            ))
            written += 1

        await db.flush()
        return written

    @staticmethod
    def _quantization_warnings(original: str, canonical: str) -> List[str]:
        if original.strip() != canonical:
            return [f"Quantization '{original}' normalized to '{canonical}'"]
        return []

    async def upload_experiment(self, db: AsyncSession, data: ExperimentUpload) -> UploadResponse:
        """
        실험(TestRun) 업로드

        하드웨어 프로파일과 모델 변형을 찾거나 만들고, 실행과 메트릭,
        선택적으로 변형의 품질 점수를 하나의 트랜잭션으로 기록합니다.

        Args:
            db: 데이터베이스 세션
            data: 업로드 데이터

        Returns:
            UploadResponse: 생성된 TestRun 정보

        Raises:
            ValidationError: 데이터 일관성 검증 실패
            SQLAlchemyError: 저장소 오류 (롤백 후 전파)
        """
        UploadValidator.validate_hardware(data.hardware.gpu_model, data.hardware.gpu_memory_gb)
        if data.quality_scores:
            self.validate_scores(data.quality_scores)

        quantization = canonicalize_quantization(data.quantization)
        warnings = self._quantization_warnings(data.quantization, quantization)
        warnings += UploadValidator.collect_metric_warnings(
            [(metric.metric_name, metric.value) for metric in data.performance_metrics]
        )

        try:
            profile = await self.get_or_create_hardware(db, data.hardware)
            variant, _ = await self.get_or_create_variant(db, data.model_name, quantization, data.lora_adapter)

            run = TestRun(
                model_name=data.model_name,
                quantization=quantization,
                lora_adapter=data.lora_adapter,
                backend=data.backend,
                backend_version=data.backend_version,
                hardware_profile_id=profile.id,
                concurrent_requests=data.concurrent_requests,
                max_context_length=data.max_context_length,
                load_pattern=data.load_pattern,
                dataset_name=data.dataset_name,
                gpu_power_limit_watts=data.gpu_power_limit_watts,
                status=data.status,
                notes=data.notes,
            )
            if data.timestamp is not None:
                run.timestamp = data.timestamp
            run.metrics = [
                PerformanceMetric(metric_name=metric.metric_name, value=metric.value, unit=metric.unit)
                for metric in data.performance_metrics
            ]
            db.add(run)
            await db.flush()

            if data.quality_scores:
                await self.store_quality_scores(db, variant, data.quality_scores)

            await db.commit()

        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"실험 업로드 실패: {str(e)}")
            raise

        logger.info(f"실험 업로드 완료: {data.model_name} {quantization} ({data.backend}) -> {run.id}")
        log_audit(
            action="upload_experiment",
            resource_type="test_run",
            resource_id=str(run.id),
            result="created",
            model_name=data.model_name,
            quantization=quantization,
        )

        return UploadResponse(
            id=str(run.id),
            model_variant_id=str(variant.id),
            quantization=quantization,
            message="Experiment uploaded",
            warnings=warnings,
        )

    async def upload_benchmarks(self, db: AsyncSession, data: BenchmarkUpload) -> UploadResponse:
        """
        품질 점수 업로드

        Args:
            db: 데이터베이스 세션
            data: 변형 식별 정보와 점수 묶음

        Returns:
            UploadResponse: 대상 모델 변형 정보
        """
        self.validate_scores(data.scores)

        quantization = canonicalize_quantization(data.quantization)
        warnings = self._quantization_warnings(data.quantization, quantization)

        try:
            variant, created = await self.get_or_create_variant(
                db, data.model_name, quantization, data.lora_adapter
            )
            written = await self.store_quality_scores(db, variant, data.scores)
            await db.commit()

        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"벤치마크 업로드 실패: {str(e)}")
            raise

        if written == 0:
            warnings.append("No benchmark scores provided")

        log_audit(
            action="upload_benchmarks",
            resource_type="model_variant",
            resource_id=str(variant.id),
            result="created" if created else "updated",
            scores_written=written,
        )

        return UploadResponse(
            id=str(variant.id),
            model_variant_id=str(variant.id),
            quantization=quantization,
            message=f"{written} benchmark score(s) stored",
            warnings=warnings,
        )


# 전역 서비스 인스턴스
upload_service = UploadService()
