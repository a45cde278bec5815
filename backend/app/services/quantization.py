# inference-bench/backend/app/services/quantization.py
"""
양자화 라벨 정규화 서비스

백엔드가 이미 암시하는 컨테이너 포맷 접미사(-GGUF)를 제거해
같은 양자화를 하나의 라벨로 모으고, 접미사가 붙은 중복 모델 변형을
정규 변형으로 병합하는 관리 작업을 제공합니다.
"""

import re
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Tuple

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.model_variant import ModelVariant
from app.models.quality_score import QUALITY_SCORE_MODELS
from app.models.test_run import TestRun
from app.utils.logger import logger, log_audit


CONTAINER_SUFFIXES: Tuple[str, ...] = ("-GGUF",)

_FAMILY_PATTERN = re.compile(r"^W\d+A(\d+)$")


def canonicalize_quantization(label: str) -> str:
    """
    양자화 라벨 정규화

    앞뒤 공백과 컨테이너 접미사(대소문자 무관)를 반복 제거합니다.
    접미사만으로 이루어진 라벨은 그대로 둡니다.
    canonicalize(canonicalize(x)) == canonicalize(x) 가 성립합니다.

    Args:
        label: 원본 양자화 라벨

    Returns:
        str: 정규화된 라벨
    """
    value = (label or "").strip()

    stripped = True
    while stripped:
        stripped = False
        for suffix in CONTAINER_SUFFIXES:
            if value.upper().endswith(suffix) and len(value) > len(suffix):
                value = value[:-len(suffix)].strip()
                stripped = True

    return value


def is_canonical(label: str) -> bool:
    return canonicalize_quantization(label) == label


def quantization_sort_key(label: str) -> Tuple[int, str]:
    """
    양자화 표시 순서 키

    고정밀도 포맷이 앞에 오고, 가중치/활성화 정수 양자화,
    GGUF 계열(Q*) 순으로 정렬합니다.
    """
    value = canonicalize_quantization(label).upper()

    fixed = {"FP32": 0, "BF16": 1, "FP16": 2, "FP8_DYNAMIC": 3, "FP8": 4}
    if value in fixed:
        return fixed[value], value

    match = _FAMILY_PATTERN.match(value)
    if match:
        activation_bits = match.group(1)
        if activation_bits == "16":
            return 10, value
        if activation_bits == "8":
            return 11, value
        return 20, value

    if value.startswith("W"):
        return 20, value

    if value.startswith("Q"):
        return 30, value

    return 99, value


@dataclass
class MergedVariantRecord:
    """병합된 변형 한 건의 기록"""
    model_name: str
    lora_adapter: str
    source_quantization: str
    target_quantization: str
    reassigned_scores: int = 0
    discarded_scores: int = 0
    target_created: bool = False


@dataclass
class MergeReport:
    """병합 작업 결과"""
    renamed_test_runs: int = 0
    merged_variants: int = 0
    created_variants: int = 0
    reassigned_scores: int = 0
    discarded_scores: int = 0
    details: List[MergedVariantRecord] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.renamed_test_runs or self.merged_variants)

    def to_dict(self) -> Dict:
        return asdict(self)


async def _rename_test_runs(db: AsyncSession) -> int:
    """접미사가 붙은 TestRun 양자화 라벨을 정규 라벨로 변경"""
    result = await db.execute(select(TestRun.quantization).distinct())
    renamed = 0

    for quantization in result.scalars().all():
        canonical = canonicalize_quantization(quantization)
        if canonical == quantization:
            continue

        updated = await db.execute(
            update(TestRun)
            .where(TestRun.quantization == quantization)
            .values(quantization=canonical)
            .execution_options(synchronize_session=False)
        )
        renamed += updated.rowcount or 0

    return renamed


async def _reassign_scores(db: AsyncSession, source_id, target_id) -> Tuple[int, int]:
    """
    원본 변형의 품질 점수를 대상 변형으로 재할당

    대상에 같은 행 키(카테고리, 벤치마크 이름 등)의 점수가 이미 있으면
    대상 점수를 유지하고 원본 점수는 버립니다.

    Returns:
        Tuple[int, int]: (재할당된 행 수, 버려진 행 수)
    """
    reassigned = 0
    discarded = 0

    for score_model in QUALITY_SCORE_MODELS:
        key_columns = [getattr(score_model, name) for name in score_model.merge_keys]

        target_rows = await db.execute(
            select(score_model.id, *key_columns).where(score_model.model_variant_id == target_id)
        )
        target_keys = {tuple(row[1:]) for row in target_rows.all()}

        source_rows = await db.execute(
            select(score_model.id, *key_columns).where(score_model.model_variant_id == source_id)
        )

        move_ids = []
        drop_ids = []
        for row in source_rows.all():
            if tuple(row[1:]) in target_keys:
                drop_ids.append(row[0])
            else:
                move_ids.append(row[0])

        if drop_ids:
            await db.execute(
                delete(score_model)
                .where(score_model.id.in_(drop_ids))
                .execution_options(synchronize_session=False)
            )
        if move_ids:
            await db.execute(
                update(score_model)
                .where(score_model.id.in_(move_ids))
                .values(model_variant_id=target_id)
                .execution_options(synchronize_session=False)
            )

        reassigned += len(move_ids)
        discarded += len(drop_ids)

    return reassigned, discarded


async def merge_duplicate_variants(db: AsyncSession) -> MergeReport:
    """
    접미사 중복 모델 변형 병합

    하나의 트랜잭션에서 TestRun 라벨을 정규화하고, 접미사가 붙은 각
    변형의 품질 점수를 정규 변형(없으면 생성)으로 옮긴 뒤 원본 변형을
    삭제합니다. 실패 시 전체를 롤백합니다. 두 번째 실행은 아무것도
    변경하지 않습니다.

    Args:
        db: 데이터베이스 세션

    Returns:
        MergeReport: 병합 결과

    Raises:
        Exception: 저장소 오류 (롤백 후 그대로 전파)
    """
    report = MergeReport()

    try:
        report.renamed_test_runs = await _rename_test_runs(db)

        result = await db.execute(
            select(ModelVariant).order_by(
                ModelVariant.model_name,
                ModelVariant.lora_adapter,
                ModelVariant.quantization
            )
        )
        variants = result.scalars().all()
        by_identity = {variant.identity: variant for variant in variants}

        for source in variants:
            canonical = canonicalize_quantization(source.quantization)
            if canonical == source.quantization:
                continue

            lora_adapter = source.lora_adapter or ""
            record = MergedVariantRecord(
                model_name=source.model_name,
                lora_adapter=lora_adapter,
                source_quantization=source.quantization,
                target_quantization=canonical,
            )

            target = by_identity.get((source.model_name, canonical, lora_adapter))
            if target is None:
                target = ModelVariant(
                    model_name=source.model_name,
                    quantization=canonical,
                    lora_adapter=lora_adapter
                )
                db.add(target)
                await db.flush()
                by_identity[target.identity] = target
                record.target_created = True
                report.created_variants += 1

            record.reassigned_scores, record.discarded_scores = await _reassign_scores(
                db, source.id, target.id
            )

            await db.execute(
                delete(ModelVariant)
                .where(ModelVariant.id == source.id)
                .execution_options(synchronize_session=False)
            )
            db.expunge(source)

            report.merged_variants += 1
            report.reassigned_scores += record.reassigned_scores
            report.discarded_scores += record.discarded_scores
            report.details.append(record)

            logger.info(
                f"변형 병합: {source.model_name} '{record.source_quantization}' -> '{canonical}' "
                f"(재할당 {record.reassigned_scores}, 폐기 {record.discarded_scores})"
            )

        await db.commit()

    except Exception as e:
        await db.rollback()
        logger.error(f"양자화 병합 실패, 롤백됨: {str(e)}")
        raise

    log_audit(
        action="merge_quantizations",
        resource_type="model_variant",
        resource_id="*",
        result="changed" if report.changed else "noop",
        renamed_test_runs=report.renamed_test_runs,
        merged_variants=report.merged_variants,
        discarded_scores=report.discarded_scores,
    )

    return report
