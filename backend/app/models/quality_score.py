# inference-bench/backend/app/models/quality_score.py
"""
품질 벤치마크 점수 모델

모든 점수는 TestRun이 아닌 ModelVariant에 귀속됩니다.
merge_keys는 같은 변형 안에서 한 행을 식별하는 컬럼이며,
변형 병합 시 충돌 판정에 사용됩니다.
"""

from sqlalchemy import Column, String, Integer, Float, JSON, DateTime, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.models.base import Base, utcnow


def _variant_fk():
    return Column(
        Uuid,
        ForeignKey("model_variants.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )


class MMLUScore(Base):
    """MMLU 카테고리별 점수"""

    __tablename__ = "mmlu_scores"
    __table_args__ = (
        UniqueConstraint("model_variant_id", "category", name="uq_mmlu_variant_category"),
    )
    merge_keys = ("category",)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    model_variant_id = _variant_fk()
    category = Column(String(100), nullable=False)
    score = Column(Float, nullable=False)
    total_questions = Column(Integer, nullable=True)
    correct_answers = Column(Integer, nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    model_variant = relationship("ModelVariant", back_populates="mmlu_scores")

    def __repr__(self):
        return f"<MMLUScore(category='{self.category}', score={self.score})>"


class GSM8KScore(Base):
    """GSM8K 점수 (accuracy는 0~1 비율)"""

    __tablename__ = "gsm8k_scores"
    __table_args__ = (
        UniqueConstraint("model_variant_id", name="uq_gsm8k_variant"),
    )
    merge_keys = ()

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    model_variant_id = _variant_fk()
    problems_solved = Column(Integer, nullable=True)
    total_problems = Column(Integer, nullable=True)
    accuracy = Column(Float, nullable=False)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    model_variant = relationship("ModelVariant", back_populates="gsm8k_score")


class HumanEvalScore(Base):
    """HumanEval pass@k 점수"""

    __tablename__ = "humaneval_scores"
    __table_args__ = (
        UniqueConstraint("model_variant_id", name="uq_humaneval_variant"),
    )
    merge_keys = ()

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    model_variant_id = _variant_fk()
    pass_at_1 = Column(Float, nullable=False)
    pass_at_10 = Column(Float, nullable=True)
    pass_at_100 = Column(Float, nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    model_variant = relationship("ModelVariant", back_populates="humaneval_score")


class HellaSwagScore(Base):
    """HellaSwag 점수"""

    __tablename__ = "hellaswag_scores"
    __table_args__ = (
        UniqueConstraint("model_variant_id", name="uq_hellaswag_variant"),
    )
    merge_keys = ()

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    model_variant_id = _variant_fk()
    accuracy = Column(Float, nullable=False)
    total_questions = Column(Integer, nullable=True)
    correct_answers = Column(Integer, nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    model_variant = relationship("ModelVariant", back_populates="hellaswag_score")


class TruthfulQAScore(Base):
    """TruthfulQA 점수"""

    __tablename__ = "truthfulqa_scores"
    __table_args__ = (
        UniqueConstraint("model_variant_id", name="uq_truthfulqa_variant"),
    )
    merge_keys = ()

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    model_variant_id = _variant_fk()
    truthful_score = Column(Float, nullable=False)
    truthful_and_informative_score = Column(Float, nullable=True)
    total_questions = Column(Integer, nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    model_variant = relationship("ModelVariant", back_populates="truthfulqa_score")


class GenericBenchmarkScore(Base):
    """전용 테이블이 없는 벤치마크 점수"""

    __tablename__ = "generic_benchmark_scores"
    __table_args__ = (
        UniqueConstraint("model_variant_id", "benchmark_name", name="uq_generic_variant_benchmark"),
    )
    merge_keys = ("benchmark_name",)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    model_variant_id = _variant_fk()
    benchmark_name = Column(String(100), nullable=False)
    overall_score = Column(Float, nullable=False)
    sub_scores = Column(JSON, nullable=True)
    timestamp = Column(DateTime, default=utcnow, nullable=False)

    model_variant = relationship("ModelVariant", back_populates="generic_scores")

    def __repr__(self):
        return f"<GenericBenchmarkScore(benchmark_name='{self.benchmark_name}', overall_score={self.overall_score})>"


# 변형 병합 시 재할당 대상 테이블
QUALITY_SCORE_MODELS = (
    MMLUScore,
    GSM8KScore,
    HumanEvalScore,
    HellaSwagScore,
    TruthfulQAScore,
    GenericBenchmarkScore,
)
