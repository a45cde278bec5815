# inference-bench/backend/app/models/model_variant.py
"""
모델 변형(ModelVariant) 모델

(model_name, quantization, lora_adapter) 조합이 하나의 변형이며,
하드웨어와 무관한 품질 점수는 모두 변형에 귀속됩니다.
"""

from sqlalchemy import Column, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid

from app.models.base import Base, TimestampMixin


class ModelVariant(Base, TimestampMixin):
    """모델 변형 모델"""

    __tablename__ = "model_variants"
    __table_args__ = (
        UniqueConstraint("model_name", "quantization", "lora_adapter", name="uq_model_variant_identity"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    model_name = Column(String(255), nullable=False, index=True)
    quantization = Column(String(100), nullable=False)
    lora_adapter = Column(String(255), nullable=False, default="", server_default="")

    # 품질 점수 (변형 삭제 시 함께 삭제)
    mmlu_scores = relationship(
        "MMLUScore", back_populates="model_variant",
        cascade="all, delete-orphan", passive_deletes=True
    )
    gsm8k_score = relationship(
        "GSM8KScore", back_populates="model_variant", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True
    )
    humaneval_score = relationship(
        "HumanEvalScore", back_populates="model_variant", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True
    )
    hellaswag_score = relationship(
        "HellaSwagScore", back_populates="model_variant", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True
    )
    truthfulqa_score = relationship(
        "TruthfulQAScore", back_populates="model_variant", uselist=False,
        cascade="all, delete-orphan", passive_deletes=True
    )
    generic_scores = relationship(
        "GenericBenchmarkScore", back_populates="model_variant",
        cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def identity(self):
        return (self.model_name, self.quantization, self.lora_adapter or "")

    def __repr__(self):
        return (
            f"<ModelVariant(id={self.id}, model_name='{self.model_name}', "
            f"quantization='{self.quantization}', lora_adapter='{self.lora_adapter}')>"
        )
