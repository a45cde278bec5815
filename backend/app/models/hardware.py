# inference-bench/backend/app/models/hardware.py
"""
하드웨어 프로파일 모델
"""

from sqlalchemy import Column, String, Float, JSON, DateTime, Uuid
import uuid

from app.models.base import Base, utcnow


class HardwareProfile(Base):
    """하드웨어 프로파일 모델 (생성 후 변경하지 않음)"""

    __tablename__ = "hardware_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # GPU
    gpu_model = Column(String(255), nullable=False)
    gpu_memory_gb = Column(Float, nullable=True)

    # CPU / 메모리
    cpu_model = Column(String(255), nullable=False, default="")
    cpu_arch = Column(String(100), nullable=False, default="")
    ram_gb = Column(Float, nullable=True)
    ram_type = Column(String(50), nullable=True)

    # 실행 환경
    virtualization_type = Column(String(100), nullable=True)
    optimizations = Column(JSON, default=list)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def label(self) -> str:
        """하드웨어 플랫폼 표시 이름"""
        return f"{self.gpu_model} / {self.cpu_model}"

    def __repr__(self):
        return f"<HardwareProfile(id={self.id}, gpu='{self.gpu_model}', cpu='{self.cpu_model}')>"
