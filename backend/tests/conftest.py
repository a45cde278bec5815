# inference-bench/backend/tests/conftest.py
"""
pytest 설정 및 공통 픽스처

모든 테스트에서 사용할 공통 설정과 픽스처, 테스트 데이터 생성 헬퍼를 정의합니다.
"""

import os

# 앱 설정이 로드되기 전에 테스트 데이터베이스 지정
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"

from datetime import datetime
from typing import AsyncGenerator, Dict, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from main import app
from app.db.base import Base
from app.db.session import get_db
from app.models.hardware import HardwareProfile
from app.models.model_variant import ModelVariant
from app.models.quality_score import MMLUScore, GSM8KScore
from app.models.test_run import TestRun, PerformanceMetric
from app.schemas.performance import HardwareCategory
from app.services.performance_store import RunSnapshot
from app.services.variant_aggregator import RunRecord


# 테스트용 비동기 데이터베이스 엔진
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """
    테스트용 세션 팩토리 픽스처

    각 테스트마다 새로운 인메모리 데이터베이스를 생성합니다.
    """
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    # 테이블 생성
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    await test_engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """테스트용 데이터베이스 세션 픽스처"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db: AsyncSession, session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """
    테스트용 HTTP 클라이언트 픽스처

    FastAPI 앱과 테스트 데이터베이스를 연결합니다.
    요청마다 별도의 세션을 사용합니다.
    """
    async def get_test_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = get_test_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# 테스트에서 자주 쓰는 하드웨어 프로파일
H100 = {"gpu_model": "NVIDIA H100 80GB", "cpu_model": "AMD EPYC 9454", "cpu_arch": "x86_64"}
RTX_4090 = {"gpu_model": "NVIDIA RTX 4090", "cpu_model": "Intel Core i9-13900K", "cpu_arch": "x86_64"}
APPLE_CPU = {"gpu_model": "N/A", "cpu_model": "Apple M2 Max", "cpu_arch": "Apple Silicon"}


# 테스트 데이터 생성 헬퍼
async def create_hardware(db: AsyncSession, gpu_model: str, cpu_model: str, cpu_arch: str, **kwargs) -> HardwareProfile:
    """하드웨어 프로파일 생성 헬퍼"""
    profile = HardwareProfile(gpu_model=gpu_model, cpu_model=cpu_model, cpu_arch=cpu_arch, **kwargs)
    db.add(profile)
    await db.commit()
    return profile


async def create_test_run(
    db: AsyncSession,
    hardware: HardwareProfile,
    model_name: str = "Llama-3.1-8B",
    quantization: str = "FP16",
    backend: str = "vLLM",
    metrics: Optional[Dict[str, float]] = None,
    timestamp: Optional[datetime] = None,
    **kwargs
) -> TestRun:
    """TestRun과 메트릭 생성 헬퍼"""
    run = TestRun(
        model_name=model_name,
        quantization=quantization,
        backend=backend,
        hardware_profile_id=hardware.id,
        timestamp=timestamp or datetime(2024, 6, 1, 12, 0, 0),
        **kwargs
    )
    run.metrics = [
        PerformanceMetric(metric_name=name, value=value)
        for name, value in (metrics or {}).items()
    ]
    db.add(run)
    await db.commit()
    return run


async def create_variant(
    db: AsyncSession,
    model_name: str = "Llama-3.1-8B",
    quantization: str = "FP16",
    mmlu: Optional[Dict[str, float]] = None,
    gsm8k_accuracy: Optional[float] = None,
    lora_adapter: str = ""
) -> ModelVariant:
    """모델 변형과 품질 점수 생성 헬퍼"""
    variant = ModelVariant(model_name=model_name, quantization=quantization, lora_adapter=lora_adapter)
    db.add(variant)
    await db.flush()

    for category, score in (mmlu or {}).items():
        db.add(MMLUScore(model_variant_id=variant.id, category=category, score=score, total_questions=100))
    if gsm8k_accuracy is not None:
        db.add(GSM8KScore(model_variant_id=variant.id, accuracy=gsm8k_accuracy, total_problems=100))

    await db.commit()
    return variant


def make_snapshot(
    run_id: str,
    model_name: str = "Llama-3.1-8B",
    quantization: str = "FP16",
    gpu_model: str = "NVIDIA H100 80GB",
    cpu_model: str = "AMD EPYC 9454",
    cpu_arch: str = "x86_64",
    backend: str = "vLLM",
    metrics: Optional[Dict[str, float]] = None,
    **kwargs
) -> RunSnapshot:
    """데이터베이스 없이 사용하는 RunSnapshot 생성 헬퍼"""
    return RunSnapshot(
        id=run_id,
        model_name=model_name,
        quantization=quantization,
        lora_adapter=kwargs.pop("lora_adapter", ""),
        backend=backend,
        gpu_model=gpu_model,
        cpu_model=cpu_model,
        cpu_arch=cpu_arch,
        metrics=metrics if metrics is not None else {"tokens_per_second": 100.0, "memory_usage_gb": 10.0},
        **kwargs
    )


def make_record(
    run_id: str,
    model_name: str = "Llama-3.1-8B",
    hardware: str = "NVIDIA H100 80GB / AMD EPYC 9454",
    quantization: str = "FP16",
    **kwargs
) -> RunRecord:
    """순위/필터 테스트용 RunRecord 생성 헬퍼"""
    return RunRecord(
        test_run_id=run_id,
        model_name=model_name,
        quantization=quantization,
        lora_adapter=kwargs.pop("lora_adapter", ""),
        backend=kwargs.pop("backend", "vLLM"),
        hardware=hardware,
        hardware_category=kwargs.pop("hardware_category", HardwareCategory.DATACENTER_GPU),
        **kwargs
    )


def record_ids(records: List[RunRecord]) -> List[str]:
    return [record.test_run_id for record in records]
