# inference-bench/backend/tests/test_uploads_api.py
"""
업로드, 관리, 기본 엔드포인트 API 테스트
"""

from typing import Any, Dict

import pytest
from httpx import AsyncClient
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.hardware import HardwareProfile
from app.models.model_variant import ModelVariant
from app.models.quality_score import MMLUScore
from app.models.test_run import TestRun

from conftest import H100, create_hardware, create_test_run, create_variant


def experiment_payload(**overrides) -> Dict[str, Any]:
    """실험 업로드 요청 데이터 생성 헬퍼"""
    payload = {
        "model_name": "Llama-3.1-8B",
        "quantization": "FP16",
        "backend": "vLLM",
        "backend_version": "0.6.3",
        "hardware": {**H100, "gpu_memory_gb": 80, "ram_gb": 512, "ram_type": "DDR5"},
        "concurrent_requests": 4,
        "gpu_power_limit_watts": 450,
        "performance_metrics": [
            {"metric_name": "tokens_per_second", "value": 120.5, "unit": "tok/s"},
            {"metric_name": "memory_usage_gb", "value": 16.2, "unit": "GB"},
        ],
    }
    payload.update(overrides)
    return payload


async def _count(session_factory: async_sessionmaker, model) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


class TestUploadAPI:
    """업로드 API 테스트 클래스"""

    async def test_upload_experiment(self, client: AsyncClient, session_factory: async_sessionmaker):
        """실험 업로드 후 그룹 성능에 반영되는지 테스트"""
        response = await client.post("/api/v1/experiments", json=experiment_payload())

        assert response.status_code == 201
        data = response.json()
        assert data["quantization"] == "FP16"
        assert data["warnings"] == []
        assert await _count(session_factory, TestRun) == 1

        grouped = await client.get("/api/v1/performance/grouped", params={"sort_by": "speed"})
        best = grouped.json()["models"][0]["best_hardware"]["best_config"]
        assert best["id"] == data["id"]
        assert best["tokens_per_second"] == 120.5
        assert best["gpu_power_limit_watts"] == 450

    async def test_upload_canonicalizes_quantization(self, client: AsyncClient, session_factory: async_sessionmaker):
        """업로드 시 양자화 라벨이 정규화되고 경고가 남는지 테스트"""
        response = await client.post(
            "/api/v1/experiments",
            json=experiment_payload(quantization="Q4_K_M-GGUF", backend="llama.cpp")
        )

        assert response.status_code == 201
        data = response.json()
        assert data["quantization"] == "Q4_K_M"
        assert "Quantization 'Q4_K_M-GGUF' normalized to 'Q4_K_M'" in data["warnings"]

        async with session_factory() as session:
            runs = (await session.execute(select(TestRun))).scalars().all()
            assert [run.quantization for run in runs] == ["Q4_K_M"]

    async def test_upload_reuses_hardware_and_variant(self, client: AsyncClient, session_factory: async_sessionmaker):
        """같은 하드웨어/변형은 재사용되는지 테스트"""
        first = await client.post("/api/v1/experiments", json=experiment_payload())
        second = await client.post("/api/v1/experiments", json=experiment_payload(concurrent_requests=16))

        assert first.json()["model_variant_id"] == second.json()["model_variant_id"]
        assert await _count(session_factory, HardwareProfile) == 1
        assert await _count(session_factory, ModelVariant) == 1
        assert await _count(session_factory, TestRun) == 2

    async def test_upload_with_quality_scores(self, client: AsyncClient):
        """실험과 함께 올린 품질 점수가 변형에 귀속되는지 테스트"""
        payload = experiment_payload(quality_scores={
            "mmlu": [
                {"category": "STEM", "score": 62.0, "total_questions": 100, "correct_answers": 62},
                {"category": "Humanities", "score": 74.0},
            ]
        })

        response = await client.post("/api/v1/experiments", json=payload)
        grouped = await client.get("/api/v1/performance/grouped")

        assert response.status_code == 201
        best = grouped.json()["models"][0]["best_hardware"]["best_config"]
        assert best["quality_score"] == pytest.approx(68.0)

    async def test_upload_metric_warnings(self, client: AsyncClient):
        """치명적이지 않은 메트릭 이상은 경고로 반환하는지 테스트"""
        payload = experiment_payload(performance_metrics=[
            {"metric_name": "tokens_per_second", "value": 5000.0},
        ])

        response = await client.post("/api/v1/experiments", json=payload)

        assert response.status_code == 201
        warnings = response.json()["warnings"]
        assert "Missing memory_usage_gb metric" in warnings
        assert "Unusually high tokens_per_second: 5000.0" in warnings

    async def test_upload_inconsistent_answer_counts(self, client: AsyncClient, session_factory: async_sessionmaker):
        """정답 수가 문항 수보다 많으면 400이고 아무것도 기록하지 않는지 테스트"""
        payload = experiment_payload(quality_scores={
            "mmlu": [{"category": "STEM", "score": 50.0, "total_questions": 10, "correct_answers": 11}]
        })

        response = await client.post("/api/v1/experiments", json=payload)

        assert response.status_code == 400
        assert response.json()["field"] == "mmlu[0].correct_answers"
        assert await _count(session_factory, TestRun) == 0

    async def test_upload_cpu_only_with_gpu_memory(self, client: AsyncClient):
        """CPU 전용 시스템에 GPU 메모리가 있으면 400인지 테스트"""
        payload = experiment_payload(hardware={
            "gpu_model": "CPU Only", "gpu_memory_gb": 24, "cpu_model": "AMD EPYC 9654", "cpu_arch": "x86_64"
        })

        response = await client.post("/api/v1/experiments", json=payload)

        assert response.status_code == 400
        assert response.json()["field"] == "hardware.gpu_memory_gb"

    async def test_upload_rejects_negative_metric(self, client: AsyncClient):
        """음수 메트릭은 422인지 테스트"""
        payload = experiment_payload(performance_metrics=[{"metric_name": "tokens_per_second", "value": -1}])

        response = await client.post("/api/v1/experiments", json=payload)

        assert response.status_code == 422

    async def test_upload_benchmarks_replaces_category(self, client: AsyncClient, session_factory: async_sessionmaker):
        """같은 카테고리의 점수를 다시 올리면 교체되는지 테스트"""
        body = {
            "model_name": "Llama-3.1-8B",
            "quantization": "Q4_K_M-GGUF",
            "scores": {"mmlu": [{"category": "STEM", "score": 50.0}]},
        }
        first = await client.post("/api/v1/benchmarks", json=body)

        body["scores"] = {"mmlu": [{"category": "STEM", "score": 58.5}], "gsm8k": {"accuracy": 0.4}}
        second = await client.post("/api/v1/benchmarks", json=body)

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json()["message"] == "2 benchmark score(s) stored"
        assert first.json()["model_variant_id"] == second.json()["model_variant_id"]

        async with session_factory() as session:
            scores = (await session.execute(select(MMLUScore))).scalars().all()
            assert [score.score for score in scores] == [58.5]

            variants = (await session.execute(select(ModelVariant))).scalars().all()
            assert [variant.quantization for variant in variants] == ["Q4_K_M"]

    async def test_upload_benchmarks_empty(self, client: AsyncClient):
        """점수가 없는 업로드는 경고를 반환하는지 테스트"""
        response = await client.post(
            "/api/v1/benchmarks",
            json={"model_name": "Llama-3.1-8B", "quantization": "FP16", "scores": {}}
        )

        assert response.status_code == 200
        assert "No benchmark scores provided" in response.json()["warnings"]


class TestAdminAPI:
    """관리 API 테스트 클래스"""

    async def test_merge_quantizations(self, client: AsyncClient, db: AsyncSession):
        """병합 후 그룹 성능에서 하나의 변형으로 보이는지 테스트"""
        hardware = await create_hardware(db, **H100)
        await create_test_run(db, hardware, quantization="Q4_K_M-GGUF", metrics={"tokens_per_second": 70.0})
        await create_test_run(db, hardware, quantization="Q4_K_M", metrics={"tokens_per_second": 75.0})
        await create_variant(db, quantization="Q4_K_M-GGUF", mmlu={"STEM": 61.0})

        response = await client.post("/api/v1/admin/merge-quantizations")

        assert response.status_code == 200
        report = response.json()
        assert report["renamed_test_runs"] == 1
        assert report["merged_variants"] == 1
        assert report["created_variants"] == 1
        assert report["details"][0]["source_quantization"] == "Q4_K_M-GGUF"

        grouped = await client.get("/api/v1/performance/grouped")
        model = grouped.json()["models"][0]
        assert model["total_quantizations"] == 1
        assert model["best_hardware"]["best_config"]["quality_score"] == 61.0

        again = await client.post("/api/v1/admin/merge-quantizations")
        assert again.json()["merged_variants"] == 0
        assert again.json()["renamed_test_runs"] == 0


class TestRootEndpoints:
    """기본 엔드포인트 테스트 클래스"""

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "InferenceBench"

    async def test_health(self, client: AsyncClient):
        """헬스체크가 데이터베이스 연결을 확인하는지 테스트"""
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["database"] == "ok"
        assert "X-Process-Time" in response.headers
        assert "X-Request-ID" in response.headers

    async def test_metrics(self, client: AsyncClient):
        """Prometheus 메트릭 노출 테스트"""
        await client.get("/")
        response = await client.get("/metrics")

        assert response.status_code == 200
        assert "inferencebench_requests_total" in response.text

    async def test_metrics_use_route_template(self, client: AsyncClient):
        """경로 파라미터가 있는 요청은 라우트 템플릿으로 기록되는지 테스트"""
        config_id = "3f1c9e0a-7b2d-4c55-9a0e-5d8f2b6c1e47"
        await client.get(f"/api/v1/configurations/{config_id}")
        await client.get("/api/v1/analysis/Some-Model/Some-GPU")

        response = await client.get("/metrics")

        assert 'endpoint="/api/v1/configurations/{config_id}"' in response.text
        assert 'endpoint="/api/v1/analysis/{model_name}/{gpu_model}"' in response.text
        assert config_id not in response.text
        assert "Some-Model" not in response.text
