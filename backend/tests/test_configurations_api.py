# inference-bench/backend/tests/test_configurations_api.py
"""
구성 조회, 비교, 모델+하드웨어 분석 API 테스트
"""

import uuid
from datetime import datetime

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import H100, RTX_4090, create_hardware, create_test_run, create_variant


@pytest.fixture
async def h100(db: AsyncSession):
    return await create_hardware(db, **H100, gpu_memory_gb=80.0, ram_gb=512.0, ram_type="DDR5")


class TestConfigurationAPI:
    """구성 조회 API 테스트 클래스"""

    async def test_list_configurations_newest_first(self, client: AsyncClient, db: AsyncSession, h100):
        """구성 목록이 최신순이고 MMLU 전체 점수를 포함하는지 테스트"""
        await create_variant(db, quantization="FP16", mmlu={"STEM": 50.0, "Other": 70.0})
        old = await create_test_run(db, h100, metrics={"tokens_per_second": 80.0}, timestamp=datetime(2024, 1, 1))
        new = await create_test_run(
            db, h100, quantization="Q4_K_M-GGUF", backend="llama.cpp",
            metrics={"tokens_per_second": 95.0}, timestamp=datetime(2024, 2, 1)
        )

        response = await client.get("/api/v1/configurations")

        assert response.status_code == 200
        items = response.json()
        assert [item["id"] for item in items] == [str(new.id), str(old.id)]
        assert items[0]["quantization"] == "Q4_K_M"
        assert items[0]["overall_score"] is None
        assert items[1]["overall_score"] == pytest.approx(60.0)
        assert items[1]["hardware_category"] == "datacenter_gpu"

    async def test_get_configuration_detail(self, client: AsyncClient, db: AsyncSession, h100):
        """구성 상세에 카테고리 점수와 시스템 정보가 포함되는지 테스트"""
        await create_variant(db, quantization="FP16", mmlu={"STEM": 50.0, "Humanities": 70.0}, gsm8k_accuracy=0.6)
        run = await create_test_run(
            db, h100, notes="baseline",
            metrics={"tokens_per_second": 100.0, "gpu_power_watts": 400.0, "ttft_p95_ms": 85.0},
        )

        response = await client.get(f"/api/v1/configurations/{run.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["config"]["overall_score"] == pytest.approx(60.0)
        assert data["config"]["notes"] == "baseline"
        assert data["config"]["performance"]["tokens_per_kwh"] == pytest.approx(100.0 * 3_600_000 / 400.0)
        assert data["config"]["performance"]["ttft_p95_ms"] == 85.0
        assert [c["name"] for c in data["categories"]] == ["MMLU - Humanities", "MMLU - STEM", "GSM8K"]
        assert data["categories"][2]["score"] == pytest.approx(60.0)
        assert data["system_info"]["ram_type"] == "DDR5"
        assert data["system_info"]["gpu_memory_gb"] == 80.0

    @pytest.mark.parametrize("config_id", [str(uuid.uuid4()), "not-a-uuid"])
    async def test_get_configuration_not_found(self, client: AsyncClient, config_id: str):
        """존재하지 않는 구성은 404를 반환하는지 테스트"""
        response = await client.get(f"/api/v1/configurations/{config_id}")

        assert response.status_code == 404
        data = response.json()
        assert data["error_code"] == "RESOURCE_NOT_FOUND"
        assert data["resource_id"] == config_id

    async def test_compare_configurations(self, client: AsyncClient, db: AsyncSession, h100):
        """카테고리별 점수 차이가 b - a인지 테스트"""
        await create_variant(db, quantization="FP16", mmlu={"STEM": 70.0, "Other": 60.0})
        await create_variant(db, quantization="Q4_K_M", mmlu={"STEM": 65.0})
        run_a = await create_test_run(db, h100, quantization="FP16", metrics={"tokens_per_second": 90.0})
        run_b = await create_test_run(db, h100, quantization="Q4_K_M", metrics={"tokens_per_second": 140.0})

        response = await client.get(
            "/api/v1/comparison", params={"config_a": str(run_a.id), "config_b": str(run_b.id)}
        )

        assert response.status_code == 200
        data = response.json()
        categories = {c["name"]: c for c in data["categories"]}
        assert categories["MMLU - STEM"]["difference"] == pytest.approx(-5.0)
        assert categories["MMLU - Other"]["score_b"] is None
        assert categories["MMLU - Other"]["difference"] is None
        assert data["config_b"]["performance"]["tokens_per_second"] == 140.0

    async def test_compare_missing_configuration(self, client: AsyncClient, db: AsyncSession, h100):
        """비교 대상 중 하나가 없으면 404인지 테스트"""
        run = await create_test_run(db, h100, metrics={"tokens_per_second": 90.0})

        response = await client.get(
            "/api/v1/comparison", params={"config_a": str(run.id), "config_b": str(uuid.uuid4())}
        )

        assert response.status_code == 404


class TestUnmergedVariantQuality:
    """병합 전 접미사 변형의 점수가 모든 조회에서 같게 보이는지 테스트 클래스"""

    async def test_views_agree_before_merge(self, client: AsyncClient, db: AsyncSession, h100):
        """점수가 접미사 변형에만 있고 정규 변형은 비어 있을 때 그룹/상세/분석이 일치하는지 테스트"""
        await create_variant(db, quantization="Q4_K_M-GGUF", mmlu={"Math": 55.0})
        await create_variant(db, quantization="Q4_K_M")
        run = await create_test_run(
            db, h100, quantization="Q4_K_M", backend="llama.cpp", metrics={"tokens_per_second": 80.0}
        )

        grouped = await client.get("/api/v1/performance/grouped")
        detail = await client.get(f"/api/v1/configurations/{run.id}")
        analysis = await client.get(f"/api/v1/analysis/Llama-3.1-8B/{H100['gpu_model']}")

        assert grouped.json()["models"][0]["best_hardware"]["best_config"]["quality_score"] == pytest.approx(55.0)
        assert detail.json()["config"]["overall_score"] == pytest.approx(55.0)
        assert [c["name"] for c in detail.json()["categories"]] == ["MMLU - Math"]
        assert analysis.json()["quantizations"][0]["quality_score"] == pytest.approx(55.0)

    async def test_canonical_scores_take_precedence(self, client: AsyncClient, db: AsyncSession, h100):
        """두 변형 모두 점수가 있으면 정규 라벨 변형의 점수를 사용하는지 테스트"""
        await create_variant(db, quantization="Q4_K_M-GGUF", mmlu={"Math": 40.0})
        await create_variant(db, quantization="Q4_K_M", mmlu={"Math": 65.0})
        run = await create_test_run(db, h100, quantization="Q4_K_M-GGUF", metrics={"tokens_per_second": 80.0})

        grouped = await client.get("/api/v1/performance/grouped")
        detail = await client.get(f"/api/v1/configurations/{run.id}")

        assert grouped.json()["models"][0]["best_hardware"]["best_config"]["quality_score"] == pytest.approx(65.0)
        assert detail.json()["config"]["overall_score"] == pytest.approx(65.0)


class TestAnalysisAPI:
    """모델+하드웨어 분석 API 테스트 클래스"""

    async def test_analysis_heatmap_uses_unified_scale(self, client: AsyncClient, db: AsyncSession, h100):
        """모든 양자화가 하나의 색상 범위를 공유하는지 테스트"""
        await create_variant(db, quantization="FP16", mmlu={"STEM": 70.0})
        for power_limit, speed in ((300, 40.0), (450, 60.0)):
            await create_test_run(
                db, h100, quantization="FP16", gpu_power_limit_watts=power_limit, concurrent_requests=1,
                metrics={"tokens_per_second": speed, "gpu_power_watts": 250.0},
            )
        for power_limit, speed in ((300, 120.0), (450, 130.0)):
            await create_test_run(
                db, h100, quantization="Q4_K_M-GGUF", gpu_power_limit_watts=power_limit, concurrent_requests=1,
                metrics={"tokens_per_second": speed, "gpu_power_watts": 250.0},
            )

        response = await client.get(f"/api/v1/analysis/Llama-3.1-8B/{H100['gpu_model']}")

        assert response.status_code == 200
        data = response.json()
        heatmap = data["heatmap_data"]
        assert heatmap["scales"]["speed"] == {"min": 40.0, "max": 130.0}
        assert heatmap["quantizations"] == ["vLLM||FP16", "vLLM||Q4_K_M"]
        assert heatmap["power_limits"] == [300, 450]

        summaries = {s["quantization"]: s for s in data["quantizations"]}
        assert summaries["FP16"]["best_speed"] == 60.0
        assert summaries["FP16"]["quality_score"] == pytest.approx(70.0)
        assert summaries["Q4_K_M"]["quality_score"] is None
        assert [group["backend"] for group in data["backends"]] == ["vLLM"]

    async def test_analysis_not_found(self, client: AsyncClient, db: AsyncSession, h100):
        """일치하는 실행이 없으면 404인지 테스트"""
        await create_test_run(db, h100, metrics={"tokens_per_second": 90.0})

        response = await client.get(f"/api/v1/analysis/Llama-3.1-8B/{RTX_4090['gpu_model']}")

        assert response.status_code == 404

    async def test_analysis_filters_lora_adapter(self, client: AsyncClient, db: AsyncSession, h100):
        """LoRA 어댑터별로 실행을 구분하는지 테스트"""
        await create_test_run(db, h100, metrics={"tokens_per_second": 90.0})
        await create_test_run(db, h100, lora_adapter="sql-lora", metrics={"tokens_per_second": 70.0})

        base = await client.get(f"/api/v1/analysis/Llama-3.1-8B/{H100['gpu_model']}")
        lora = await client.get(
            f"/api/v1/analysis/Llama-3.1-8B/{H100['gpu_model']}", params={"lora": "sql-lora"}
        )

        assert base.json()["quantizations"][0]["best_speed"] == 90.0
        assert lora.json()["quantizations"][0]["best_speed"] == 70.0
        assert lora.json()["lora_adapter"] == "sql-lora"
