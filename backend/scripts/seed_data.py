#!/usr/bin/env python3
# inference-bench/backend/scripts/seed_data.py
"""
초기 데이터 생성 스크립트

개발 및 화면 확인을 위한 샘플 하드웨어/실험/품질 점수를 생성합니다.
일부 변형은 "-GGUF" 접미사로 업로드하여 병합 동작을 확인할 수 있습니다.
"""

import asyncio
import random
import sys
from datetime import timedelta
from pathlib import Path
from typing import Dict, List

# 프로젝트 루트를 Python 경로에 추가
sys.path.append(str(Path(__file__).parent.parent))

from app.db.session import AsyncSessionLocal, engine, init_db
from app.models.base import utcnow
from app.schemas.upload import (
    BenchmarkUpload,
    ExperimentUpload,
    GSM8KInput,
    HardwareProfileInput,
    MetricInput,
    MMLUCategoryInput,
    QualityScoresInput,
)
from app.services.quantization import merge_duplicate_variants
from app.services.upload_service import upload_service
from app.utils.logger import logger


HARDWARE_PROFILES: List[Dict] = [
    {"gpu_model": "NVIDIA H100 80GB", "gpu_memory_gb": 80, "cpu_model": "AMD EPYC 9454", "cpu_arch": "x86_64", "ram_gb": 512, "ram_type": "DDR5"},
    {"gpu_model": "NVIDIA RTX 4090", "gpu_memory_gb": 24, "cpu_model": "Intel Core i9-13900K", "cpu_arch": "x86_64", "ram_gb": 64, "ram_type": "DDR5"},
    {"gpu_model": "N/A", "gpu_memory_gb": None, "cpu_model": "Apple M2 Max", "cpu_arch": "Apple Silicon", "ram_gb": 96, "ram_type": "LPDDR5"},
]

MODELS: Dict[str, List[str]] = {
    "Llama-3.1-8B-Instruct": ["FP16", "W8A16", "Q4_K_M-GGUF"],
    "Qwen2.5-7B-Instruct": ["BF16", "FP8", "Q8_0"],
}

MMLU_CATEGORIES = ["STEM", "Humanities", "Social Sciences", "Other"]

BACKENDS = ["vLLM", "llama.cpp"]


class DataSeeder:
    """데이터 시딩 클래스"""

    def __init__(self, seed: int = 42, runs_per_combination: int = 3):
        self.random = random.Random(seed)
        self.runs_per_combination = runs_per_combination

    def _metrics(self, quantization: str, hardware: Dict) -> List[MetricInput]:
        """양자화/하드웨어에 따라 그럴듯한 메트릭 생성"""
        base_speed = 120.0 if "H100" in hardware["gpu_model"] else 60.0
        if hardware["gpu_model"] == "N/A":
            base_speed = 18.0
        if quantization.startswith(("Q", "W")):
            base_speed *= 1.4

        speed = base_speed * self.random.uniform(0.8, 1.2)
        return [
            MetricInput(metric_name="tokens_per_second", value=round(speed, 2), unit="tok/s"),
            MetricInput(metric_name="memory_usage_gb", value=round(self.random.uniform(5, 18), 2), unit="GB"),
            MetricInput(metric_name="gpu_power_watts", value=round(self.random.uniform(150, 650), 1), unit="W"),
            MetricInput(metric_name="ttft_p95_ms", value=round(self.random.uniform(40, 400), 1), unit="ms"),
            MetricInput(metric_name="tpot_p95_ms", value=round(self.random.uniform(8, 60), 1), unit="ms"),
            MetricInput(metric_name="itl_p95_ms", value=round(self.random.uniform(8, 60), 1), unit="ms"),
        ]

    async def create_experiments(self) -> int:
        """모델 x 양자화 x 하드웨어 실험 생성"""
        created = 0
        now = utcnow()

        for model_name, quantizations in MODELS.items():
            for quantization in quantizations:
                for hardware in HARDWARE_PROFILES:
                    backend = "llama.cpp" if hardware["gpu_model"] == "N/A" else self.random.choice(BACKENDS)
                    for index in range(self.runs_per_combination):
                        upload = ExperimentUpload(
                            model_name=model_name,
                            quantization=quantization,
                            backend=backend,
                            backend_version="0.6.3" if backend == "vLLM" else "b3600",
                            hardware=HardwareProfileInput(**hardware),
                            concurrent_requests=[1, 4, 16][index % 3],
                            max_context_length=8192,
                            load_pattern="constant",
                            dataset_name="sharegpt",
                            gpu_power_limit_watts=[300, 450, 700][index % 3],
                            timestamp=now - timedelta(hours=created),
                            performance_metrics=self._metrics(quantization, hardware),
                        )
                        async with AsyncSessionLocal() as db:
                            await upload_service.upload_experiment(db, upload)
                        created += 1

        logger.info(f"✅ 실험 {created}건 생성 완료")
        return created

    async def create_quality_scores(self) -> int:
        """모델 변형별 MMLU/GSM8K 점수 생성"""
        created = 0

        for model_name, quantizations in MODELS.items():
            for quantization in quantizations:
                base = self.random.uniform(60, 75)
                upload = BenchmarkUpload(
                    model_name=model_name,
                    quantization=quantization,
                    scores=QualityScoresInput(
                        mmlu=[
                            MMLUCategoryInput(
                                category=category,
                                score=round(min(100.0, base + self.random.uniform(-8, 8)), 2),
                                total_questions=1000,
                            )
                            for category in MMLU_CATEGORIES
                        ],
                        gsm8k=GSM8KInput(accuracy=round(self.random.uniform(0.5, 0.85), 3), total_problems=1319),
                    ),
                )
                async with AsyncSessionLocal() as db:
                    await upload_service.upload_benchmarks(db, upload)
                created += 1

        logger.info(f"✅ 품질 점수 {created}건 생성 완료")
        return created


async def main(merge: bool = False, runs_per_combination: int = 3, seed: int = 42) -> bool:
    """메인 실행 함수"""
    seeder = DataSeeder(seed=seed, runs_per_combination=runs_per_combination)

    try:
        logger.info("🌱 초기 데이터 생성 시작...")

        await init_db()
        await seeder.create_quality_scores()
        await seeder.create_experiments()

        if merge:
            async with AsyncSessionLocal() as db:
                report = await merge_duplicate_variants(db)
            logger.info(f"🔀 양자화 병합: 변형 {report.merged_variants}개")

        logger.info("🎉 초기 데이터 생성 완료!")
        return True

    except Exception as e:
        logger.error(f"💥 데이터 생성 중 오류: {str(e)}")
        return False
    finally:
        await engine.dispose()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="초기 데이터 생성")
    parser.add_argument(
        "--merge",
        action="store_true",
        help="생성 후 접미사 중복 양자화 변형 병합"
    )
    parser.add_argument(
        "--runs",
        type=int,
        default=3,
        help="모델/양자화/하드웨어 조합당 실험 수"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=42,
        help="난수 시드"
    )

    args = parser.parse_args()

    # 비동기 실행
    success = asyncio.run(main(merge=args.merge, runs_per_combination=args.runs, seed=args.seed))

    if success:
        print("\n✅ 초기 데이터 생성이 완료되었습니다!")
        sys.exit(0)
    else:
        print("\n❌ 초기 데이터 생성에 실패했습니다!")
        sys.exit(1)
