# inference-bench/backend/tests/test_filters.py
"""
필터 파이프라인 테스트
"""

from app.schemas.performance import HardwareCategory
from app.services.filter_pipeline import FilterCriteria, apply_filters, run_filter_pipeline
from app.services.variant_aggregator import AggregationResult, ModelUniverse

from conftest import make_record, record_ids


def _aggregation(records) -> AggregationResult:
    universes = {}
    for record in records:
        universe = universes.setdefault(record.model_name, ModelUniverse(model_name=record.model_name))
        universe.hardware_platforms.add(record.hardware)
        universe.quantizations.add(record.quantization)
    return AggregationResult(records=list(records), universes=universes)


class TestFilterCriteria:
    """필터 조건 테스트 클래스"""

    def test_empty_criteria_accepts_everything(self):
        """조건이 없으면 모든 레코드를 통과시키는지 테스트"""
        records = [make_record("a"), make_record("b", quality_score=None, tokens_per_second=None)]

        assert record_ids(apply_filters(records, FilterCriteria())) == ["a", "b"]

    def test_min_quality_rejects_unknown(self):
        """양수 최소 품질 조건이 알 수 없는 품질을 제외하는지 테스트"""
        records = [
            make_record("high", quality_score=70.0),
            make_record("low", quality_score=40.0),
            make_record("unknown", quality_score=None),
        ]

        assert record_ids(apply_filters(records, FilterCriteria(min_quality=50.0))) == ["high"]

    def test_zero_min_quality_is_no_constraint(self):
        """최소 품질 0은 조건 없음으로 취급하는지 테스트"""
        records = [make_record("unknown", quality_score=None)]

        assert record_ids(apply_filters(records, FilterCriteria(min_quality=0.0))) == ["unknown"]

    def test_min_speed_is_inclusive(self):
        """최소 속도 경계값이 포함되는지 테스트"""
        records = [
            make_record("edge", tokens_per_second=100.0),
            make_record("slow", tokens_per_second=99.9),
            make_record("unknown", tokens_per_second=None),
        ]

        assert record_ids(apply_filters(records, FilterCriteria(min_speed=100.0))) == ["edge"]

    def test_unknown_memory_passes_max_memory(self):
        """알 수 없는 메모리는 최대 메모리 조건을 통과하는지 테스트"""
        records = [
            make_record("small", memory_gb=8.0),
            make_record("large", memory_gb=40.0),
            make_record("unknown", memory_gb=None),
        ]

        assert record_ids(apply_filters(records, FilterCriteria(max_memory_gb=24.0))) == ["small", "unknown"]

    def test_hardware_categories(self):
        """하드웨어 카테고리 조건 테스트"""
        records = [
            make_record("dc", hardware_category=HardwareCategory.DATACENTER_GPU),
            make_record("consumer", hardware_category=HardwareCategory.CONSUMER_GPU),
            make_record("cpu", hardware_category=HardwareCategory.CONSUMER_CPU),
        ]
        criteria = FilterCriteria(
            hardware_categories=frozenset({HardwareCategory.CONSUMER_GPU, HardwareCategory.CONSUMER_CPU})
        )

        assert record_ids(apply_filters(records, criteria)) == ["consumer", "cpu"]


class TestFilterPipeline:
    """필터 파이프라인 투명성 카운트 테스트 클래스"""

    def test_counts_use_pre_filter_totals(self):
        """전체 수는 필터 전 기준, 통과 수는 필터 후 기준인지 테스트"""
        records = [
            make_record("r1", hardware="H100 / EPYC", tokens_per_second=150.0, quantization="FP16"),
            make_record("r2", hardware="A100 / EPYC", tokens_per_second=120.0, quantization="FP16"),
            make_record("r3", hardware="RTX 4090 / i9", tokens_per_second=60.0, quantization="Q4_K_M"),
            make_record("r4", hardware="RTX 3090 / i7", tokens_per_second=40.0, quantization="Q4_K_M"),
            make_record("r5", hardware="N/A / M2", tokens_per_second=15.0, quantization="Q8_0"),
        ]

        result = run_filter_pipeline(_aggregation(records), FilterCriteria(min_speed=100.0))
        counts = result.counts["Llama-3.1-8B"]

        assert record_ids(result.records) == ["r1", "r2"]
        assert counts.qualifying_platforms == 2
        assert counts.total_hardware_platforms == 5
        assert counts.qualifying_quantizations == 1
        assert counts.total_quantizations == 3

    def test_models_without_survivors_are_dropped(self):
        """조건을 통과한 레코드가 없는 모델은 결과에서 빠지는지 테스트"""
        records = [
            make_record("fast", model_name="Fast", tokens_per_second=200.0),
            make_record("slow", model_name="Slow", tokens_per_second=10.0),
        ]

        result = run_filter_pipeline(_aggregation(records), FilterCriteria(min_speed=100.0))

        assert result.model_names == ["Fast"]
