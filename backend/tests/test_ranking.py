# inference-bench/backend/tests/test_ranking.py
"""
순위 및 선택 엔진 테스트
"""

import random
from datetime import datetime

import pytest

from app.schemas.performance import SortBy, SortDirection
from app.services.ranking import (
    default_direction,
    order_records,
    rank_models,
    select_best,
    select_platforms,
)

from conftest import make_record, record_ids


class TestOrderRecords:
    """레코드 정렬 테스트 클래스"""

    def test_default_directions(self):
        """정렬 기준별 기본 방향 테스트"""
        assert default_direction(SortBy.QUALITY) == SortDirection.DESC
        assert default_direction(SortBy.SPEED) == SortDirection.DESC
        assert default_direction(SortBy.EFFICIENCY) == SortDirection.DESC
        assert default_direction(SortBy.MEMORY) == SortDirection.ASC
        assert default_direction(SortBy.MODEL_NAME) == SortDirection.ASC

    @pytest.mark.parametrize("direction,expected", [
        (SortDirection.DESC, ["fast", "mid", "slow", "unknown"]),
        (SortDirection.ASC, ["slow", "mid", "fast", "unknown"]),
    ])
    def test_unknown_values_sort_last(self, direction, expected):
        """알 수 없는 값은 방향과 무관하게 마지막인지 테스트"""
        records = [
            make_record("unknown", tokens_per_second=None),
            make_record("slow", tokens_per_second=10.0),
            make_record("fast", tokens_per_second=90.0),
            make_record("mid", tokens_per_second=50.0),
        ]

        assert record_ids(order_records(records, SortBy.SPEED, direction)) == expected

    def test_ties_prefer_newest_then_lowest_id(self):
        """동점이면 최신 timestamp, 그 다음 ID 오름차순인지 테스트"""
        records = [
            make_record("c", tokens_per_second=80.0, timestamp=datetime(2024, 1, 1)),
            make_record("b", tokens_per_second=80.0, timestamp=datetime(2024, 3, 1)),
            make_record("a", tokens_per_second=80.0, timestamp=datetime(2024, 1, 1)),
            make_record("d", tokens_per_second=80.0, timestamp=None),
        ]

        assert record_ids(order_records(records, SortBy.SPEED, SortDirection.DESC)) == ["b", "a", "c", "d"]

    def test_order_is_independent_of_input_order(self):
        """입력 순서가 달라도 결과가 같은지 테스트"""
        records = [
            make_record(f"run-{i}", quality_score=float(i % 3), timestamp=datetime(2024, 1, 1 + i % 2))
            for i in range(12)
        ]
        expected = record_ids(order_records(records, SortBy.QUALITY, SortDirection.DESC))

        shuffled = list(records)
        random.Random(7).shuffle(shuffled)

        assert record_ids(order_records(shuffled, SortBy.QUALITY, SortDirection.DESC)) == expected

    def test_select_best_memory_ascending(self):
        """메모리 기준은 가장 작은 값을 고르는지 테스트"""
        records = [make_record("big", memory_gb=30.0), make_record("small", memory_gb=9.5)]

        assert select_best(records, SortBy.MEMORY, SortDirection.ASC).test_run_id == "small"

    def test_select_best_empty(self):
        assert select_best([], SortBy.SPEED, SortDirection.DESC) is None


class TestSelection:
    """플랫폼/모델 선택 테스트 클래스"""

    def test_select_platforms_picks_best_per_hardware(self):
        """플랫폼마다 최고 구성을 고르고 플랫폼을 순서대로 반환하는지 테스트"""
        records = [
            make_record("h100-slow", hardware="H100", tokens_per_second=100.0),
            make_record("h100-fast", hardware="H100", tokens_per_second=180.0),
            make_record("rtx", hardware="RTX 4090", tokens_per_second=120.0),
        ]

        platforms = select_platforms(records, SortBy.SPEED, SortDirection.DESC)

        assert [p.hardware for p in platforms] == ["H100", "RTX 4090"]
        assert platforms[0].best_config.test_run_id == "h100-fast"
        assert platforms[0].total_configs == 2
        assert platforms[1].total_configs == 1

    def test_best_configuration_uses_sort_key(self):
        """정렬 기준이 바뀌면 최고 구성도 바뀌는지 테스트"""
        records = [
            make_record("fast-big", hardware="H100", tokens_per_second=200.0, memory_gb=40.0),
            make_record("slow-small", hardware="H100", tokens_per_second=80.0, memory_gb=12.0),
        ]

        by_speed = select_platforms(records, SortBy.SPEED, SortDirection.DESC)[0]
        by_memory = select_platforms(records, SortBy.MEMORY, SortDirection.ASC)[0]

        assert by_speed.best_config.test_run_id == "fast-big"
        assert by_memory.best_config.test_run_id == "slow-small"

    def test_rank_models_by_best_platform(self):
        """모델 순위가 최고 플랫폼 값 기준인지 테스트"""
        records = [
            make_record("a1", model_name="Alpha", tokens_per_second=50.0),
            make_record("b1", model_name="Beta", tokens_per_second=150.0),
            make_record("b2", model_name="Beta", hardware="RTX 4090", tokens_per_second=20.0),
            make_record("g1", model_name="Gamma", tokens_per_second=None, memory_gb=10.0),
        ]

        rankings = rank_models(records, SortBy.SPEED, SortDirection.DESC)

        assert [r.model_name for r in rankings] == ["Beta", "Alpha", "Gamma"]
        assert rankings[0].best_platform.best_config.test_run_id == "b1"
        assert len(rankings[0].platforms) == 2

    def test_model_ties_break_by_name(self):
        """모델 값이 같으면 모델 이름 오름차순인지 테스트"""
        records = [
            make_record("z", model_name="Zeta", quality_score=70.0),
            make_record("a", model_name="Alpha", quality_score=70.0),
        ]

        rankings = rank_models(records, SortBy.QUALITY, SortDirection.DESC)

        assert [r.model_name for r in rankings] == ["Alpha", "Zeta"]

    def test_sort_by_model_name(self):
        """모델 이름 정렬 테스트"""
        records = [make_record("b", model_name="beta"), make_record("a", model_name="Alpha")]

        ascending = rank_models(records, SortBy.MODEL_NAME, SortDirection.ASC)
        descending = rank_models(records, SortBy.MODEL_NAME, SortDirection.DESC)

        assert [r.model_name for r in ascending] == ["Alpha", "beta"]
        assert [r.model_name for r in descending] == ["beta", "Alpha"]
