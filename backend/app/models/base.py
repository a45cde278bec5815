# inference-bench/backend/app/models/base.py
"""
베이스 모델 클래스
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """타임존 정보 없는 UTC 현재 시각"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    """타임스탬프 믹스인"""
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
