# inference-bench/backend/app/db/session.py
"""
데이터베이스 세션 관리

SQLAlchemy 비동기 엔진과 세션 팩토리를 설정합니다.
커넥션 풀은 크기가 제한되며, 고갈 시 POOL_TIMEOUT 후 실패합니다.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.core.config import settings
from app.utils.logger import logger


def _engine_options() -> Dict[str, Any]:
    """드라이버별 엔진 옵션 구성"""
    options: Dict[str, Any] = {
        "echo": settings.DATABASE_ECHO,  # SQL 로깅
        "pool_pre_ping": True,  # 연결 상태 확인
    }

    # SQLite는 QueuePool 옵션을 지원하지 않음
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        )

    return options


# 비동기 엔진 생성
engine = create_async_engine(settings.DATABASE_URL, **_engine_options())

# 비동기 세션 팩토리
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # 커밋 후에도 객체 사용 가능
    autocommit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    데이터베이스 세션 의존성

    요청당 하나의 세션을 생성하고, 정상 종료 시 커밋,
    예외 발생 시 롤백합니다.

    Yields:
        AsyncSession: 데이터베이스 세션
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db():
    """
    데이터베이스 초기화

    등록된 모든 모델의 테이블을 생성합니다.
    """
    # 모델 등록을 위해 base 모듈을 지연 import
    from app.db.base import Base

    try:
        logger.info("데이터베이스 초기화 시작...")

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("데이터베이스 초기화 완료")

    except Exception as e:
        logger.error(f"데이터베이스 초기화 중 오류: {str(e)}")
        raise
