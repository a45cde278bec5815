"""
Pydantic 스키마 정의

API 요청/응답 검증을 위한 스키마들을 정의합니다.
"""

# inference-bench/backend/app/schemas/__init__.py
from app.schemas.performance import *
from app.schemas.analysis import *
from app.schemas.configuration import *
from app.schemas.upload import *
from app.schemas.admin import *
