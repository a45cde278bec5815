# inference-bench/backend/app/utils/exceptions.py
"""
커스텀 예외 클래스 정의

집계 엔진과 API 계층에서 사용하는 예외들과
HTTP 상태 코드 매핑을 정의합니다.
"""

from typing import Any, Dict, Optional

from sqlalchemy import exc as sa_exc


class InferenceBenchException(Exception):
    """InferenceBench 기본 예외 클래스"""

    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(InferenceBenchException):
    """요청 파라미터 검증 실패 예외"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(message, error_code="VALIDATION_ERROR", **kwargs)


class ResourceNotFoundError(InferenceBenchException):
    """리소스 없음 예외 (설정 ID, 모델/하드웨어 조합 등)"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message, error_code="RESOURCE_NOT_FOUND", **kwargs)


class ResourceConflictError(InferenceBenchException):
    """리소스 충돌 예외"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        conflicting_field: Optional[str] = None,
        **kwargs
    ):
        self.resource_type = resource_type
        self.conflicting_field = conflicting_field
        super().__init__(message, error_code="RESOURCE_CONFLICT", **kwargs)


class ServiceUnavailableError(InferenceBenchException):
    """저장소 연결 실패 등 재시도 가능한 업스트림 예외"""

    retryable = True

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        retry_after: Optional[int] = None,
        **kwargs
    ):
        self.service_name = service_name
        self.retry_after = retry_after
        super().__init__(message, error_code="SERVICE_UNAVAILABLE", **kwargs)


class RequestTimeoutError(InferenceBenchException):
    """요청 처리 제한 시간 초과 예외"""

    retryable = True

    def __init__(
        self,
        message: str = "Request processing timed out",
        timeout_seconds: Optional[float] = None,
        **kwargs
    ):
        self.timeout_seconds = timeout_seconds
        super().__init__(message, error_code="REQUEST_TIMEOUT", **kwargs)


class QuantizationMergeError(InferenceBenchException):
    """양자화 병합 작업 실패 예외"""

    def __init__(
        self,
        message: str,
        source_variant_id: Optional[str] = None,
        **kwargs
    ):
        self.source_variant_id = source_variant_id
        super().__init__(message, error_code="MERGE_ERROR", **kwargs)


# 예외 매핑 (HTTP 상태 코드)
EXCEPTION_STATUS_MAP = {
    ValidationError: 400,
    ResourceNotFoundError: 404,
    ResourceConflictError: 409,
    ServiceUnavailableError: 503,
    RequestTimeoutError: 504,
    QuantizationMergeError: 500,
    InferenceBenchException: 500,
}


def get_http_status_code(exception: Exception) -> int:
    """
    예외 타입에 따른 HTTP 상태 코드 반환

    Args:
        exception: 예외 인스턴스

    Returns:
        int: HTTP 상태 코드
    """
    for exc_type, status_code in EXCEPTION_STATUS_MAP.items():
        if isinstance(exception, exc_type):
            return status_code

    return 500


def format_error_response(exception: InferenceBenchException) -> Dict[str, Any]:
    """
    예외를 API 에러 응답 형식으로 변환

    Args:
        exception: InferenceBench 예외 인스턴스

    Returns:
        Dict[str, Any]: 에러 응답 딕셔너리
    """
    response = {
        "error": True,
        "error_code": exception.error_code or "UNKNOWN_ERROR",
        "message": exception.message,
        "details": exception.details,
        "retryable": exception.retryable
    }

    if getattr(exception, "field", None):
        response["field"] = exception.field

    if getattr(exception, "resource_type", None):
        response["resource_type"] = exception.resource_type

    if getattr(exception, "resource_id", None):
        response["resource_id"] = exception.resource_id

    if getattr(exception, "retry_after", None) is not None:
        response["retry_after"] = exception.retry_after

    return response


class ExceptionHandler:
    """예외 처리 헬퍼 클래스"""

    @staticmethod
    def handle_database_errors(
        error: Exception,
        retry_after: Optional[int] = None
    ) -> InferenceBenchException:
        """
        데이터베이스 에러를 커스텀 예외로 변환

        커넥션 풀 고갈과 연결 장애는 재시도 가능한 예외로,
        무결성 위반은 충돌/검증 예외로 변환합니다.

        Args:
            error: 데이터베이스 예외
            retry_after: 재시도 권장 대기 시간 (초)

        Returns:
            InferenceBenchException: 변환된 예외
        """
        if isinstance(error, sa_exc.TimeoutError):
            return ServiceUnavailableError(
                message="Database connection pool exhausted",
                service_name="database",
                retry_after=retry_after,
                details={"original_error": str(error)}
            )

        if isinstance(error, (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.DisconnectionError)):
            return ServiceUnavailableError(
                message="Database is unavailable",
                service_name="database",
                retry_after=retry_after,
                details={"original_error": str(error)}
            )

        error_str = str(error).lower()

        if isinstance(error, sa_exc.IntegrityError):
            if "unique" in error_str or "duplicate" in error_str:
                return ResourceConflictError(
                    message="Resource already exists",
                    details={"original_error": str(error)}
                )

            if "foreign key" in error_str:
                return ValidationError(
                    message="Referenced resource does not exist",
                    details={"original_error": str(error)}
                )

            if "not null" in error_str:
                return ValidationError(
                    message="Required field is missing",
                    details={"original_error": str(error)}
                )

        return InferenceBenchException(
            message="Database operation failed",
            error_code="DATABASE_ERROR",
            details={"original_error": str(error)}
        )
