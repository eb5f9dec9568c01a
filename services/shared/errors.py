"""
Shared — エラー分類 (Error Taxonomy)

各サービスのドメイン例外と、それを HTTP レスポンスに変換する
FastAPI 例外ハンドラをまとめる。

  ServiceError
  ├─ ValidationError             400  入力不正（変更前に拒否）
  ├─ InvalidUserError            400  注文作成時のユーザー検証失敗（クリティカル依存）
  ├─ NotFoundError               404  参照先が存在しない
  ├─ InvalidTransitionError      409  注文の状態遷移が不正
  ├─ InvalidStateError           409  現在の支払いステータスでは実行できない
  └─ DependencyUnavailableError  503  外部サービスに到達できない / タイムアウト
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str = "", **details):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message, **self.details}


class ValidationError(ServiceError):
    status_code = 400
    error = "Invalid request"


class InvalidUserError(ServiceError):
    status_code = 400
    error = "Invalid user"


class NotFoundError(ServiceError):
    status_code = 404
    error = "Not found"


class InvalidTransitionError(ServiceError):
    status_code = 409
    error = "Invalid status transition"


class InvalidStateError(ServiceError):
    status_code = 409
    error = "Invalid state"


class DependencyUnavailableError(ServiceError):
    status_code = 503
    error = "Dependency unavailable"


def install_error_handlers(app: FastAPI) -> None:
    """ドメイン例外・入力検証エラー・想定外の例外を JSON レスポンスに変換する。"""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request", "details": details},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "message": str(exc)},
        )
