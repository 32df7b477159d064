"""
Operation audit middleware

Writes one JSON line per state-changing request (node registration,
revocation and alias reconciliation) to a dedicated audit log. Sensitive
fields such as the revocation secret are masked before anything is written.
"""

import json
import logging
import logging.handlers
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from .config import AuditSettings, settings

MASK = "***MASKED***"


class OperationAuditMiddleware(BaseHTTPMiddleware):
    AUDIT_METHODS = {"POST", "PUT", "PATCH", "DELETE"}

    AUDIT_PATH_PREFIXES = ("/nodes", "/aliases")

    def __init__(
        self,
        app: ASGIApp,
        audit_settings: AuditSettings | None = None,
        logs_dir: Path | None = None,
    ):
        super().__init__(app)
        self._settings = audit_settings or settings.audit
        self._logs_dir = Path(logs_dir or settings.logs_dir)
        self._sensitive_fields = {
            field.lower() for field in self._settings.sensitive_fields
        }
        self._setup_logger()

    def _setup_logger(self):
        if not self._settings.enabled:
            self.logger = None
            return

        self._logs_dir.mkdir(exist_ok=True)

        self.logger = logging.getLogger("operation_audit")
        self.logger.setLevel(logging.INFO)

        # Avoid stacking handlers when several apps are built in one process
        if not self.logger.handlers:
            file_handler = logging.handlers.TimedRotatingFileHandler(
                self._logs_dir / self._settings.log_file,
                when="midnight",
                encoding="utf-8",
            )
            file_handler.setLevel(logging.INFO)
            file_handler.setFormatter(logging.Formatter("%(message)s"))
            self.logger.addHandler(file_handler)
            self.logger.propagate = False

    def _should_audit_request(self, request: Request) -> bool:
        if self.logger is None:
            return False
        if request.method.upper() not in self.AUDIT_METHODS:
            return False
        return request.url.path.startswith(self.AUDIT_PATH_PREFIXES)

    def _mask_sensitive_data(self, data: Any) -> Any:
        if isinstance(data, list):
            return [self._mask_sensitive_data(item) for item in data]
        if not isinstance(data, dict):
            return data

        masked_data = {}
        for key, value in data.items():
            if str(key).lower() in self._sensitive_fields:
                masked_data[key] = MASK
            else:
                masked_data[key] = self._mask_sensitive_data(value)
        return masked_data

    async def _read_request_body(self, request: Request) -> Optional[Any]:
        if not self._settings.log_request_body:
            return None

        body_bytes = await request.body()
        if not body_bytes:
            return None

        if len(body_bytes) > self._settings.max_body_size:
            return {"error": "Request body too large for logging"}

        try:
            return self._mask_sensitive_data(json.loads(body_bytes.decode("utf-8")))
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Unparseable bodies may still hold a secret; never log them raw
            return {"error": "Request body is not JSON"}

    def _create_log_entry(
        self,
        request: Request,
        response: Response,
        request_body: Optional[Any],
        processing_time: float,
    ) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "processing_time_ms": round(processing_time * 1000, 2),
            "client_ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent"),
        }

        path_params = dict(request.path_params)
        if path_params:
            log_data["path_params"] = self._mask_sensitive_data(path_params)
        if request.query_params:
            log_data["query_params"] = self._mask_sensitive_data(
                dict(request.query_params)
            )
        if request_body:
            log_data["request_body"] = request_body

        log_data["success"] = 200 <= response.status_code < 400
        return json.dumps(log_data, ensure_ascii=False)

    async def dispatch(self, request: Request, call_next):
        if not self._should_audit_request(request):
            return await call_next(request)

        start_time = time.perf_counter()
        request_body = await self._read_request_body(request)

        try:
            response = await call_next(request)
        except Exception:
            error_response = JSONResponse(
                status_code=500, content={"detail": "Internal Server Error"}
            )
            self._write(
                request, error_response, request_body, time.perf_counter() - start_time
            )
            raise

        self._write(request, response, request_body, time.perf_counter() - start_time)
        return response

    def _write(self, request, response, request_body, processing_time) -> None:
        if self.logger:
            self.logger.info(
                self._create_log_entry(request, response, request_body, processing_time)
            )
