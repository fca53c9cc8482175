"""Shared logging helpers (formatter, filters and dictConfig builder)."""

from __future__ import annotations

import json
import logging
import os
import time
import traceback
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from decimal import Decimal
from logging.config import dictConfig
from typing import Any

from opentelemetry import baggage, trace

_LOGGER_NAME = "upline_commons.observability.logging"

_PACKAGE_LOGGER_ROOTS: tuple[str, ...] = ("upline_commons", "upline_ledger")

_THIRD_PARTY_LEVEL_ENVS: dict[str, tuple[str, str]] = {
    "uvicorn": ("UVICORN_LOG_LEVEL", "INFO"),
    "uvicorn.error": ("UVICORN_LOG_LEVEL", "INFO"),
    "uvicorn.access": ("UVICORN_ACCESS_LOG_LEVEL", "WARNING"),
    "httpx": ("HTTPX_LOG_LEVEL", "WARNING"),
    "httpcore": ("HTTPX_LOG_LEVEL", "WARNING"),
}


def _level(env_var: str, default: str) -> str:
    return os.getenv(env_var, default).upper()


def _managed_runtime() -> bool:
    # Cloud Run and Kubernetes ingest one JSON object per line as a structured payload.
    return bool(os.getenv("K_SERVICE") or os.getenv("KUBERNETES_SERVICE_HOST"))


def _timestamp(record: logging.LogRecord) -> str:
    return f"{time.strftime('%Y-%m-%dT%H:%M:%S', time.gmtime(record.created))}.{int(record.msecs):03d}Z"


def sanitize_for_json(value: Any, depth: int = 8, max_items: int = 200) -> Any:
    """Return a JSON-serializable copy of ``value``; unknown objects become strings."""

    if depth <= 0:
        return "<depth_exceeded>"
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes len={len(value)}>"
    if is_dataclass(value) and not isinstance(value, type):
        return sanitize_for_json(asdict(value), depth - 1, max_items)
    if isinstance(value, Mapping):
        result: dict[str, Any] = {}
        for idx, (key, item) in enumerate(value.items()):
            if idx >= max_items:
                result["<truncated>"] = f"...{len(value) - idx} more"
                break
            result[str(key)] = sanitize_for_json(item, depth - 1, max_items)
        return result
    if isinstance(value, (list, tuple, set, frozenset)):
        items = list(value)
        out = [sanitize_for_json(item, depth - 1, max_items) for item in items[:max_items]]
        if len(items) > max_items:
            out.append(f"... {len(items) - max_items} more")
        return out
    return str(value)


def _structured_payload(record: logging.LogRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "message": record.getMessage(),
        "severity": record.levelname,
        "logger": record.name,
        "timestamp": _timestamp(record),
    }
    data = record.__dict__.get("data")
    if data:
        payload["data"] = sanitize_for_json(data)
    if record.exc_info:
        payload["exception"] = "".join(traceback.format_exception(*record.exc_info)).rstrip("\n")

    json_fields = record.__dict__.get("json_fields")
    if isinstance(json_fields, Mapping):
        for key, value in sanitize_for_json(json_fields).items():
            if key in payload:
                payload.setdefault("json_fields", {})[key] = value
            else:
                payload[key] = value
    return payload


class ExtrasFormatter(logging.Formatter):
    """Append structured ``data`` payloads; emit JSON lines on managed runtimes."""

    def format(self, record: logging.LogRecord) -> str:
        if _managed_runtime():
            return json.dumps(_structured_payload(record), sort_keys=True, separators=(",", ":"))

        formatted = super().format(record)
        data = record.__dict__.get("data")
        if not data:
            return formatted
        encoded = json.dumps(sanitize_for_json(data), sort_keys=True, separators=(",", ":"))
        return f"{formatted} | data={encoded}"


class CloudJsonSanitizer(logging.Filter):
    """Make ``data``/``json_fields`` JSON-serializable before Cloud Logging ships them."""

    def filter(self, record: logging.LogRecord) -> bool:
        record_dict = record.__dict__
        fields: dict[str, Any] = {}
        raw_fields = record_dict.get("json_fields")
        if isinstance(raw_fields, Mapping):
            fields.update(sanitize_for_json(raw_fields))
        elif raw_fields is not None:
            fields["json_fields"] = sanitize_for_json(raw_fields)
        if "data" in record_dict:
            record_dict["data"] = sanitize_for_json(record_dict["data"])
            fields.setdefault("data", record_dict["data"])
        if fields:
            record_dict["json_fields"] = fields
        return True


class OtelContextLogFilter(logging.Filter):
    """Inject OpenTelemetry trace context and baggage into ``json_fields``."""

    def __init__(self, *, gcp_project_id: str | None = None) -> None:
        super().__init__()
        self._gcp_project_id = gcp_project_id.strip() if gcp_project_id else None

    def filter(self, record: logging.LogRecord) -> bool:
        otel: dict[str, Any] = {}
        extra_fields: dict[str, Any] = {}

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            trace_id = f"{span_context.trace_id:032x}"
            span_id = f"{span_context.span_id:016x}"
            otel["trace_id"] = trace_id
            otel["span_id"] = span_id
            if self._gcp_project_id:
                extra_fields["logging.googleapis.com/trace"] = (
                    f"projects/{self._gcp_project_id}/traces/{trace_id}"
                )
                extra_fields["logging.googleapis.com/spanId"] = span_id

        baggage_values = baggage.get_all()
        if baggage_values:
            otel["baggage"] = {key: str(value) for key, value in baggage_values.items()}

        if not otel:
            return True

        existing = record.__dict__.get("json_fields")
        json_fields = dict(existing) if isinstance(existing, Mapping) else {}
        for key, value in extra_fields.items():
            json_fields.setdefault(key, value)
        json_fields["otel"] = otel
        record.__dict__["json_fields"] = json_fields
        return True


def build_log_config(
    *,
    root_level_env: str,
    root_default: str,
    extra_loggers: Mapping[str, dict[str, Any]] | None = None,
    cloud_logging_enabled: bool = False,
    gcp_project: str | None = None,
    cloud_log_name: str = "upline-ledger",
    cloud_log_labels: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return a dictConfig-compatible logging configuration."""

    handler_names = ["console"]
    handlers: dict[str, Any] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "stream": "ext://sys.stdout",
            "filters": ["otel_context"],
        }
    }
    if cloud_logging_enabled:
        if not gcp_project:
            raise RuntimeError("GCP project required when cloud logging is enabled")
        handlers["cloud_logging"] = _cloud_logging_handler(gcp_project, cloud_log_name, cloud_log_labels)
        handler_names.append("cloud_logging")

    loggers: dict[str, dict[str, Any]] = {
        name: {"level": _level(env_var, default), "handlers": list(handler_names), "propagate": False}
        for name, (env_var, default) in _THIRD_PARTY_LEVEL_ENVS.items()
    }
    for name, config in (extra_loggers or {}).items():
        loggers[name] = dict(config)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {
                "()": ExtrasFormatter,
                "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                "datefmt": "%Y-%m-%dT%H:%M:%S",
            }
        },
        "filters": {
            "otel_context": {"()": OtelContextLogFilter, "gcp_project_id": gcp_project},
            "cloud_json_sanitizer": {"()": CloudJsonSanitizer},
        },
        "handlers": handlers,
        "root": {"level": _level(root_level_env, root_default), "handlers": list(handler_names)},
        "loggers": loggers,
    }


def _cloud_logging_handler(
    project: str,
    log_name: str,
    labels: Mapping[str, str] | None,
) -> dict[str, Any]:
    from google.cloud import logging as gcp_logging
    from google.cloud.logging_v2.resource import Resource

    from upline_commons.gcp.credentials import credentials_from_env

    logger = logging.getLogger(_LOGGER_NAME)
    start = time.monotonic()
    client = gcp_logging.Client(project=project, credentials=credentials_from_env())  # type: ignore[no-untyped-call]
    logger.debug(
        "created google cloud logging client",
        extra={"data": {"project": project, "elapsed_s": round(time.monotonic() - start, 3)}},
    )
    return {
        "level": "INFO",
        "class": "google.cloud.logging_v2.handlers.handlers.CloudLoggingHandler",
        "client": client,
        "name": log_name,
        "resource": Resource("global", {"project_id": project}),
        "labels": dict(labels or {}),
        "formatter": "console",
        "filters": ["otel_context", "cloud_json_sanitizer"],
    }


def configure_logging(
    *,
    root_level_env: str,
    root_default: str,
    extra_loggers: Mapping[str, dict[str, Any]] | None = None,
    cloud_logging_enabled: bool = False,
    gcp_project: str | None = None,
    cloud_log_name: str = "upline-ledger",
    cloud_log_labels: Mapping[str, str] | None = None,
) -> None:
    """Apply the shared logging config."""

    config = build_log_config(
        root_level_env=root_level_env,
        root_default=root_default,
        extra_loggers=extra_loggers,
        cloud_logging_enabled=cloud_logging_enabled,
        gcp_project=gcp_project,
        cloud_log_name=cloud_log_name,
        cloud_log_labels=cloud_log_labels,
    )
    dictConfig(config)
    _reset_package_logger_levels(
        root_level=logging.getLogger().level,
        explicit_loggers=set(config["loggers"]),
    )
    logging.getLogger(_LOGGER_NAME).debug(
        "configured logging",
        extra={"data": {"cloud_logging_enabled": cloud_logging_enabled, "gcp_project": gcp_project}},
    )


def _reset_package_logger_levels(*, root_level: int, explicit_loggers: set[str]) -> None:
    for root_name in _PACKAGE_LOGGER_ROOTS:
        if root_name in explicit_loggers:
            continue
        package_logger = logging.getLogger(root_name)
        package_logger.setLevel(root_level)
        package_logger.propagate = True


def shutdown_logging() -> None:
    """Flush every attached handler; close Cloud Logging transports."""

    from google.cloud.logging_v2.handlers.handlers import CloudLoggingHandler

    seen: set[int] = set()
    loggers: list[logging.Logger] = [logging.getLogger()]
    loggers.extend(
        entry for entry in logging.Logger.manager.loggerDict.values() if isinstance(entry, logging.Logger)
    )
    for logger in loggers:
        for handler in logger.handlers:
            if id(handler) in seen:
                continue
            seen.add(id(handler))
            try:
                handler.flush()
            except (OSError, ValueError):  # pragma: no cover - closed stream
                continue
            if isinstance(handler, CloudLoggingHandler):
                handler.close()  # type: ignore[no-untyped-call]


__all__ = [
    "CloudJsonSanitizer",
    "ExtrasFormatter",
    "OtelContextLogFilter",
    "build_log_config",
    "configure_logging",
    "sanitize_for_json",
    "shutdown_logging",
]
