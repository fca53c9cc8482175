"""Service account loading for the Cloud Logging handler."""

from __future__ import annotations

import base64
import binascii
import json
import os
from typing import Any, cast

from google.oauth2.service_account import Credentials as ServiceAccountCredentials

CREDENTIAL_ENV = "GCP_SERVICE_ACCOUNT_CREDENTIAL_BASE64"
_LOGGING_SCOPE = "https://www.googleapis.com/auth/logging.write"


def parse_service_account_b64(blob: str, *, source: str = CREDENTIAL_ENV) -> dict[str, Any]:
    """Decode a base64 service account JSON blob into its info mapping."""

    try:
        decoded = base64.b64decode(blob.strip().encode("utf-8"), validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"{source} is not valid base64 UTF-8") from exc
    try:
        info = json.loads(decoded)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{source} is not valid JSON") from exc
    if not isinstance(info, dict):
        raise ValueError(f"{source} must be a JSON object")
    return info


def credentials_from_env(
    *,
    env_var: str = CREDENTIAL_ENV,
    scopes: tuple[str, ...] = (_LOGGING_SCOPE,),
) -> ServiceAccountCredentials | None:
    """Return credentials from ``env_var`` or None to fall back to ADC."""

    blob = os.getenv(env_var)
    if not blob or not blob.strip():
        return None
    info = parse_service_account_b64(blob, source=env_var)
    return cast(
        ServiceAccountCredentials,
        ServiceAccountCredentials.from_service_account_info(  # type: ignore[no-untyped-call]
            info,
            scopes=scopes,
        ),
    )


__all__ = ["CREDENTIAL_ENV", "credentials_from_env", "parse_service_account_b64"]
