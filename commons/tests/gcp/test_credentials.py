import base64
import json

import pytest

from upline_commons.gcp.credentials import credentials_from_env, parse_service_account_b64


def _encode(value: object) -> str:
    return base64.b64encode(json.dumps(value).encode("utf-8")).decode("ascii")


def test_parse_service_account_b64_decodes_object() -> None:
    assert parse_service_account_b64(_encode({"type": "service_account"})) == {"type": "service_account"}


@pytest.mark.parametrize(
    ("blob", "message"),
    [
        ("not base64!!", "not valid base64"),
        (base64.b64encode(b"{oops").decode("ascii"), "not valid JSON"),
        (_encode(["a"]), "must be a JSON object"),
    ],
)
def test_parse_service_account_b64_rejects_bad_blobs(blob: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        parse_service_account_b64(blob, source="TEST_ENV")


def test_credentials_from_env_returns_none_when_unset(monkeypatch) -> None:
    monkeypatch.delenv("TEST_SA", raising=False)

    assert credentials_from_env(env_var="TEST_SA") is None
