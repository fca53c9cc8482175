import json
import logging
from dataclasses import dataclass
from decimal import Decimal

from upline_commons.observability.logging import CloudJsonSanitizer, ExtrasFormatter, sanitize_for_json


def _record(msg: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="upline_ledger.ledger",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_data_locally(monkeypatch) -> None:
    monkeypatch.delenv("K_SERVICE", raising=False)
    monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
    formatter = ExtrasFormatter("%(levelname)s %(name)s: %(message)s")

    rendered = formatter.format(_record("distribution recorded", data={"sequence": 3, "volume": 100}))

    assert rendered == 'INFO upline_ledger.ledger: distribution recorded | data={"sequence":3,"volume":100}'


def test_formatter_leaves_plain_records_alone(monkeypatch) -> None:
    monkeypatch.delenv("K_SERVICE", raising=False)
    monkeypatch.delenv("KUBERNETES_SERVICE_HOST", raising=False)
    formatter = ExtrasFormatter("%(message)s")

    assert formatter.format(_record("plain")) == "plain"


def test_formatter_emits_json_payload_in_cloud_run(monkeypatch) -> None:
    monkeypatch.setenv("K_SERVICE", "upline-ledger")
    formatter = ExtrasFormatter("%(levelname)s %(name)s: %(message)s")

    record = _record(
        "payout queued",
        data={"amount": Decimal("12.50"), "recipient": "a"},
        json_fields={"raw": b"hello", "message": "shadowed"},
    )
    payload = json.loads(formatter.format(record))

    assert payload["message"] == "payout queued"
    assert payload["severity"] == "INFO"
    assert payload["logger"] == "upline_ledger.ledger"
    assert payload["data"] == {"amount": "12.50", "recipient": "a"}
    assert payload["raw"] == "<bytes len=5>"
    assert payload["json_fields"]["message"] == "shadowed"


def test_sanitize_for_json_handles_dataclasses_and_limits() -> None:
    @dataclass
    class Credit:
        recipient: str
        amount: int

    assert sanitize_for_json(Credit("a", 1)) == {"recipient": "a", "amount": 1}
    assert sanitize_for_json(list(range(5)), max_items=2) == [0, 1, "... 3 more"]
    assert sanitize_for_json({"a": {"b": 1}}, depth=1) == {"a": "<depth_exceeded>"}
    assert sanitize_for_json(object()).startswith("<object object")


def test_cloud_json_sanitizer_copies_data_into_json_fields() -> None:
    record = _record("x", data={"payload": b"abc"})

    assert CloudJsonSanitizer().filter(record) is True

    assert record.data == {"payload": "<bytes len=3>"}
    assert record.json_fields == {"data": {"payload": "<bytes len=3>"}}
