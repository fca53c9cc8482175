"""Payout gateway that records obligations for an external transfer agent."""

from __future__ import annotations

import logging
from threading import Lock
from uuid import uuid4

from upline_ledger.application.ports.payout import PayoutGatewayPort
from upline_ledger.domain.ledger import PayoutObligation

payouts_logger = logging.getLogger("upline_ledger.payouts")


class LoggingPayoutGateway(PayoutGatewayPort):
    """Logs each obligation and keeps it for the transfer agent to collect."""

    def __init__(self) -> None:
        self._transfers: dict[str, PayoutObligation] = {}
        self._lock = Lock()

    def transfer(self, obligation: PayoutObligation) -> str:
        transfer_ref = uuid4().hex
        with self._lock:
            self._transfers[transfer_ref] = obligation
        payouts_logger.info(
            "payout queued",
            extra={
                "data": {
                    "transfer_ref": transfer_ref,
                    "recipient": obligation.recipient,
                    "amount": obligation.amount,
                    "sequence": obligation.sequence,
                }
            },
        )
        return transfer_ref

    def pending(self) -> dict[str, PayoutObligation]:
        with self._lock:
            return dict(self._transfers)

    def acknowledge(self, transfer_ref: str) -> PayoutObligation | None:
        """Drop a transfer once the external agent has settled it."""

        with self._lock:
            obligation = self._transfers.pop(transfer_ref, None)
        if obligation is not None:
            payouts_logger.info(
                "payout settled",
                extra={"data": {"transfer_ref": transfer_ref, "sequence": obligation.sequence}},
            )
        return obligation


__all__ = ["LoggingPayoutGateway"]
