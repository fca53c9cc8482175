"""Withdrawal use case: zero the balance first, then hand off the payout."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from upline_commons.observability.tracing import get_tracer
from upline_ledger.application.ports.ledger import CommissionLedgerPort
from upline_ledger.application.ports.payout import PayoutGatewayPort
from upline_ledger.domain.exceptions import PayoutFailedError
from upline_ledger.domain.ledger import PayoutObligation, Recipient

payouts_logger = logging.getLogger("upline_ledger.payouts")
_tracer = get_tracer(__name__)


@dataclass(frozen=True, slots=True)
class WithdrawalResult:
    obligation: PayoutObligation
    transfer_ref: str


class WithdrawalService:
    def __init__(self, *, ledger: CommissionLedgerPort, gateway: PayoutGatewayPort) -> None:
        self._ledger = ledger
        self._gateway = gateway

    def withdraw(self, recipient: Recipient) -> WithdrawalResult:
        """Authorise the balance once, then transfer it.

        A gateway failure does not re-credit the ledger: the obligation is
        attached to ``PayoutFailedError`` so the transfer can be retried
        without authorising the amount a second time.
        """

        with _tracer.start_as_current_span("ledger.withdraw"):
            obligation = self._ledger.withdraw(recipient)
        try:
            with _tracer.start_as_current_span("payout.transfer"):
                transfer_ref = self._gateway.transfer(obligation)
        except Exception as exc:
            payouts_logger.exception(
                "payout transfer failed",
                extra={
                    "data": {
                        "recipient": obligation.recipient,
                        "amount": obligation.amount,
                        "sequence": obligation.sequence,
                    }
                },
            )
            raise PayoutFailedError(obligation, str(exc)) from exc
        return WithdrawalResult(obligation=obligation, transfer_ref=transfer_ref)


__all__ = ["WithdrawalResult", "WithdrawalService"]
