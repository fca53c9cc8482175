"""Port for the collaborator that moves value to a recipient."""

from __future__ import annotations

from typing import Protocol

from upline_ledger.domain.ledger import PayoutObligation


class PayoutGatewayPort(Protocol):
    def transfer(self, obligation: PayoutObligation) -> str:
        """Transfer the obligation's amount and return a transfer reference."""


__all__ = ["PayoutGatewayPort"]
