"""
Ledger Module

Runs a full ledger pass: normalize records, aggregate balances and plan
settlements. The pass is pure and is re-run from scratch after every
change.

Functions:
    compute_ledger: Run the pass over an already-normalized stream.
    compute_ledger_from_records: Normalize raw purchases/payments first.
"""

import logging
from typing import Optional

from participants import Participant, ParticipantRegistry
from settlement import SettlementTransaction, optimize_settlements
from splitter import calculate_balances
from transactions import PaymentRecord, Transaction, normalize_records

logger = logging.getLogger(__name__)


class LedgerResult:
    """
    Everything a collaborator needs to display or persist after a pass.

    Attributes:
        participants (list[Participant]): Full recomputed registry.
        products (list[Transaction]): Non-payment transactions.
        payments (list[PaymentRecord]): Recorded payments.
        settlements (list[SettlementTransaction]): Suggested transfers.
        total_cost (float): Sum of product amounts.
    """

    def __init__(
        self,
        participants: list[Participant],
        products: list[Transaction],
        payments: list[PaymentRecord],
        settlements: list[SettlementTransaction]
    ):
        self.participants = participants
        self.products = products
        self.payments = payments
        self.settlements = settlements
        self.total_cost = sum(product.amount for product in products)

    def participant(self, name: str) -> Optional[Participant]:
        for participant in self.participants:
            if participant.name == name:
                return participant
        return None

    def transactions(self) -> list[Transaction]:
        """Products followed by payments, as fed back into the next pass."""
        return [p.copy() for p in self.products] + [p.to_transaction() for p in self.payments]

    def to_dict(self) -> dict:
        return {
            "participants": [p.to_dict() for p in self.participants],
            "products": [p.to_dict() for p in self.products],
            "payments": [p.to_dict() for p in self.payments],
            "settlements": [s.to_dict() for s in self.settlements],
            "total_cost": self.total_cost
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LedgerResult":
        return cls(
            participants=[Participant.from_dict(p) for p in data.get("participants", [])],
            products=[Transaction.from_dict(p) for p in data.get("products", [])],
            payments=[PaymentRecord.from_dict(p) for p in data.get("payments", [])],
            settlements=[SettlementTransaction.from_dict(s) for s in data.get("settlements", [])]
        )


def compute_ledger(
    transactions: list[Transaction],
    registry: Optional[ParticipantRegistry] = None
) -> LedgerResult:
    """
    Run one ledger pass.

    Args:
        transactions: Unified purchase/payment stream.
        registry: Known participants (PIX data, responsibles). Not mutated.

    Returns:
        LedgerResult: Participants, products, payments, settlements and total cost.
    """
    aggregation = calculate_balances(transactions, registry)
    settlements = optimize_settlements(aggregation.shadow_balances())

    logger.debug("Ledger pass produced %d settlements", len(settlements))

    return LedgerResult(
        participants=aggregation.registry.values(),
        products=aggregation.products,
        payments=aggregation.payments,
        settlements=settlements
    )


def compute_ledger_from_records(
    purchases: list,
    payments: Optional[list] = None,
    registry: Optional[ParticipantRegistry] = None
) -> LedgerResult:
    """Normalize raw purchase and payment records, then run a ledger pass."""
    return compute_ledger(normalize_records(purchases, payments), registry)
