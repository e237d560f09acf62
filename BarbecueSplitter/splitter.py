"""
Splitter Module

This module aggregates purchases and payments into per-participant totals
for the barbecue ledger.

Features:
    - Equal splitting among beneficiaries
    - Per-participant paid/consumed/raw balance
    - Shadow balances folding dependents into their payment responsible
    - Payment records extracted from the transaction stream
    - Unknown payers and beneficiaries created on the fly

Data Model:
    Input - transactions: list of Transaction
    Input - registry: ParticipantRegistry (may hold participants with no
        transactions; not mutated)

    Output - AggregationResult:
        - registry: fresh ParticipantRegistry with recomputed totals
        - products: transactions that are not settlement payments
        - payments: PaymentRecord list, in input order

Functions:
    calculate_balances: Recompute every participant's totals from scratch.
    apply_dependencies: Compute shadow balances from raw balances.
"""

import logging
from typing import Optional

from participants import ParticipantRegistry
from transactions import PaymentRecord, Transaction

logger = logging.getLogger(__name__)


# Tolerance, in currency units, below which a balance counts as settled
EPSILON = 0.01


class AggregationResult:
    """
    Output of one aggregation pass.

    Attributes:
        registry (ParticipantRegistry): Participants with recomputed totals.
        products (list[Transaction]): Non-payment transactions.
        payments (list[PaymentRecord]): Settlement payments.
    """

    def __init__(
        self,
        registry: ParticipantRegistry,
        products: list[Transaction],
        payments: list[PaymentRecord]
    ):
        self.registry = registry
        self.products = products
        self.payments = payments

    def shadow_balances(self) -> dict[str, float]:
        return {p.name: p.shadow_balance for p in self.registry}


def apply_dependencies(registry: ParticipantRegistry) -> dict[str, float]:
    """
    Fold each dependent's balance into their payment responsible.

    Participants are visited in registry order. For a participant with a
    known responsible other than themselves, their current shadow balance
    is added to the responsible's and their own is zeroed. Links to unknown
    names or to oneself are ignored.

    Only one redirection is applied per participant: if C depends on B and
    B on A, whether C's balance reaches A depends on registry order. It is
    unclear whether that was intended, so chains are not collapsed here.

    Args:
        registry: Participants with raw_balance already computed.

    Returns:
        dict[str, float]: Shadow balance per participant name.
    """
    shadow = {p.name: p.raw_balance for p in registry}

    for participant in registry:
        responsible = participant.payment_responsible
        if not responsible or responsible == participant.name:
            continue
        if responsible not in shadow:
            logger.warning(
                "Ignoring unknown payment responsible %r of %r",
                responsible, participant.name
            )
            continue

        shadow[responsible] += shadow[participant.name]
        shadow[participant.name] = 0.0

    return shadow


def calculate_balances(
    transactions: list[Transaction],
    registry: Optional[ParticipantRegistry] = None
) -> AggregationResult:
    """
    Recompute per-participant totals from the whole transaction list.

    For each transaction, in order:
        1. The payer's total_paid increases by the amount
        2. Each beneficiary's total_consumed increases by amount / len(beneficiaries)
        3. Settlement payments become PaymentRecords, the rest products

    Then raw_balance = total_paid - total_consumed and shadow_balance is
    derived by apply_dependencies().

    Args:
        transactions: Unified purchase/payment stream.
        registry: Known participants. Copied, never mutated.

    Returns:
        AggregationResult: Fresh registry, products and payments.

    Notes:
        - Unknown payers and beneficiaries are created with zero history
        - A transaction with no beneficiaries counts as paid by the payer but
          consumed by no one
        - Values are not rounded; rounding is left to presentation
    """
    registry = registry.copy() if registry is not None else ParticipantRegistry()
    registry.reset_totals()

    products = []
    payments = []

    for transaction in transactions:
        payer = registry.resolve_or_create(transaction.payer)
        payer.total_paid += transaction.amount

        if transaction.beneficiaries:
            per_head = transaction.amount / len(transaction.beneficiaries)
            for name in transaction.beneficiaries:
                registry.resolve_or_create(name).total_consumed += per_head

        if transaction.is_settlement_payment:
            payments.append(PaymentRecord.from_transaction(transaction))
        else:
            products.append(transaction)

    for participant in registry:
        participant.raw_balance = participant.total_paid - participant.total_consumed

    shadow = apply_dependencies(registry)
    for participant in registry:
        participant.shadow_balance = shadow[participant.name]

    logger.debug(
        "Aggregated %d transactions into %d participants (%d products, %d payments)",
        len(transactions), len(registry), len(products), len(payments)
    )

    return AggregationResult(registry, products, payments)
