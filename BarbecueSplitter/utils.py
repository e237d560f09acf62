"""
Utilities Module

This module provides presentation helpers for the barbecue ledger.

Features:
    - Currency formatting (BRL)
    - Participant status (receives / pays / settled, dependents)
    - Per-participant consumption breakdown
    - Composition of a suggested transfer paid on behalf of dependents
    - Payment history ordering

Data Model:
    Input - participants: list of Participant (after a ledger pass)
    Input - transactions: list of Transaction
    Input - settlement: SettlementTransaction

Functions:
    format_currency: Format amount as "R$ 12,50".
    participant_status: Classify a participant by shadow balance.
    is_dependent: Whether someone else pays for this participant.
    explain_participant_share: Detailed breakdown for one participant.
    settlement_composition: Who a debtor is paying for, and how much.
    payment_history: Recorded payments, newest first.
"""

from decimal import Decimal, ROUND_HALF_UP

from participants import Participant
from settlement import SettlementTransaction
from splitter import EPSILON
from transactions import PaymentRecord, Transaction


STATUS_RECEIVES = "receives"
STATUS_PAYS = "pays"
STATUS_SETTLED = "settled"


def _round_decimal(value) -> Decimal:
    """
    Round a value to 2 decimal places.

    Args:
        value: Number to round.

    Returns:
        Decimal: Rounded value.
    """
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_currency(value: float) -> str:
    """
    Format an amount in Brazilian reais.

    Examples: 1234.5 -> "R$ 1234,50", -3 -> "- R$ 3,00". Values between
    -0.005 and 0 are shown without sign, so "-0,00" never appears.

    Args:
        value: Amount to format.

    Returns:
        str: Formatted amount.
    """
    text = str(_round_decimal(abs(value))).replace(".", ",")
    prefix = "- " if value < -0.005 else ""
    return f"{prefix}R$ {text}"


def participant_status(participant: Participant) -> str:
    """Return "receives", "pays" or "settled" from the shadow balance."""
    if participant.shadow_balance > EPSILON:
        return STATUS_RECEIVES
    if participant.shadow_balance < -EPSILON:
        return STATUS_PAYS
    return STATUS_SETTLED


def is_dependent(participant: Participant) -> bool:
    # A dependent's shadow balance is zero even when they consumed
    responsible = participant.payment_responsible
    return bool(responsible) and responsible != participant.name


def explain_participant_share(name: str, transactions: list[Transaction]) -> dict:
    """
    Get a detailed breakdown for one participant.

    Lists every product they consumed with their share, every product they
    paid for, and the payments they made or received.

    Args:
        name: Participant name.
        transactions: Unified transaction stream.

    Returns:
        dict: Containing:
            - name: string
            - products_consumed: list of {product_id, label, amount,
              share_count, share_cost}
            - products_paid: list of {product_id, label, amount}
            - payments_made: list of PaymentRecord dicts
            - payments_received: list of PaymentRecord dicts
            - total_consumed: float (products only)
            - total_paid: float (products only)
    """
    products_consumed = []
    products_paid = []
    payments_made = []
    payments_received = []

    for transaction in transactions:
        if transaction.is_settlement_payment:
            record = PaymentRecord.from_transaction(transaction)
            if record.from_participant == name:
                payments_made.append(record.to_dict())
            if record.to_participant == name:
                payments_received.append(record.to_dict())
            continue

        if transaction.payer == name:
            products_paid.append({
                "product_id": transaction.id,
                "label": transaction.label,
                "amount": transaction.amount
            })

        if name in transaction.beneficiaries:
            share_count = len(transaction.beneficiaries)
            products_consumed.append({
                "product_id": transaction.id,
                "label": transaction.label,
                "amount": transaction.amount,
                "share_count": share_count,
                "share_cost": transaction.amount / share_count
            })

    return {
        "name": name,
        "products_consumed": products_consumed,
        "products_paid": products_paid,
        "payments_made": payments_made,
        "payments_received": payments_received,
        "total_consumed": sum(item["share_cost"] for item in products_consumed),
        "total_paid": sum(item["amount"] for item in products_paid)
    }


def settlement_composition(
    settlement: SettlementTransaction,
    participants: list[Participant]
) -> dict:
    """
    Break a suggested transfer down by the people it covers.

    The group is the debtor plus everyone whose payment responsible is the
    debtor. Only members whose personal debt (consumed - paid) exceeds
    EPSILON are listed.

    Args:
        settlement: Suggested transfer.
        participants: Participants after a ledger pass.

    Returns:
        dict: Containing:
            - debtor: string
            - members: list of {name, personal_debt}
            - total: float (the settlement amount)
    """
    debtor = settlement.from_participant
    group = [p for p in participants if p.name == debtor]
    group += [p for p in participants if p.payment_responsible == debtor and p.name != debtor]

    members = []
    for member in group:
        personal_debt = member.total_consumed - member.total_paid
        if personal_debt > EPSILON:
            members.append({"name": member.name, "personal_debt": personal_debt})

    return {
        "debtor": debtor,
        "members": members,
        "total": settlement.amount
    }


def payment_history(payments: list[PaymentRecord]) -> list[PaymentRecord]:
    """Return recorded payments newest first."""
    return list(reversed(payments))
