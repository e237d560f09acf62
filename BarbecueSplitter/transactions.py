"""
Transactions Module

This module unifies purchases and payments into a single transaction shape
for the barbecue ledger.

Features:
    - One record type for products and recorded payments
    - Payment records as a denormalized view of settlement transactions
    - Permissive parsing of amounts and beneficiary lists
    - Normalization of raw purchase/payment lists into one stream

Data Model:
    Transaction:
        - id: string (opaque, unique within a pass)
        - label: string (product name, or "Pagamento" for payments)
        - amount: float (>= 0)
        - payer: string (participant name)
        - beneficiaries: list of participant names (unique, may be empty)
        - is_settlement_payment: bool

    PaymentRecord:
        - id: string
        - from_participant: string (payer)
        - to_participant: string (receiver)
        - amount: float

Functions:
    parse_amount: Parse a monetary value, falling back to 0.
    parse_beneficiaries: Parse a list or comma-separated string of names.
    make_payment: Build the transaction for a direct debt repayment.
    normalize_records: Merge raw purchases and payments into one stream.
"""

import logging
import math
import re
from typing import Optional

logger = logging.getLogger(__name__)


# Label given to every settlement payment so it is never shown as a product
PAYMENT_LABEL = "Pagamento"

# Receiver used when a payment record has no beneficiary
UNKNOWN_RECEIVER = "Unknown"

_CURRENCY_SYMBOL = re.compile(r"R\$", re.IGNORECASE)


class Transaction:
    """
    A purchase or a settlement payment.

    A payment is a transaction with one payer, one beneficiary (the
    receiver) and is_settlement_payment set. Receiving a payment counts as
    consumption, which is how it cancels the receiver's credit.

    Attributes:
        id (str): Stable identifier.
        label (str): Display name.
        amount (float): Non-negative monetary value.
        payer (str): Name of the participant who fronted the money.
        beneficiaries (list[str]): Names sharing the cost, in order.
        is_settlement_payment (bool): True for direct debt repayments.
    """

    def __init__(
        self,
        id: str,
        label: str,
        amount: float,
        payer: str,
        beneficiaries: Optional[list[str]] = None,
        is_settlement_payment: bool = False
    ):
        self.id = id
        self.label = label
        self.amount = parse_amount(amount)
        self.payer = payer
        self.beneficiaries = parse_beneficiaries(beneficiaries)
        self.is_settlement_payment = is_settlement_payment

    def to_dict(self) -> dict:
        """Convert transaction to dictionary for storage."""
        return {
            "id": self.id,
            "label": self.label,
            "amount": self.amount,
            "payer": self.payer,
            "beneficiaries": list(self.beneficiaries),
            "is_settlement_payment": self.is_settlement_payment
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        """Create a Transaction from a dictionary, parsing the amount permissively."""
        return cls(
            id=str(data.get("id", "")),
            label=data.get("label") or "",
            amount=data.get("amount"),
            payer=data.get("payer") or "",
            beneficiaries=data.get("beneficiaries"),
            is_settlement_payment=bool(data.get("is_settlement_payment", False))
        )

    def copy(self) -> "Transaction":
        return Transaction.from_dict(self.to_dict())

    def __eq__(self, other) -> bool:
        if not isinstance(other, Transaction):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        """Return string representation of transaction."""
        kind = "payment" if self.is_settlement_payment else "product"
        return f"Transaction(id='{self.id}', {kind}, payer='{self.payer}', amount={self.amount})"


class PaymentRecord:
    """
    An executed transfer, read from a settlement-payment transaction.

    Attributes:
        id (str): Identifier of the source transaction.
        from_participant (str): Who paid.
        to_participant (str): Who received.
        amount (float): Amount transferred.
    """

    def __init__(self, id: str, from_participant: str, to_participant: str, amount: float):
        self.id = id
        self.from_participant = from_participant
        self.to_participant = to_participant
        self.amount = amount

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "PaymentRecord":
        receiver = transaction.beneficiaries[0] if transaction.beneficiaries else UNKNOWN_RECEIVER
        return cls(
            id=transaction.id,
            from_participant=transaction.payer,
            to_participant=receiver,
            amount=transaction.amount
        )

    def to_transaction(self) -> Transaction:
        """Rebuild the unified transaction this record was read from."""
        return make_payment(self.id, self.from_participant, self.to_participant, self.amount)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "from_participant": self.from_participant,
            "to_participant": self.to_participant,
            "amount": self.amount
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PaymentRecord":
        return cls(
            id=str(data.get("id", "")),
            from_participant=data.get("from_participant") or "",
            to_participant=data.get("to_participant") or "",
            amount=parse_amount(data.get("amount"))
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, PaymentRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"PaymentRecord(id='{self.id}', {self.from_participant} -> {self.to_participant}, amount={self.amount})"


def parse_amount(value) -> float:
    """
    Parse a monetary value from its source representation.

    Accepts numbers and strings such as "R$ 1.234,56", "12,50" or "12.50".
    A value that cannot be parsed, or that is negative, is treated as 0.

    Args:
        value: Raw amount (number, string or None).

    Returns:
        float: Parsed non-negative amount.
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        amount = float(value)
    else:
        text = _CURRENCY_SYMBOL.sub("", str(value)).replace(" ", "").strip()
        if not text:
            return 0.0

        # Brazilian format uses "." for thousands and "," for decimals
        if "," in text:
            text = text.replace(".", "").replace(",", ".")

        try:
            amount = float(text)
        except ValueError:
            logger.warning("Unparseable amount %r treated as 0", value)
            return 0.0

    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        logger.warning("Invalid amount %r treated as 0", value)
        return 0.0

    return amount


def parse_beneficiaries(value) -> list[str]:
    """
    Parse beneficiaries from a list or a comma-separated string.

    Names are stripped, empty names dropped and duplicates removed keeping
    the first occurrence.

    Args:
        value: List of names, comma-separated string, or None.

    Returns:
        list[str]: Ordered unique names.
    """
    if not value:
        return []

    if isinstance(value, str):
        raw_names = value.split(",")
    else:
        raw_names = value

    names = []
    for raw in raw_names:
        if raw is None:
            continue
        name = str(raw).strip()
        if name and name not in names:
            names.append(name)

    return names


def make_payment(payment_id: str, payer: str, receiver: str, amount) -> Transaction:
    """
    Build the transaction representing a direct debt repayment.

    Args:
        payment_id: Identifier of the payment.
        payer: Who sends the money.
        receiver: Who receives the money. Empty or "Unknown" means the
            payment has no receiver.
        amount: Amount transferred.

    Returns:
        Transaction: Settlement-payment transaction with one beneficiary,
        or none when the receiver is missing.
    """
    receiver = (receiver or "").strip()
    # A missing receiver must stay missing across passes
    beneficiaries = [receiver] if receiver and receiver != UNKNOWN_RECEIVER else []

    return Transaction(
        id=payment_id,
        label=PAYMENT_LABEL,
        amount=amount,
        payer=payer,
        beneficiaries=beneficiaries,
        is_settlement_payment=True
    )


def _to_transaction(record) -> Transaction:
    if isinstance(record, Transaction):
        return record.copy()
    if isinstance(record, PaymentRecord):
        return record.to_transaction()
    return Transaction.from_dict(record)


def normalize_records(purchases: list, payments: Optional[list] = None) -> list[Transaction]:
    """
    Merge purchases and payments into one transaction stream.

    Purchases keep their order and come first; payments follow. Purchases
    stay products unless explicitly tagged as payments. Every payment is
    rebuilt with the payment label and a single receiver.

    Args:
        purchases: Transactions or purchase dicts (id, label, amount, payer,
            beneficiaries).
        payments: PaymentRecords, payment dicts (id, from_participant,
            to_participant, amount) or payment transactions.

    Returns:
        list[Transaction]: Fresh transactions, safe to mutate.
    """
    stream = [_to_transaction(record) for record in purchases]

    for payment in payments or []:
        if isinstance(payment, dict) and "from_participant" in payment:
            payment = PaymentRecord.from_dict(payment)
        elif not isinstance(payment, PaymentRecord):
            payment = PaymentRecord.from_transaction(_to_transaction(payment))
        stream.append(payment.to_transaction())

    return stream
