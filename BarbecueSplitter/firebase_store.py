"""
Firebase Store Module

This module persists barbecue records and computed results in Firebase
Firestore.

Features:
    - Create barbecues
    - Add/edit/delete products
    - Record, reverse and reset payments
    - Remove participants and scrub them from products
    - Load everything a ledger pass needs
    - Save computed balances and settlements (safe to overwrite)

Firestore Structure:
    barbecues/{barbecue_id}
        - barbecue_id: string
        - name: string
        - created_at: timestamp

    barbecues/{barbecue_id}/products/{product_id}
        - id: string (T001, T002, ...)
        - label: string
        - amount: float
        - payer: string
        - beneficiaries: list of names
        - sequence: int

    barbecues/{barbecue_id}/payments/{payment_id}
        - id: string (pay-001, pay-002, ...)
        - from_participant: string
        - to_participant: string
        - amount: float
        - sequence: int

    barbecues/{barbecue_id}/results/balances/{name}
        - name, total_paid, total_consumed, raw_balance, shadow_balance
        - updated_at: timestamp

    barbecues/{barbecue_id}/results/settlements/{settlement_id}
        - settlement_id: string (S001, S002, ...)
        - from_participant, to_participant, amount
        - updated_at: timestamp

Functions:
    create_barbecue: Create a barbecue document.
    get_products / add_product / update_product / delete_product
    get_payments / add_payment / delete_payment / delete_all_payments
    remove_participant: Delete a participant and scrub their name.
    import_transactions: Replace products and payments with imported ones.
    load_ledger_inputs: Transactions and registry for a ledger pass.
    save_results: Save balances and settlements of a ledger pass.
"""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from config.firebase_config import get_db
from participants import ParticipantRegistry, delete_participant, get_participants
from sheet_import import UNASSIGNED_PAYER
from transactions import PaymentRecord, Transaction, parse_beneficiaries

logger = logging.getLogger(__name__)


PRODUCT_ID_PATTERN = re.compile(r"^T(\d+)$")
PAYMENT_ID_PATTERN = re.compile(r"^pay-(\d+)$")


def _get_timestamp() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        str: ISO formatted timestamp.
    """
    return datetime.now(timezone.utc).isoformat()


def _validate_barbecue_id(barbecue_id: str) -> None:
    """
    Validate that barbecue_id is a non-empty string.

    Raises:
        ValueError: If barbecue_id is invalid.
    """
    if not isinstance(barbecue_id, str) or not barbecue_id.strip():
        raise ValueError("barbecue_id must be a non-empty string")


def _validate_amount(amount) -> float:
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount < 0:
        raise ValueError(f"amount must be a non-negative number, got: {amount}")
    return float(amount)


def _validate_name(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")
    return value.strip()


def _require_db(db):
    if db is None:
        db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")
    return db


def _barbecue_ref(db, barbecue_id: str):
    return db.collection("barbecues").document(barbecue_id)


def _next_sequence(collection_ref, pattern: re.Pattern) -> tuple[int, int]:
    """
    Find the next id number and sequence for a collection.

    Ids that do not match the pattern (e.g. rows imported from a sheet) are
    ignored for numbering but still count for sequence.

    Returns:
        tuple[int, int]: (next id number, next sequence)
    """
    max_num = 0
    max_sequence = 0

    for doc in collection_ref.stream():
        match = pattern.match(doc.id)
        if match:
            max_num = max(max_num, int(match.group(1)))
        max_sequence = max(max_sequence, doc.to_dict().get("sequence", 0))

    return max_num + 1, max_sequence + 1


def _sorted_documents(collection_ref) -> list[dict]:
    documents = [doc.to_dict() for doc in collection_ref.stream()]
    documents.sort(key=lambda data: data.get("sequence", 0))
    return documents


# =============================================================================
# Barbecues
# =============================================================================

def create_barbecue(name: Optional[str] = None, db=None) -> str:
    """
    Create a new barbecue.

    Args:
        name: Optional display name; defaults to the generated id.
        db: Firestore client; defaults to get_db().

    Returns:
        str: The new barbecue id (bbq_{short_uuid}).

    Raises:
        RuntimeError: If Firestore is not available.
    """
    db = _require_db(db)

    barbecue_id = f"bbq_{uuid.uuid4().hex[:8]}"
    _barbecue_ref(db, barbecue_id).set({
        "barbecue_id": barbecue_id,
        "name": name.strip() if name and name.strip() else barbecue_id,
        "created_at": _get_timestamp()
    })
    logger.info("Created barbecue %s", barbecue_id)

    return barbecue_id


def barbecue_exists(barbecue_id: str, db=None) -> bool:
    _validate_barbecue_id(barbecue_id)
    db = _require_db(db)
    return _barbecue_ref(db, barbecue_id).get().exists


# =============================================================================
# Products
# =============================================================================

def _product_document(product: Transaction, sequence: int) -> dict:
    return {
        "id": product.id,
        "label": product.label,
        "amount": product.amount,
        "payer": product.payer,
        "beneficiaries": list(product.beneficiaries),
        "sequence": sequence
    }


def get_products(barbecue_id: str, db=None) -> list[Transaction]:
    """
    Get all products of a barbecue, in the order they were added.

    Raises:
        ValueError: If barbecue_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    _validate_barbecue_id(barbecue_id)
    db = _require_db(db)

    products_ref = _barbecue_ref(db, barbecue_id).collection("products")
    return [Transaction.from_dict(data) for data in _sorted_documents(products_ref)]


def add_product(
    barbecue_id: str,
    label: str,
    amount: float,
    payer: str,
    beneficiaries: list[str],
    db=None
) -> Transaction:
    """
    Add a new product to a barbecue.

    Args:
        barbecue_id: The ID of the barbecue.
        label: Product name.
        amount: Price (>= 0).
        payer: Name of who paid.
        beneficiaries: Names of who consumed it (may be empty).
        db: Firestore client; defaults to get_db().

    Returns:
        Transaction: The stored product.

    Raises:
        ValueError: If input validation fails.
        RuntimeError: If Firestore is not available.

    Notes:
        - Payer and beneficiaries need not be registered participants; the
          ledger creates unknown names on the fly
    """
    _validate_barbecue_id(barbecue_id)
    label = _validate_name(label, "label")
    payer = _validate_name(payer, "payer")
    amount = _validate_amount(amount)
    db = _require_db(db)

    products_ref = _barbecue_ref(db, barbecue_id).collection("products")
    next_num, sequence = _next_sequence(products_ref, PRODUCT_ID_PATTERN)

    product = Transaction(
        id=f"T{next_num:03d}",
        label=label,
        amount=amount,
        payer=payer,
        beneficiaries=beneficiaries
    )
    products_ref.document(product.id).set(_product_document(product, sequence))
    logger.info("Added product %s (%s) to barbecue %s", product.id, label, barbecue_id)

    return product


def update_product(
    barbecue_id: str,
    product_id: str,
    label: Optional[str] = None,
    amount: Optional[float] = None,
    payer: Optional[str] = None,
    beneficiaries: Optional[list[str]] = None,
    db=None
) -> Transaction:
    """
    Update fields of a product. Fields left as None are kept.

    Raises:
        ValueError: If input validation fails.
        LookupError: If the product does not exist.
        RuntimeError: If Firestore is not available.
    """
    _validate_barbecue_id(barbecue_id)
    db = _require_db(db)

    doc_ref = _barbecue_ref(db, barbecue_id).collection("products").document(product_id)
    doc = doc_ref.get()
    if not doc.exists:
        raise LookupError(f"Product {product_id} not found in barbecue {barbecue_id}")

    updates = {}
    if label is not None:
        updates["label"] = _validate_name(label, "label")
    if amount is not None:
        updates["amount"] = _validate_amount(amount)
    if payer is not None:
        updates["payer"] = _validate_name(payer, "payer")
    if beneficiaries is not None:
        updates["beneficiaries"] = parse_beneficiaries(beneficiaries)

    if updates:
        doc_ref.update(updates)
        logger.info("Updated product %s in barbecue %s: %s", product_id, barbecue_id, sorted(updates))

    data = doc.to_dict()
    data.update(updates)
    return Transaction.from_dict(data)


def delete_product(barbecue_id: str, product_id: str, db=None) -> None:
    """
    Delete a product.

    Raises:
        LookupError: If the product does not exist.
        RuntimeError: If Firestore is not available.
    """
    _validate_barbecue_id(barbecue_id)
    db = _require_db(db)

    doc_ref = _barbecue_ref(db, barbecue_id).collection("products").document(product_id)
    if not doc_ref.get().exists:
        raise LookupError(f"Product {product_id} not found in barbecue {barbecue_id}")

    doc_ref.delete()
    logger.info("Deleted product %s from barbecue %s", product_id, barbecue_id)


# =============================================================================
# Payments
# =============================================================================

def get_payments(barbecue_id: str, db=None) -> list[PaymentRecord]:
    """
    Get all recorded payments of a barbecue, oldest first.

    Raises:
        ValueError: If barbecue_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    _validate_barbecue_id(barbecue_id)
    db = _require_db(db)

    payments_ref = _barbecue_ref(db, barbecue_id).collection("payments")
    return [PaymentRecord.from_dict(data) for data in _sorted_documents(payments_ref)]


def add_payment(barbecue_id: str, payer: str, receiver: str, amount: float, db=None) -> PaymentRecord:
    """
    Record a payment from payer to receiver.

    Args:
        barbecue_id: The ID of the barbecue.
        payer: Who sent the money.
        receiver: Who received it.
        amount: Amount (> 0).
        db: Firestore client; defaults to get_db().

    Returns:
        PaymentRecord: The stored payment with its pay-### id.

    Raises:
        ValueError: If input validation fails.
        RuntimeError: If Firestore is not available.
    """
    _validate_barbecue_id(barbecue_id)
    payer = _validate_name(payer, "payer")
    receiver = _validate_name(receiver, "receiver")
    amount = _validate_amount(amount)
    if amount == 0:
        raise ValueError("amount must be greater than zero")
    if payer == receiver:
        raise ValueError("payer and receiver must be different participants")
    db = _require_db(db)

    payments_ref = _barbecue_ref(db, barbecue_id).collection("payments")
    next_num, sequence = _next_sequence(payments_ref, PAYMENT_ID_PATTERN)

    payment = PaymentRecord(
        id=f"pay-{next_num:03d}",
        from_participant=payer,
        to_participant=receiver,
        amount=amount
    )
    doc_data = payment.to_dict()
    doc_data["sequence"] = sequence
    payments_ref.document(payment.id).set(doc_data)
    logger.info("Recorded payment %s: %s -> %s (%.2f)", payment.id, payer, receiver, amount)

    return payment


def delete_payment(barbecue_id: str, payment_id: str, db=None) -> None:
    """
    Reverse a recorded payment by deleting it.

    Raises:
        LookupError: If the payment does not exist.
        RuntimeError: If Firestore is not available.
    """
    _validate_barbecue_id(barbecue_id)
    db = _require_db(db)

    doc_ref = _barbecue_ref(db, barbecue_id).collection("payments").document(payment_id)
    if not doc_ref.get().exists:
        raise LookupError(f"Payment {payment_id} not found in barbecue {barbecue_id}")

    doc_ref.delete()
    logger.info("Reversed payment %s in barbecue %s", payment_id, barbecue_id)


def delete_all_payments(barbecue_id: str, db=None) -> int:
    """
    Delete every recorded payment of a barbecue.

    Returns:
        int: Number of payments deleted.
    """
    _validate_barbecue_id(barbecue_id)
    db = _require_db(db)

    payments_ref = _barbecue_ref(db, barbecue_id).collection("payments")
    count = 0
    for doc in payments_ref.stream():
        payments_ref.document(doc.id).delete()
        count += 1

    logger.info("Reset %d payments in barbecue %s", count, barbecue_id)
    return count


# =============================================================================
# Participants across products
# =============================================================================

def remove_participant(barbecue_id: str, name: str, db=None) -> None:
    """
    Remove a participant from a barbecue.

    The name is dropped from every product's beneficiaries and replaced by
    "-" where it was the payer. Recorded payments are kept as they are.

    Raises:
        ValueError: If this is the only participant.
        LookupError: If the participant does not exist.
        RuntimeError: If Firestore is not available.
    """
    _validate_barbecue_id(barbecue_id)
    db = _require_db(db)

    registry = get_participants(barbecue_id, db=db)
    if name not in registry:
        raise LookupError(f"Participant {name} not found in barbecue {barbecue_id}")
    if len(registry) <= 1:
        raise ValueError("Cannot remove the only participant")

    products_ref = _barbecue_ref(db, barbecue_id).collection("products")
    for product in get_products(barbecue_id, db=db):
        updates = {}
        if name in product.beneficiaries:
            updates["beneficiaries"] = [b for b in product.beneficiaries if b != name]
        if product.payer == name:
            updates["payer"] = UNASSIGNED_PAYER
        if updates:
            products_ref.document(product.id).update(updates)

    delete_participant(barbecue_id, name, db=db)


# =============================================================================
# Import
# =============================================================================

def import_transactions(barbecue_id: str, transactions: list[Transaction], db=None) -> dict:
    """
    Replace all products and payments with imported transactions.

    Args:
        barbecue_id: The ID of the barbecue.
        transactions: Unified stream, e.g. from sheet_import.parse_sheet_rows.
        db: Firestore client; defaults to get_db().

    Returns:
        dict: Counts of imported products and payments.
    """
    _validate_barbecue_id(barbecue_id)
    db = _require_db(db)

    barbecue_ref = _barbecue_ref(db, barbecue_id)
    products_ref = barbecue_ref.collection("products")
    payments_ref = barbecue_ref.collection("payments")

    for collection_ref in (products_ref, payments_ref):
        for doc in collection_ref.stream():
            collection_ref.document(doc.id).delete()

    product_count = 0
    payment_count = 0
    for sequence, transaction in enumerate(transactions, start=1):
        if transaction.is_settlement_payment:
            doc_data = PaymentRecord.from_transaction(transaction).to_dict()
            doc_data["sequence"] = sequence
            payments_ref.document(transaction.id).set(doc_data)
            payment_count += 1
        else:
            products_ref.document(transaction.id).set(_product_document(transaction, sequence))
            product_count += 1

    logger.info("Imported %d products and %d payments into barbecue %s",
                product_count, payment_count, barbecue_id)

    return {"products": product_count, "payments": payment_count}


# =============================================================================
# Ledger inputs and results
# =============================================================================

def load_ledger_inputs(barbecue_id: str, db=None) -> tuple[list[Transaction], ParticipantRegistry]:
    """
    Load what a ledger pass needs.

    Returns:
        tuple: (products followed by payments as transactions, registry)

    Raises:
        ValueError: If barbecue_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    db = _require_db(db)

    products = get_products(barbecue_id, db=db)
    payments = get_payments(barbecue_id, db=db)
    registry = get_participants(barbecue_id, db=db)

    return products + [payment.to_transaction() for payment in payments], registry


def save_results(barbecue_id: str, result, db=None) -> dict:
    """
    Save balances and settlements of a ledger pass.

    Stores each participant's balance at
        barbecues/{barbecue_id}/results/balances/{name}
    and each suggested transfer at
        barbecues/{barbecue_id}/results/settlements/{settlement_id}

    Settlements from earlier passes are deleted first, so the stored plan
    always matches the latest pass.

    Args:
        barbecue_id: The ID of the barbecue.
        result: LedgerResult from ledger.compute_ledger().
        db: Firestore client; defaults to get_db().

    Returns:
        dict: Counts of saved documents and the timestamp used.

    Raises:
        ValueError: If barbecue_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    _validate_barbecue_id(barbecue_id)
    db = _require_db(db)

    timestamp = _get_timestamp()
    results_ref = _barbecue_ref(db, barbecue_id).collection("results")

    balances_ref = results_ref.document("balances").collection("balances")
    for doc in balances_ref.stream():
        balances_ref.document(doc.id).delete()

    for participant in result.participants:
        if "/" in participant.name:
            logger.warning("Not saving balance of %r: invalid document id", participant.name)
            continue
        balances_ref.document(participant.name).set({
            "name": participant.name,
            "total_paid": participant.total_paid,
            "total_consumed": participant.total_consumed,
            "raw_balance": participant.raw_balance,
            "shadow_balance": participant.shadow_balance,
            "updated_at": timestamp
        })

    settlements_ref = results_ref.document("settlements").collection("settlements")
    for doc in settlements_ref.stream():
        settlements_ref.document(doc.id).delete()

    settlement_ids = []
    for index, settlement in enumerate(result.settlements, start=1):
        settlement_id = f"S{index:03d}"
        doc_data = settlement.to_dict()
        doc_data["settlement_id"] = settlement_id
        doc_data["updated_at"] = timestamp
        settlements_ref.document(settlement_id).set(doc_data)
        settlement_ids.append(settlement_id)

    return {
        "saved_balances": len(result.participants),
        "settlement_ids": settlement_ids,
        "updated_at": timestamp
    }
