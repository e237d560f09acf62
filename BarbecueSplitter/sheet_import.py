"""
Sheet Import Module

Reads transactions from loosely structured spreadsheet rows, as exported
from the barbecue's legacy Google Sheet.

Expected layout (headers may sit anywhere above the data):

    Nome        | Valor     | Consumidores   | Pagador
    Picanha     | R$ 120,00 | Ana, Bruno     | Ana
    Pagamento   | 60        | Ana            | Bruno

Features:
    - Header row detection by keyword ("nome"/"name" and "valor"/"price")
    - Permissive amount parsing (unparseable amounts become 0)
    - Payment vs. product classification

Functions:
    classify_record: Decide whether a raw record is a purchase or a payment.
    parse_sheet_rows: Convert sheet rows into transactions.
"""

import logging
from enum import Enum
from typing import Optional

from transactions import (
    Transaction,
    make_payment,
    parse_amount,
    parse_beneficiaries,
)

logger = logging.getLogger(__name__)


# Substrings that mark a row label as a payment (source locale is pt-BR)
PAYMENT_KEYWORDS = ("pagamento", "payment", "settlement", "acerto")

# Payer used for rows that do not name one
UNASSIGNED_PAYER = "-"

NAME_HEADERS = ("nome", "name")
AMOUNT_HEADERS = ("valor", "price", "amount")
CONSUMER_HEADERS = ("consum",)
PAYER_HEADERS = ("pagador", "payer")


class RecordKind(Enum):
    PURCHASE = "purchase"
    SETTLEMENT_PAYMENT = "settlement_payment"


def classify_record(raw: dict) -> RecordKind:
    """
    Classify a raw record as a purchase or a settlement payment.

    An explicit flag ("is_settlement_payment" or "isPayment") wins. Without
    one, the label is checked for a payment keyword, case-insensitively.
    The keyword check is a heuristic.

    Args:
        raw: Dict with a "label" (or "name") and optionally an explicit flag.

    Returns:
        RecordKind: PURCHASE or SETTLEMENT_PAYMENT.
    """
    for flag in ("is_settlement_payment", "isPayment"):
        if raw.get(flag) is not None:
            return RecordKind.SETTLEMENT_PAYMENT if raw[flag] else RecordKind.PURCHASE

    label = str(raw.get("label") or raw.get("name") or "").lower()
    if any(keyword in label for keyword in PAYMENT_KEYWORDS):
        return RecordKind.SETTLEMENT_PAYMENT
    return RecordKind.PURCHASE


def _cell(row: list, index: Optional[int]) -> str:
    if index is None or index >= len(row) or row[index] is None:
        return ""
    return str(row[index]).strip()


def _find_column(header: list, keywords: tuple) -> Optional[int]:
    for index, cell in enumerate(header):
        text = str(cell or "").lower()
        if any(keyword in text for keyword in keywords):
            return index
    return None


def _find_header(rows: list) -> Optional[int]:
    for index, row in enumerate(rows):
        if _find_column(row, NAME_HEADERS) is not None and _find_column(row, AMOUNT_HEADERS) is not None:
            return index
    return None


def parse_sheet_rows(rows: list[list]) -> list[Transaction]:
    """
    Convert spreadsheet rows into transactions.

    Rows above the header are ignored. Below it, rows with an empty first
    column, or with neither an amount nor consumers, are skipped. Products
    get their 1-based row number as id; payments get "pay-<row>".

    Args:
        rows: Sheet values, one list of cells per row.

    Returns:
        list[Transaction]: Products and payments in sheet order. Empty when
        no header row is found.
    """
    header_idx = _find_header(rows)
    if header_idx is None:
        logger.warning("No header row found in %d sheet rows", len(rows))
        return []

    header = rows[header_idx]
    name_col = _find_column(header, NAME_HEADERS)
    amount_col = _find_column(header, AMOUNT_HEADERS)
    consumers_col = _find_column(header, CONSUMER_HEADERS)
    if consumers_col is None:
        consumers_col = 2
    payer_col = _find_column(header, PAYER_HEADERS)

    transactions = []

    for index in range(header_idx + 1, len(rows)):
        row = rows[index] or []
        if not _cell(row, 0):
            continue

        label = _cell(row, name_col)
        amount_text = _cell(row, amount_col)
        consumers_text = _cell(row, consumers_col)
        if not label or (not amount_text and not consumers_text):
            continue

        row_number = index + 1
        amount = parse_amount(amount_text)
        consumers = parse_beneficiaries(consumers_text)
        payer = _cell(row, payer_col) or UNASSIGNED_PAYER

        if classify_record({"label": label}) is RecordKind.SETTLEMENT_PAYMENT:
            receiver = consumers[0] if consumers else ""
            if len(consumers) > 1:
                logger.warning("Payment on row %d lists %d receivers; using %r",
                               row_number, len(consumers), receiver)
            transactions.append(make_payment(f"pay-{row_number}", payer, receiver, amount))
        else:
            transactions.append(Transaction(
                id=str(row_number),
                label=label,
                amount=amount,
                payer=payer,
                beneficiaries=consumers
            ))

    logger.debug("Parsed %d transactions from sheet", len(transactions))
    return transactions
