"""
Participants Module

This module handles all participant-related operations for the barbecue
ledger.

Features:
    - Participant model with raw and shadow balances
    - In-memory registry with get-or-create lookup
    - Add/update/remove participants of a barbecue
    - Payment responsibility (dependents paid for by someone else)
    - PIX key metadata passed through untouched

Data Model:
    Participant stored at: barbecues/{barbecue_id}/participants/{name}
    Fields:
        - name: string (unique, case-sensitive)
        - pix: {key, type} or None
        - payment_responsible: string or None
        - position: int (registry order)

Functions:
    add_participant: Add a new participant to a barbecue.
    update_participant: Change PIX data or payment responsible.
    delete_participant: Delete a participant document.
    get_participants: Get all participants of a barbecue, in registry order.
"""

import logging
from typing import Iterator, Optional
from config.firebase_config import get_db

logger = logging.getLogger(__name__)


DEFAULT_PIX_TYPE = "CPF"


class PixInfo:
    """
    PIX key of a participant. Shown to whoever has to pay them.

    Attributes:
        key (str): The PIX key.
        type (str): Key type (CPF, email, phone, random...).
    """

    def __init__(self, key: str, type: str = DEFAULT_PIX_TYPE):
        self.key = key
        self.type = type or DEFAULT_PIX_TYPE

    def to_dict(self) -> dict:
        return {"key": self.key, "type": self.type}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["PixInfo"]:
        if not data or not data.get("key"):
            return None
        return cls(key=data["key"], type=data.get("type") or DEFAULT_PIX_TYPE)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixInfo):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"PixInfo(type='{self.type}', key='{self.key}')"


class Participant:
    """
    Represents a participant in a barbecue.

    Attributes:
        name (str): Unique name of the participant.
        pix (PixInfo | None): Optional PIX key.
        payment_responsible (str | None): Name of who pays for this participant.
        total_paid (float): Sum of amounts this participant fronted.
        total_consumed (float): Sum of shares this participant consumed.
        raw_balance (float): total_paid - total_consumed.
        shadow_balance (float): Balance after dependents are folded into
            their responsible. This is what settlement uses.
    """

    def __init__(
        self,
        name: str,
        pix: Optional[PixInfo] = None,
        payment_responsible: Optional[str] = None,
        total_paid: float = 0.0,
        total_consumed: float = 0.0,
        raw_balance: float = 0.0,
        shadow_balance: float = 0.0
    ):
        self.name = name
        self.pix = pix
        self.payment_responsible = payment_responsible or None
        self.total_paid = total_paid
        self.total_consumed = total_consumed
        self.raw_balance = raw_balance
        self.shadow_balance = shadow_balance

    @property
    def net_balance(self) -> float:
        """Balance used for settlement (alias of shadow_balance)."""
        return self.shadow_balance

    def reset(self) -> None:
        """Zero every computed total."""
        self.total_paid = 0.0
        self.total_consumed = 0.0
        self.raw_balance = 0.0
        self.shadow_balance = 0.0

    def to_dict(self) -> dict:
        """Convert participant to dictionary, including computed totals."""
        return {
            "name": self.name,
            "pix": self.pix.to_dict() if self.pix else None,
            "payment_responsible": self.payment_responsible,
            "total_paid": self.total_paid,
            "total_consumed": self.total_consumed,
            "raw_balance": self.raw_balance,
            "shadow_balance": self.shadow_balance,
            "net_balance": self.net_balance
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Participant":
        """Create a Participant instance from a dictionary."""
        return cls(
            name=data.get("name"),
            pix=PixInfo.from_dict(data.get("pix")),
            payment_responsible=data.get("payment_responsible"),
            total_paid=data.get("total_paid", 0.0),
            total_consumed=data.get("total_consumed", 0.0),
            raw_balance=data.get("raw_balance", 0.0),
            shadow_balance=data.get("shadow_balance", 0.0)
        )

    def copy(self) -> "Participant":
        return Participant.from_dict(self.to_dict())

    def __eq__(self, other) -> bool:
        if not isinstance(other, Participant):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        """Return string representation of participant."""
        return (
            f"Participant(name='{self.name}', paid={self.total_paid}, "
            f"consumed={self.total_consumed}, shadow={self.shadow_balance})"
        )


class ParticipantRegistry:
    """
    Participants keyed by name, kept in insertion order.

    Dependency aggregation walks the registry in this order, so the order
    is part of the ledger's result.
    """

    def __init__(self, participants: Optional[list] = None):
        self._participants: dict[str, Participant] = {}
        for participant in participants or []:
            if isinstance(participant, dict):
                participant = Participant.from_dict(participant)
            self.add(participant)

    def add(self, participant: Participant) -> Participant:
        """Register a participant, replacing any with the same name in place."""
        self._participants[participant.name] = participant
        return participant

    def get(self, name: str) -> Optional[Participant]:
        return self._participants.get(name)

    def resolve_or_create(self, name: str) -> Participant:
        """
        Return the participant with this name, creating it with zero totals
        when unknown.

        Transactions may reference names nobody registered (typos in the
        source sheet, people added directly as consumers). Those are created
        on demand instead of rejected.

        Args:
            name: Participant name.

        Returns:
            Participant: Existing or newly created participant.
        """
        participant = self._participants.get(name)
        if participant is None:
            logger.debug("Creating unregistered participant %r", name)
            participant = self.add(Participant(name=name))
        return participant

    def remove(self, name: str) -> Optional[Participant]:
        return self._participants.pop(name, None)

    def reset_totals(self) -> None:
        for participant in self._participants.values():
            participant.reset()

    def copy(self) -> "ParticipantRegistry":
        """Deep copy, so a ledger pass never mutates its caller's registry."""
        return ParticipantRegistry([p.copy() for p in self._participants.values()])

    def names(self) -> list[str]:
        return list(self._participants)

    def values(self) -> list[Participant]:
        return list(self._participants.values())

    def to_list(self) -> list[dict]:
        return [p.to_dict() for p in self._participants.values()]

    def __contains__(self, name) -> bool:
        return name in self._participants

    def __iter__(self) -> Iterator[Participant]:
        return iter(list(self._participants.values()))

    def __len__(self) -> int:
        return len(self._participants)

    def __repr__(self) -> str:
        return f"ParticipantRegistry({self.names()})"


# =============================================================================
# Firestore operations
# =============================================================================

def _validate_non_empty_string(value: str, field_name: str) -> bool:
    """
    Validate that a string is non-empty.

    Args:
        value: String to validate.
        field_name: Name of the field for error messages.

    Returns:
        bool: True if valid.

    Raises:
        ValueError: If string is empty or not a string.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string")
    return True


def _validate_name(name: str) -> str:
    _validate_non_empty_string(name, "name")
    name = name.strip()
    # Names are Firestore document ids
    if "/" in name:
        raise ValueError(f"name must not contain '/', got: {name}")
    return name


def _participants_ref(db, barbecue_id: str):
    return db.collection("barbecues").document(barbecue_id).collection("participants")


def _require_db(db):
    if db is None:
        db = get_db()
    if db is None:
        raise RuntimeError("Firestore is not available")
    return db


def _participant_document(participant: Participant, position: int) -> dict:
    return {
        "name": participant.name,
        "pix": participant.pix.to_dict() if participant.pix else None,
        "payment_responsible": participant.payment_responsible,
        "position": position
    }


def add_participant(
    barbecue_id: str,
    name: str,
    pix: Optional[PixInfo] = None,
    payment_responsible: Optional[str] = None,
    db=None
) -> Participant:
    """
    Add a new participant to a barbecue.

    Args:
        barbecue_id: The ID of the barbecue.
        name: Name of the participant (unique within the barbecue).
        pix: Optional PIX key.
        payment_responsible: Optional name of who pays for this participant.
        db: Firestore client; defaults to get_db().

    Returns:
        Participant: The created participant object.

    Raises:
        ValueError: If input validation fails or the name is taken.
        RuntimeError: If Firestore is not available.
    """
    _validate_non_empty_string(barbecue_id, "barbecue_id")
    name = _validate_name(name)
    db = _require_db(db)

    participants_ref = _participants_ref(db, barbecue_id)
    existing = [doc.to_dict() for doc in participants_ref.stream()]

    if any(data.get("name") == name for data in existing):
        raise ValueError(f"Participant '{name}' already exists in barbecue {barbecue_id}")

    responsible = payment_responsible.strip() if payment_responsible else None
    if responsible == name:
        raise ValueError("A participant cannot be their own payment responsible")

    position = max((data.get("position", 0) for data in existing), default=0) + 1
    participant = Participant(
        name=name,
        pix=pix,
        payment_responsible=responsible
    )

    participants_ref.document(name).set(_participant_document(participant, position))
    logger.info("Added participant %r to barbecue %s", name, barbecue_id)

    return participant


def update_participant(
    barbecue_id: str,
    name: str,
    pix: Optional[PixInfo] = None,
    payment_responsible: Optional[str] = None,
    db=None
) -> Participant:
    """
    Update PIX data and/or payment responsible of a participant.

    Args:
        barbecue_id: The ID of the barbecue.
        name: Name of the participant.
        pix: New PIX key, or None to keep the current one.
        payment_responsible: New responsible name, "" to clear it, or None
            to keep the current one.
        db: Firestore client; defaults to get_db().

    Returns:
        Participant: The updated participant object.

    Raises:
        ValueError: If input validation fails.
        LookupError: If the participant does not exist.
        RuntimeError: If Firestore is not available.
    """
    _validate_non_empty_string(barbecue_id, "barbecue_id")
    name = _validate_name(name)
    db = _require_db(db)

    doc_ref = _participants_ref(db, barbecue_id).document(name)
    doc = doc_ref.get()
    if not doc.exists:
        raise LookupError(f"Participant {name} not found in barbecue {barbecue_id}")

    updates = {}
    if pix is not None:
        updates["pix"] = pix.to_dict()
    if payment_responsible is not None:
        responsible = payment_responsible.strip() or None
        if responsible == name:
            raise ValueError("A participant cannot be their own payment responsible")
        updates["payment_responsible"] = responsible

    if updates:
        doc_ref.update(updates)
        logger.info("Updated participant %r in barbecue %s: %s", name, barbecue_id, sorted(updates))

    data = doc.to_dict()
    data.update(updates)
    return Participant.from_dict(data)


def delete_participant(barbecue_id: str, name: str, db=None) -> None:
    """
    Delete a participant document. Products referencing the name are not
    touched here; see firebase_store.remove_participant.

    Raises:
        LookupError: If the participant does not exist.
        RuntimeError: If Firestore is not available.
    """
    _validate_non_empty_string(barbecue_id, "barbecue_id")
    name = _validate_name(name)
    db = _require_db(db)

    doc_ref = _participants_ref(db, barbecue_id).document(name)
    if not doc_ref.get().exists:
        raise LookupError(f"Participant {name} not found in barbecue {barbecue_id}")

    doc_ref.delete()
    logger.info("Deleted participant %r from barbecue %s", name, barbecue_id)


def get_participants(barbecue_id: str, db=None) -> ParticipantRegistry:
    """
    Get all participants of a barbecue.

    Args:
        barbecue_id: The ID of the barbecue.
        db: Firestore client; defaults to get_db().

    Returns:
        ParticipantRegistry: Participants in the order they were added.

    Raises:
        ValueError: If barbecue_id is invalid.
        RuntimeError: If Firestore is not available.
    """
    _validate_non_empty_string(barbecue_id, "barbecue_id")
    db = _require_db(db)

    documents = [doc.to_dict() for doc in _participants_ref(db, barbecue_id).stream()]
    documents.sort(key=lambda data: data.get("position", 0))

    return ParticipantRegistry(documents)
