"""
BarbecueSplitter - FastAPI Web Backend

This module serves as the main entry point for the barbecue expense
splitting service using FastAPI.

Features:
    - RESTful API for barbecues, participants, products and payments
    - Integration with Firebase Firestore backend
    - Full ledger pass (balances, shadow balances, settlements) after
      every change
    - Payment recording, reversal and reset

Every change follows the same flow: load the authoritative records, apply
the change locally and compute the new ledger (always succeeds), then
persist. If persisting fails, the local result is discarded, the ledger is
reloaded from Firestore, and the client gets a 503 carrying the reloaded
ledger.

Endpoints:
    POST   /barbecues                                   - Create a barbecue
    GET    /barbecues/{barbecue_id}/ledger              - Compute the ledger
    POST   /barbecues/{barbecue_id}/participants        - Add participant
    PATCH  /barbecues/{barbecue_id}/participants/{name} - Update PIX / responsible
    DELETE /barbecues/{barbecue_id}/participants/{name} - Remove participant
    GET    /barbecues/{barbecue_id}/participants/{name}/explanation
    POST   /barbecues/{barbecue_id}/products            - Add product
    PUT    /barbecues/{barbecue_id}/products/{id}       - Edit product
    DELETE /barbecues/{barbecue_id}/products/{id}       - Delete product
    GET    /barbecues/{barbecue_id}/payments            - Payment history
    POST   /barbecues/{barbecue_id}/payments            - Record payment
    DELETE /barbecues/{barbecue_id}/payments/{id}       - Reverse payment
    DELETE /barbecues/{barbecue_id}/payments            - Reset payments
    POST   /barbecues/{barbecue_id}/import              - Import sheet rows

Usage:
    uvicorn main:app --reload
"""

import logging
import uuid
from typing import Any, Callable, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from firebase_store import (
    add_payment,
    add_product,
    barbecue_exists,
    create_barbecue,
    delete_all_payments,
    delete_payment,
    delete_product,
    get_payments,
    import_transactions,
    load_ledger_inputs,
    remove_participant,
    save_results,
    update_product,
)
from ledger import LedgerResult, compute_ledger
from participants import (
    Participant,
    ParticipantRegistry,
    PixInfo,
    add_participant,
    update_participant,
)
from sheet_import import UNASSIGNED_PAYER, parse_sheet_rows
from transactions import Transaction, make_payment, parse_beneficiaries
from utils import (
    explain_participant_share,
    is_dependent,
    participant_status,
    payment_history,
    settlement_composition,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Pydantic Models for Request/Response Validation
# =============================================================================

class BarbecueCreate(BaseModel):
    """Request model for creating a new barbecue."""
    name: Optional[str] = Field(None, description="Optional barbecue name")


class BarbecueResponse(BaseModel):
    """Response model for barbecue creation."""
    barbecue_id: str
    message: str


class PixModel(BaseModel):
    key: str = Field(..., min_length=1, description="PIX key")
    type: str = Field("CPF", description="PIX key type")


class ParticipantCreate(BaseModel):
    """Request model for adding a participant."""
    name: str = Field(..., min_length=1, description="Participant name")
    pix: Optional[PixModel] = None
    payment_responsible: Optional[str] = Field(None, description="Who pays for this participant")


class ParticipantUpdate(BaseModel):
    """Request model for updating a participant. Omitted fields are kept."""
    pix: Optional[PixModel] = None
    payment_responsible: Optional[str] = Field(None, description="Empty string clears it")


class ProductCreate(BaseModel):
    """Request model for adding a product."""
    label: str = Field(..., min_length=1, description="Product name")
    amount: float = Field(..., ge=0, description="Price")
    payer: str = Field(..., min_length=1, description="Who paid")
    beneficiaries: list[str] = Field(default_factory=list, description="Who consumed it")


class ProductUpdate(BaseModel):
    """Request model for editing a product. Omitted fields are kept."""
    label: Optional[str] = Field(None, min_length=1)
    amount: Optional[float] = Field(None, ge=0)
    payer: Optional[str] = Field(None, min_length=1)
    beneficiaries: Optional[list[str]] = None
    reset_payments: bool = Field(False, description="Delete recorded payments before editing")


class PaymentCreate(BaseModel):
    """Request model for recording a payment."""
    payer: str = Field(..., min_length=1, description="Who sent the money")
    receiver: str = Field(..., min_length=1, description="Who received it")
    amount: float = Field(..., gt=0, description="Amount transferred")


class ImportRequest(BaseModel):
    """Request model for importing rows of the legacy sheet."""
    rows: list[list[Any]] = Field(..., description="Sheet values, one list per row")


class ParticipantResponse(BaseModel):
    name: str
    pix: Optional[PixModel]
    payment_responsible: Optional[str]
    total_paid: float
    total_consumed: float
    raw_balance: float
    shadow_balance: float
    status: str
    is_dependent: bool


class ProductResponse(BaseModel):
    id: str
    label: str
    amount: float
    payer: str
    beneficiaries: list[str]


class PaymentResponse(BaseModel):
    id: str
    from_participant: str
    to_participant: str
    amount: float


class CompositionMember(BaseModel):
    name: str
    personal_debt: float


class SettlementResponse(BaseModel):
    from_participant: str
    to_participant: str
    amount: float
    members: list[CompositionMember]


class LedgerResponse(BaseModel):
    """Response model for a ledger pass."""
    participants: list[ParticipantResponse]
    products: list[ProductResponse]
    payments: list[PaymentResponse]
    settlements: list[SettlementResponse]
    total_cost: float


class ExplanationResponse(BaseModel):
    name: str
    products_consumed: list[dict]
    products_paid: list[dict]
    payments_made: list[dict]
    payments_received: list[dict]
    total_consumed: float
    total_paid: float


class ImportResponse(BaseModel):
    imported_products: int
    imported_payments: int
    ledger: LedgerResponse


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="Barbecue Splitter",
    description="Shared expenses, dependents and settlements for group barbecues",
    version="1.0.0"
)


# =============================================================================
# Helper Functions
# =============================================================================

def _temp_id(prefix: str) -> str:
    return f"temp-{prefix}{uuid.uuid4().hex[:8]}"


def _ledger_response(result: LedgerResult) -> LedgerResponse:
    """Convert a LedgerResult into the API response."""
    participants = []
    for p in result.participants:
        participants.append(ParticipantResponse(
            name=p.name,
            pix=PixModel(**p.pix.to_dict()) if p.pix else None,
            payment_responsible=p.payment_responsible,
            total_paid=p.total_paid,
            total_consumed=p.total_consumed,
            raw_balance=p.raw_balance,
            shadow_balance=p.shadow_balance,
            status=participant_status(p),
            is_dependent=is_dependent(p)
        ))

    settlements = []
    for s in result.settlements:
        composition = settlement_composition(s, result.participants)
        settlements.append(SettlementResponse(
            from_participant=s.from_participant,
            to_participant=s.to_participant,
            amount=s.amount,
            members=[CompositionMember(**m) for m in composition["members"]]
        ))

    return LedgerResponse(
        participants=participants,
        products=[ProductResponse(**p.to_dict()) for p in result.products],
        payments=[PaymentResponse(**p.to_dict()) for p in result.payments],
        settlements=settlements,
        total_cost=result.total_cost
    )


def _load(barbecue_id: str) -> tuple[list[Transaction], ParticipantRegistry]:
    if not barbecue_exists(barbecue_id):
        raise LookupError(f"Barbecue {barbecue_id} not found")
    return load_ledger_inputs(barbecue_id)


def _reload(barbecue_id: str) -> LedgerResult:
    transactions, registry = _load(barbecue_id)
    return compute_ledger(transactions, registry)


def _apply_change(
    barbecue_id: str,
    change: Callable[[list[Transaction], ParticipantRegistry], tuple[list[Transaction], ParticipantRegistry]],
    persist: Callable[[], Optional[object]],
    temp_id: Optional[str] = None
) -> LedgerResult:
    """
    Compute the ledger with a change applied locally, then persist it.

    Args:
        barbecue_id: The ID of the barbecue.
        change: Applies the change to (transactions, registry) and returns
            the new pair.
        persist: Writes the change to Firestore. May return the stored
            record, whose id then replaces temp_id in the result.
        temp_id: Id used for a new record in the local computation.

    Returns:
        LedgerResult: The ledger after the change.

    Raises:
        ValueError, LookupError: Invalid change; nothing was persisted.
        HTTPException: 503 when persisting failed. The detail carries the
            error and the ledger reloaded from Firestore.
    """
    transactions, registry = _load(barbecue_id)
    transactions, registry = change(transactions, registry)
    result = compute_ledger(transactions, registry)

    try:
        stored = persist()
        save_results(barbecue_id, result)
    except (ValueError, LookupError):
        raise
    except Exception as e:
        logger.exception("Persisting change to barbecue %s failed; reloading", barbecue_id)
        try:
            reloaded = _ledger_response(_reload(barbecue_id)).model_dump()
        except Exception:
            logger.exception("Reloading barbecue %s failed", barbecue_id)
            reloaded = None
        raise HTTPException(status_code=503, detail={"error": str(e), "ledger": reloaded})

    stored_id = getattr(stored, "id", None)
    if temp_id and stored_id:
        for record in result.products + result.payments:
            if record.id == temp_id:
                record.id = stored_id

    return result


def _without_payments(transactions: list[Transaction]) -> list[Transaction]:
    return [t for t in transactions if not t.is_settlement_payment]


# =============================================================================
# API Endpoints
# =============================================================================

@app.post("/barbecues", response_model=BarbecueResponse, status_code=201)
async def create_new_barbecue(barbecue_data: BarbecueCreate = None):
    """Create a new barbecue and return its id."""
    try:
        barbecue_id = create_barbecue(barbecue_data.name if barbecue_data else None)
        return BarbecueResponse(
            barbecue_id=barbecue_id,
            message="Barbecue created successfully"
        )

    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("Creating barbecue failed")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/barbecues/{barbecue_id}/ledger", response_model=LedgerResponse)
async def get_ledger(barbecue_id: str):
    """
    Compute and persist the ledger of a barbecue.

    Request flow:
        1. Load products, payments and participants from Firestore
        2. Run the ledger pass (ledger.py)
        3. Persist balances and settlements (firebase_store.py)
        4. Return the complete result
    """
    try:
        result = _reload(barbecue_id)
        save_results(barbecue_id, result)
        return _ledger_response(result)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("Computing ledger of %s failed", barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/barbecues/{barbecue_id}/participants", response_model=LedgerResponse, status_code=201)
async def add_barbecue_participant(barbecue_id: str, participant_data: ParticipantCreate):
    """Add a participant and return the recomputed ledger."""
    pix = PixInfo(**participant_data.pix.model_dump()) if participant_data.pix else None
    name = participant_data.name.strip()

    def change(transactions, registry):
        if name in registry:
            raise ValueError(f"Participant '{name}' already exists in barbecue {barbecue_id}")
        responsible = (participant_data.payment_responsible or "").strip()
        if responsible and responsible == name:
            raise ValueError("A participant cannot be their own payment responsible")
        registry.add(Participant(
            name=name,
            pix=pix,
            payment_responsible=participant_data.payment_responsible
        ))
        return transactions, registry

    try:
        result = _apply_change(
            barbecue_id,
            change,
            lambda: add_participant(
                barbecue_id,
                name,
                pix=pix,
                payment_responsible=participant_data.payment_responsible
            )
        )
        return _ledger_response(result)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Adding participant to %s failed", barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.patch("/barbecues/{barbecue_id}/participants/{name}", response_model=LedgerResponse)
async def update_barbecue_participant(barbecue_id: str, name: str, participant_data: ParticipantUpdate):
    """Update PIX data or payment responsible, and return the recomputed ledger."""
    pix = PixInfo(**participant_data.pix.model_dump()) if participant_data.pix else None
    responsible = participant_data.payment_responsible

    def change(transactions, registry):
        participant = registry.get(name)
        if participant is None:
            raise LookupError(f"Participant {name} not found in barbecue {barbecue_id}")
        if pix is not None:
            participant.pix = pix
        if responsible is not None:
            participant.payment_responsible = responsible.strip() or None
        return transactions, registry

    try:
        result = _apply_change(
            barbecue_id,
            change,
            lambda: update_participant(barbecue_id, name, pix=pix, payment_responsible=responsible)
        )
        return _ledger_response(result)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Updating participant %s of %s failed", name, barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/barbecues/{barbecue_id}/participants/{name}", response_model=LedgerResponse)
async def remove_barbecue_participant(barbecue_id: str, name: str):
    """
    Remove a participant and return the recomputed ledger.

    The name is dropped from every product's consumers and replaced by "-"
    where it was the payer.
    """
    def change(transactions, registry):
        if name not in registry:
            raise LookupError(f"Participant {name} not found in barbecue {barbecue_id}")
        if len(registry) <= 1:
            raise ValueError("Cannot remove the only participant")
        registry.remove(name)
        for transaction in transactions:
            if transaction.is_settlement_payment:
                continue
            transaction.beneficiaries = [b for b in transaction.beneficiaries if b != name]
            if transaction.payer == name:
                transaction.payer = UNASSIGNED_PAYER
        return transactions, registry

    try:
        result = _apply_change(barbecue_id, change, lambda: remove_participant(barbecue_id, name))
        return _ledger_response(result)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Removing participant %s of %s failed", name, barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/barbecues/{barbecue_id}/participants/{name}/explanation", response_model=ExplanationResponse)
async def explain_participant(barbecue_id: str, name: str):
    """Show what a participant consumed, paid, and sent or received."""
    try:
        transactions, registry = _load(barbecue_id)
        if name not in registry and not any(
            name == t.payer or name in t.beneficiaries for t in transactions
        ):
            raise LookupError(f"Participant {name} not found in barbecue {barbecue_id}")
        return ExplanationResponse(**explain_participant_share(name, transactions))

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("Explaining participant %s of %s failed", name, barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/barbecues/{barbecue_id}/products", response_model=LedgerResponse, status_code=201)
async def add_barbecue_product(barbecue_id: str, product_data: ProductCreate):
    """Add a product and return the recomputed ledger."""
    temp_id = _temp_id("product-")

    def change(transactions, registry):
        product = Transaction(
            id=temp_id,
            label=product_data.label.strip(),
            amount=product_data.amount,
            payer=product_data.payer.strip(),
            beneficiaries=product_data.beneficiaries
        )
        products = _without_payments(transactions)
        payments = [t for t in transactions if t.is_settlement_payment]
        return products + [product] + payments, registry

    try:
        result = _apply_change(
            barbecue_id,
            change,
            lambda: add_product(
                barbecue_id,
                product_data.label,
                product_data.amount,
                product_data.payer,
                product_data.beneficiaries
            ),
            temp_id=temp_id
        )
        return _ledger_response(result)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Adding product to %s failed", barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.put("/barbecues/{barbecue_id}/products/{product_id}", response_model=LedgerResponse)
async def update_barbecue_product(barbecue_id: str, product_id: str, product_data: ProductUpdate):
    """
    Edit a product and return the recomputed ledger.

    Editing a product changes balances that recorded payments were based on;
    set reset_payments to delete those payments first.
    """
    def change(transactions, registry):
        # Rejected before persist, which may delete payments first
        for field in ("label", "payer"):
            value = getattr(product_data, field)
            if value is not None and not value.strip():
                raise ValueError(f"{field} must be a non-empty string")
        if product_data.reset_payments:
            transactions = _without_payments(transactions)
        for transaction in transactions:
            if transaction.id == product_id and not transaction.is_settlement_payment:
                if product_data.label is not None:
                    transaction.label = product_data.label.strip()
                if product_data.amount is not None:
                    transaction.amount = product_data.amount
                if product_data.payer is not None:
                    transaction.payer = product_data.payer.strip()
                if product_data.beneficiaries is not None:
                    transaction.beneficiaries = parse_beneficiaries(product_data.beneficiaries)
                return transactions, registry
        raise LookupError(f"Product {product_id} not found in barbecue {barbecue_id}")

    def persist():
        if product_data.reset_payments:
            delete_all_payments(barbecue_id)
        return update_product(
            barbecue_id,
            product_id,
            label=product_data.label,
            amount=product_data.amount,
            payer=product_data.payer,
            beneficiaries=product_data.beneficiaries
        )

    try:
        result = _apply_change(barbecue_id, change, persist)
        return _ledger_response(result)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Updating product %s of %s failed", product_id, barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/barbecues/{barbecue_id}/products/{product_id}", response_model=LedgerResponse)
async def delete_barbecue_product(barbecue_id: str, product_id: str, reset_payments: bool = False):
    """Delete a product and return the recomputed ledger."""
    def change(transactions, registry):
        if not any(t.id == product_id and not t.is_settlement_payment for t in transactions):
            raise LookupError(f"Product {product_id} not found in barbecue {barbecue_id}")
        if reset_payments:
            transactions = _without_payments(transactions)
        return [t for t in transactions if t.id != product_id], registry

    def persist():
        if reset_payments:
            delete_all_payments(barbecue_id)
        delete_product(barbecue_id, product_id)

    try:
        result = _apply_change(barbecue_id, change, persist)
        return _ledger_response(result)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Deleting product %s of %s failed", product_id, barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/barbecues/{barbecue_id}/payments", response_model=list[PaymentResponse])
async def get_payment_history(barbecue_id: str):
    """Recorded payments, newest first."""
    try:
        if not barbecue_exists(barbecue_id):
            raise LookupError(f"Barbecue {barbecue_id} not found")
        return [PaymentResponse(**p.to_dict()) for p in payment_history(get_payments(barbecue_id))]

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except Exception as e:
        logger.exception("Listing payments of %s failed", barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/barbecues/{barbecue_id}/payments", response_model=LedgerResponse, status_code=201)
async def record_payment(barbecue_id: str, payment_data: PaymentCreate):
    """Record a payment (usually a suggested settlement) and return the recomputed ledger."""
    temp_id = _temp_id("pay-")
    payer = payment_data.payer.strip()
    receiver = payment_data.receiver.strip()

    def change(transactions, registry):
        if payer == receiver:
            raise ValueError("payer and receiver must be different participants")
        return transactions + [make_payment(temp_id, payer, receiver, payment_data.amount)], registry

    try:
        result = _apply_change(
            barbecue_id,
            change,
            lambda: add_payment(barbecue_id, payer, receiver, payment_data.amount),
            temp_id=temp_id
        )
        return _ledger_response(result)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Recording payment in %s failed", barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/barbecues/{barbecue_id}/payments/{payment_id}", response_model=LedgerResponse)
async def reverse_payment(barbecue_id: str, payment_id: str):
    """Reverse a recorded payment and return the recomputed ledger."""
    def change(transactions, registry):
        if not any(t.id == payment_id and t.is_settlement_payment for t in transactions):
            raise LookupError(f"Payment {payment_id} not found in barbecue {barbecue_id}")
        return [t for t in transactions if t.id != payment_id], registry

    try:
        result = _apply_change(barbecue_id, change, lambda: delete_payment(barbecue_id, payment_id))
        return _ledger_response(result)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Reversing payment %s of %s failed", payment_id, barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.delete("/barbecues/{barbecue_id}/payments", response_model=LedgerResponse)
async def reset_payments(barbecue_id: str):
    """Delete every recorded payment and return the recomputed ledger."""
    def change(transactions, registry):
        return _without_payments(transactions), registry

    try:
        result = _apply_change(barbecue_id, change, lambda: delete_all_payments(barbecue_id))
        return _ledger_response(result)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Resetting payments of %s failed", barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/barbecues/{barbecue_id}/import", response_model=ImportResponse)
async def import_sheet(barbecue_id: str, import_data: ImportRequest):
    """
    Replace products and payments with rows from the legacy sheet.

    Payments are recognised by their label (e.g. "Pagamento").
    """
    imported = parse_sheet_rows(import_data.rows)

    def change(transactions, registry):
        return [t.copy() for t in imported], registry

    try:
        result = _apply_change(barbecue_id, change, lambda: import_transactions(barbecue_id, imported))
        return ImportResponse(
            imported_products=len(result.products),
            imported_payments=len(result.payments),
            ledger=_ledger_response(result)
        )

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RuntimeError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Importing rows into %s failed", barbecue_id)
        raise HTTPException(status_code=500, detail=str(e))


# =============================================================================
# Health Check Endpoint
# =============================================================================

@app.get("/health")
async def health_check():
    """Health check endpoint to verify API is running."""
    return {"status": "healthy", "service": "Barbecue Splitter"}


# =============================================================================
# Run with: python main.py
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
