"""End-to-end ledger passes: normalize, aggregate, plan."""

import json

import pytest

from ledger import LedgerResult, compute_ledger, compute_ledger_from_records
from participants import Participant, ParticipantRegistry
from sheet_import import parse_sheet_rows
from transactions import Transaction, make_payment

EPSILON = 0.01


def test_two_people_one_product():
    result = compute_ledger([Transaction("T001", "Picanha", 100, "A", ["A", "B"])])
    a = result.participant("A")
    b = result.participant("B")

    assert (a.total_paid, a.total_consumed, a.net_balance) == (100, 50, 50)
    assert (b.total_paid, b.total_consumed, b.net_balance) == (0, 50, -50)
    assert [s.to_dict() for s in result.settlements] == [
        {"from_participant": "B", "to_participant": "A", "amount": 50.0}
    ]
    assert result.total_cost == 100


def test_recorded_payment_settles_the_debt():
    stream = [
        Transaction("T001", "Picanha", 100, "A", ["A", "B"]),
        make_payment("pay-001", "B", "A", 50),
    ]

    result = compute_ledger(stream)

    assert result.participant("A").net_balance == 0
    assert result.participant("B").net_balance == 0
    assert result.settlements == []
    assert [p.to_dict() for p in result.payments] == [
        {"id": "pay-001", "from_participant": "B", "to_participant": "A", "amount": 50.0}
    ]
    assert result.total_cost == 100


def test_reversing_a_payment_restores_the_settlement():
    with_payment = compute_ledger([
        Transaction("T001", "Picanha", 100, "A", ["A", "B"]),
        make_payment("pay-001", "B", "A", 50),
    ])

    reversed_stream = [t for t in with_payment.transactions() if t.id != "pay-001"]
    result = compute_ledger(reversed_stream)

    assert result.payments == []
    assert [(s.from_participant, s.to_participant, s.amount) for s in result.settlements] == [
        ("B", "A", 50.0)
    ]


def test_partial_payment_leaves_the_rest_pending():
    result = compute_ledger([
        Transaction("T001", "Cerveja", 90, "A", ["A", "B", "C"]),
        make_payment("pay-001", "B", "A", 10),
    ])

    amounts = {(s.from_participant, s.to_participant): s.amount for s in result.settlements}
    assert amounts == {("B", "A"): pytest.approx(20), ("C", "A"): pytest.approx(30)}


def test_family_pays_through_responsible():
    registry = ParticipantRegistry([
        Participant("Ana"),
        Participant("Bruno"),
        Participant("Lucas", payment_responsible="Bruno"),
        Participant("Marina", payment_responsible="Bruno"),
    ])
    stream = [Transaction("T001", "Costela", 200, "Ana", ["Ana", "Bruno", "Lucas", "Marina"])]

    result = compute_ledger(stream, registry)

    assert [(s.from_participant, s.to_participant, s.amount) for s in result.settlements] == [
        ("Bruno", "Ana", 150.0)
    ]
    assert result.participant("Lucas").raw_balance == -50
    assert result.participant("Lucas").shadow_balance == 0


def test_total_cost_excludes_payments_and_includes_unconsumed_products():
    result = compute_ledger([
        Transaction("T001", "Gelo", 15, "A", []),
        Transaction("T002", "Carvão", 45, "B", ["A", "B"]),
        make_payment("pay-001", "A", "B", 5),
    ])

    assert result.total_cost == 60
    assert [p.id for p in result.products] == ["T001", "T002"]


def test_settlements_zero_out_shadow_balances():
    registry = ParticipantRegistry([Participant("E", payment_responsible="A")])
    stream = [
        Transaction("1", "x", 100, "A", ["A", "B", "C"]),
        Transaction("2", "y", 37.9, "B", ["C", "D", "E"]),
        Transaction("3", "z", 12.35, "D", ["A", "D", "E"]),
        make_payment("pay-1", "C", "A", 20),
    ]

    result = compute_ledger(stream, registry)
    balances = {p.name: p.shadow_balance for p in result.participants}
    for s in result.settlements:
        balances[s.from_participant] += s.amount
        balances[s.to_participant] -= s.amount

    assert all(abs(b) < EPSILON for b in balances.values())


def test_idempotent_passes():
    registry = ParticipantRegistry([Participant("A"), Participant("C", payment_responsible="B")])
    stream = [
        Transaction("1", "x", 33.3, "A", ["A", "B", "C"]),
        make_payment("pay-1", "B", "A", 5),
    ]

    first = compute_ledger(stream, registry).to_dict()
    second = compute_ledger(stream, registry).to_dict()

    assert first == second


def test_empty_ledger():
    result = compute_ledger([], ParticipantRegistry([Participant("A")]))

    assert result.settlements == []
    assert result.total_cost == 0
    assert result.participant("A").shadow_balance == 0


def test_from_raw_records():
    result = compute_ledger_from_records(
        [{"id": "T001", "label": "Pão", "amount": "R$ 12,00", "payer": "A", "beneficiaries": "A, B, C"}],
        [{"id": "pay-001", "from_participant": "B", "to_participant": "A", "amount": 4}],
    )

    assert result.participant("A").total_consumed == pytest.approx(8)
    assert [(s.from_participant, s.amount) for s in result.settlements] == [("C", pytest.approx(4))]


def test_result_survives_json_roundtrip():
    registry = ParticipantRegistry([Participant("B", payment_responsible="A")])
    result = compute_ledger([
        Transaction("T001", "Picanha", 100, "A", ["A", "B", "C"]),
        make_payment("pay-001", "C", "A", 10),
    ], registry)

    restored = LedgerResult.from_dict(json.loads(json.dumps(result.to_dict())))

    assert restored.to_dict() == result.to_dict()


def test_receiverless_sheet_payment_is_stable_across_passes():
    rows = [
        ["Nome", "Valor", "Consumidores", "Pagador"],
        ["Picanha", "100", "A, B", "A"],
        ["Pagamento", "50", "", "B"],
    ]
    first = compute_ledger(parse_sheet_rows(rows))

    second = compute_ledger(first.transactions())

    assert second.to_dict() == first.to_dict()
    assert second.participant("Unknown") is None
