"""Tests for presentation helpers."""

import pytest

from ledger import compute_ledger
from participants import Participant, ParticipantRegistry
from settlement import SettlementTransaction
from transactions import PaymentRecord, Transaction, make_payment
from utils import (
    STATUS_PAYS,
    STATUS_RECEIVES,
    STATUS_SETTLED,
    explain_participant_share,
    format_currency,
    is_dependent,
    participant_status,
    payment_history,
    settlement_composition,
)


@pytest.mark.parametrize("value,expected", [
    (1234.5, "R$ 1234,50"),
    (0, "R$ 0,00"),
    (2.675, "R$ 2,68"),
    (0.005, "R$ 0,01"),
    (-3, "- R$ 3,00"),
    (-0.004, "R$ 0,00"),
    (-10.456, "- R$ 10,46"),
])
def test_format_currency(value, expected):
    assert format_currency(value) == expected


@pytest.mark.parametrize("shadow,expected", [
    (12.0, STATUS_RECEIVES),
    (-12.0, STATUS_PAYS),
    (0.005, STATUS_SETTLED),
    (-0.005, STATUS_SETTLED),
])
def test_participant_status(shadow, expected):
    assert participant_status(Participant("Ana", shadow_balance=shadow)) == expected


def test_is_dependent():
    assert is_dependent(Participant("Lucas", payment_responsible="Bruno"))
    assert not is_dependent(Participant("Bruno"))
    assert not is_dependent(Participant("Bruno", payment_responsible="Bruno"))


class TestExplainParticipantShare:

    TRANSACTIONS = [
        Transaction("T001", "Picanha", 90.0, "Ana", ["Ana", "Bruno", "Carla"]),
        Transaction("T002", "Cerveja", 40.0, "Bruno", ["Bruno", "Carla"]),
        Transaction("T003", "Carvão", 20.0, "Ana", []),
        make_payment("pay-001", "Carla", "Ana", 30.0),
    ]

    def test_consumer_and_payer(self):
        explanation = explain_participant_share("Ana", self.TRANSACTIONS)

        assert [item["product_id"] for item in explanation["products_consumed"]] == ["T001"]
        assert explanation["products_consumed"][0]["share_count"] == 3
        assert explanation["products_consumed"][0]["share_cost"] == pytest.approx(30.0)
        assert [item["product_id"] for item in explanation["products_paid"]] == ["T001", "T003"]
        assert explanation["total_paid"] == 110.0
        assert explanation["total_consumed"] == pytest.approx(30.0)
        assert explanation["payments_made"] == []
        assert explanation["payments_received"] == [
            {"id": "pay-001", "from_participant": "Carla", "to_participant": "Ana", "amount": 30.0}
        ]

    def test_payments_are_not_products(self):
        explanation = explain_participant_share("Carla", self.TRANSACTIONS)

        assert [item["product_id"] for item in explanation["products_consumed"]] == ["T001", "T002"]
        assert explanation["products_paid"] == []
        assert explanation["total_consumed"] == pytest.approx(50.0)
        assert [p["id"] for p in explanation["payments_made"]] == ["pay-001"]

    def test_unknown_name(self):
        explanation = explain_participant_share("Ghost", self.TRANSACTIONS)

        assert explanation["name"] == "Ghost"
        assert explanation["products_consumed"] == []
        assert explanation["total_paid"] == 0


class TestSettlementComposition:

    def test_debtor_and_dependents(self):
        registry = ParticipantRegistry([
            Participant("Ana"),
            Participant("Bruno"),
            Participant("Lucas", payment_responsible="Bruno"),
            Participant("Marina", payment_responsible="Bruno"),
        ])
        result = compute_ledger([
            Transaction("T001", "Picanha", 200.0, "Ana", ["Ana", "Bruno", "Lucas"]),
            Transaction("T002", "Refrigerante", 10.0, "Marina", ["Marina"]),
        ], registry)

        assert len(result.settlements) == 1
        composition = settlement_composition(result.settlements[0], result.participants)

        assert composition["debtor"] == "Bruno"
        assert [m["name"] for m in composition["members"]] == ["Bruno", "Lucas"]
        assert composition["members"][0]["personal_debt"] == pytest.approx(200 / 3)
        assert composition["total"] == pytest.approx(400 / 3)

    def test_debtor_without_dependents(self):
        participants = [Participant("Bruno", total_consumed=50.0)]
        composition = settlement_composition(SettlementTransaction("Bruno", "Ana", 50.0), participants)

        assert composition == {
            "debtor": "Bruno",
            "members": [{"name": "Bruno", "personal_debt": 50.0}],
            "total": 50.0
        }


def test_payment_history_newest_first():
    payments = [
        PaymentRecord("pay-001", "Bruno", "Ana", 10.0),
        PaymentRecord("pay-002", "Carla", "Ana", 20.0),
    ]

    assert [p.id for p in payment_history(payments)] == ["pay-002", "pay-001"]
    assert [p.id for p in payments] == ["pay-001", "pay-002"]
