"""
Settlement Module

This module turns shadow balances into suggested transfers for the
barbecue ledger.

Features:
    - Convert shadow balances into settlement transactions
    - Greedy largest-debtor / largest-creditor matching
    - Near-zero balances treated as settled

Data Model:
    Input - balances: dict of participant name -> shadow balance
        (positive = is owed money, negative = owes money)

    Output - list of SettlementTransaction:
        - from_participant: string (debtor who pays)
        - to_participant: string (creditor who receives)
        - amount: float

Functions:
    optimize_settlements: Convert balances into settlement transactions.
"""

from splitter import EPSILON

# Smallest transfer worth suggesting
MIN_TRANSFER = 0.009


class SettlementTransaction:
    """
    A suggested transfer. Advisory only; it becomes a fact once recorded
    as a payment.

    Attributes:
        from_participant (str): Debtor who pays.
        to_participant (str): Creditor who receives.
        amount (float): Amount to transfer.
    """

    def __init__(self, from_participant: str, to_participant: str, amount: float):
        self.from_participant = from_participant
        self.to_participant = to_participant
        self.amount = amount

    def to_dict(self) -> dict:
        return {
            "from_participant": self.from_participant,
            "to_participant": self.to_participant,
            "amount": self.amount
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SettlementTransaction":
        return cls(
            from_participant=data.get("from_participant"),
            to_participant=data.get("to_participant"),
            amount=data.get("amount", 0.0)
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, SettlementTransaction):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"SettlementTransaction({self.from_participant} -> {self.to_participant}, amount={self.amount})"


def optimize_settlements(balances: dict) -> list[SettlementTransaction]:
    """
    Convert shadow balances into settlement transactions.

    Uses a greedy algorithm:
        1. Separate participants into debtors (balance < -EPSILON) and
           creditors (balance > EPSILON)
        2. Sort debtors by most negative balance first
        3. Sort creditors by largest balance first
        4. Match the current debtor with the current creditor:
           - Transfer the minimum of the debt and the credit
           - Move past whoever is now within EPSILON of zero (both when
             the amounts were equal)
           - Repeat until either list runs out

    This is minimal for the greedy rule, not the true minimum number of
    transfers in every case.

    Args:
        balances: Dict of participant name -> shadow balance.

    Returns:
        list[SettlementTransaction]: Transfers, in the order they were matched.

    Notes:
        - Does NOT modify input balances
        - Amounts are not rounded
    """
    debtors = [[name, balance] for name, balance in balances.items() if balance < -EPSILON]
    creditors = [[name, balance] for name, balance in balances.items() if balance > EPSILON]

    # Stable sorts keep registry order among equal balances
    debtors.sort(key=lambda entry: entry[1])
    creditors.sort(key=lambda entry: entry[1], reverse=True)

    settlements = []
    debtor_idx = 0
    creditor_idx = 0

    while debtor_idx < len(debtors) and creditor_idx < len(creditors):
        debtor = debtors[debtor_idx]
        creditor = creditors[creditor_idx]

        amount = min(-debtor[1], creditor[1])

        if amount > MIN_TRANSFER:
            settlements.append(SettlementTransaction(debtor[0], creditor[0], amount))

        debtor[1] += amount
        creditor[1] -= amount

        if abs(debtor[1]) < EPSILON:
            debtor_idx += 1
        if abs(creditor[1]) < EPSILON:
            creditor_idx += 1

    return settlements
