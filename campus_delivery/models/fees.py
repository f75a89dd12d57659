"""
Campus Delivery: Delivery fee configuration and order totals
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class FeeConfig:
    """Per-person delivery surcharge and the payee shown for online payment."""

    per_person_charge: float
    payee_name: str
    bank_name: str
    account_number: str

    def __post_init__(self):
        if not self.per_person_charge > 0:
            raise ValueError("per_person_charge must be positive")

    def to_dict(self) -> dict:
        return {
            "deliveryChargePerPerson": self.per_person_charge,
            "accountTitle": self.payee_name,
            "bankName": self.bank_name,
            "accountNumber": self.account_number,
        }


DEFAULT_FEE_CONFIG = FeeConfig(
    per_person_charge=150,
    payee_name="Maratib Ali",
    bank_name="SadaPay",
    account_number="03330374616",
)


@dataclass(frozen=True)
class OrderTotals:
    item_total: float
    delivery_charge: float
    grand_total: float

    def to_dict(self) -> dict:
        return {
            "itemTotal": self.item_total,
            "deliveryCharge": self.delivery_charge,
            "grandTotal": self.grand_total,
        }


def compute_totals(cart_total: float, person_count: int, fee_config: FeeConfig) -> OrderTotals:
    """No rounding happens here; formatting to two decimals is a display concern."""
    if person_count < 1:
        raise ValueError("person_count must be at least 1")
    delivery_charge = person_count * fee_config.per_person_charge
    return OrderTotals(
        item_total=cart_total,
        delivery_charge=delivery_charge,
        grand_total=cart_total + delivery_charge,
    )
