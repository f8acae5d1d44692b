from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from domain.exceptions import InvalidPaymentModeError


class PaymentMode(Enum):
    CASH = "CASH"
    INSTALLMENTS = "INSTALLMENTS"
    SUBSCRIPTION = "SUBSCRIPTION"

    @classmethod
    def parse(cls, value: Union[str, "PaymentMode"]) -> "PaymentMode":
        """Accept an enum member, its name, or the legacy Portuguese name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            key = _PAYMENT_MODE_ALIASES.get(key, key)
            if key in cls.__members__:
                return cls[key]
        raise InvalidPaymentModeError(value)


_PAYMENT_MODE_ALIASES = {
    "A_VISTA": "CASH",
    "PARCELADO": "INSTALLMENTS",
    "MENSALIDADE": "SUBSCRIPTION",
}


@dataclass
class ContractTerms:
    """Payment terms of a contract, as supplied by the contract collaborator."""
    total_value: Decimal
    payment_mode: PaymentMode
    installment_count: Optional[int] = None
    due_day: Optional[int] = None
    billing_start_date: Optional[date] = None
    billing_end_date: Optional[date] = None
