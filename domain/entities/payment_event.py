from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from .installment import Installment, ReceiptMethod


@dataclass
class PaymentRecorded:
    """Emitted after a payment is committed, for the cash ledger collaborator."""
    installment_id: str
    contract_id: str
    amount: Decimal
    date: date
    receipt_method: Optional[ReceiptMethod] = None

    @staticmethod
    def from_installment(installment: Installment) -> 'PaymentRecorded':
        return PaymentRecorded(
            installment_id=installment.id,
            contract_id=installment.contract_id,
            amount=installment.paid_amount,
            date=installment.payment_date,
            receipt_method=installment.receipt_method,
        )

    def to_payload(self) -> dict:
        return {
            "event": "INSTALLMENT_PAID",
            "installment_id": self.installment_id,
            "contract_id": self.contract_id,
            "amount": str(self.amount),
            "date": self.date.isoformat(),
            "receipt_method": self.receipt_method.value if self.receipt_method else None,
        }
