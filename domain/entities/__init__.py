# import
from .contract import ContractTerms, PaymentMode
from .installment import Installment, InstallmentStatus, ReceiptMethod
from .payment_event import PaymentRecorded
from .summary import ScheduleSummary

__all__ = ["ContractTerms", "PaymentMode", "Installment", "InstallmentStatus", "ReceiptMethod", "PaymentRecorded", "ScheduleSummary"]
