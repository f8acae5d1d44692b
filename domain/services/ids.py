"""Human readable identifiers for clients, contracts and installments."""
from typing import Optional

from domain.exceptions import ValidationError


def installment_id(contract_id: str, sequence_number: int) -> str:
    """{contract_id}-{seq:03d}, unique as long as contract ids are."""
    if sequence_number < 1:
        raise ValidationError(f"Sequence number must be positive, got {sequence_number}", field="sequence_number")
    return f"{contract_id}-{sequence_number:03d}"


def client_code(number: int) -> str:
    return f"CLT-{number:04d}"


def contract_code(year: int, number: int) -> str:
    return f"CTR-{year}-{number:04d}"


def next_sequence(last_code: Optional[str]) -> int:
    """Next number after the last issued code (CLT-0007 -> 8, None -> 1)."""
    if not last_code:
        return 1
    tail = last_code.rsplit("-", 1)[-1]
    if not tail.isdigit():
        raise ValidationError(f"Malformed code: {last_code!r}")
    return int(tail) + 1
