from typing_extensions import Protocol

from domain.entities import PaymentRecorded


class LedgerPort(Protocol):
    """Protocol for the cash ledger collaborator."""

    async def post_payment(self, event: PaymentRecorded) -> bool:
        """
        Hand a recorded payment to the ledger.

        Apportionment across cost centers is the ledger's concern.

        Args:
            event: Payment that was just committed

        Returns:
            True if the ledger accepted the event, False otherwise
        """
        ...
