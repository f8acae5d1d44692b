import time
from datetime import date
from typing import Optional

from domain.entities import ContractTerms, Installment
from domain.interfaces import InstallmentStore, LoggingPort, MetricsPort, bind_logger
from domain.services import ScheduleGenerator


class ContractScheduleService:
    def __init__(
        self,
        store: InstallmentStore,
        generator: Optional[ScheduleGenerator] = None,
        metrics_port: Optional[MetricsPort] = None,
        logging_port: Optional[LoggingPort] = None,
    ):
        self.store = store
        self.generator = generator or ScheduleGenerator()
        self.metrics_port = metrics_port
        self.logging_port = logging_port

    def preview_schedule(self, contract_id: str, terms: ContractTerms, today: Optional[date] = None) -> list[Installment]:
        """Generate a schedule without persisting it."""
        return self.generator.generate_from_terms(contract_id, terms, today=today)

    async def create_schedule(self, contract_id: str, terms: ContractTerms, today: Optional[date] = None) -> list[Installment]:
        """Generate and persist the schedule of a newly created contract."""
        log = bind_logger(self.logging_port, contract_id=contract_id, step="create_schedule")
        installments = self.generator.generate_from_terms(contract_id, terms, today=today)
        saved = await self.store.insert_many(contract_id, installments)
        if self.metrics_port:
            self.metrics_port.increment_schedules_generated(payment_mode=terms.payment_mode.value)
        log.info(
            "schedule_created",
            payment_mode=terms.payment_mode.value,
            installment_count=len(saved),
            total_value=str(terms.total_value),
        )
        return saved

    async def regenerate_schedule(
        self,
        contract_id: str,
        terms: ContractTerms,
        force: bool = False,
        today: Optional[date] = None,
    ) -> list[Installment]:
        """
        Replace every installment of a contract with a schedule built from its current terms.

        The delete and the re-insert happen in one store transaction. Without
        force the store refuses when any installment is already PAID
        (PaidHistoryError); with force paid history is discarded as well.

        Args:
            contract_id: ID of the contract
            terms: Current payment terms of the contract
            force: Discard paid installments too
            today: Reference date used when terms have no billing start date
        """
        start_time = time.time()
        log = bind_logger(self.logging_port, contract_id=contract_id, step="regenerate_schedule")

        # Generate first so invalid terms never delete anything
        installments = self.generator.generate_from_terms(contract_id, terms, today=today)
        try:
            saved = await self.store.replace_for_contract(contract_id, installments, force=force)
        except Exception as e:
            log.error("schedule_regeneration_failed", force=force, error=str(e), error_type=type(e).__name__)
            raise

        if self.metrics_port:
            self.metrics_port.increment_schedules_generated(payment_mode=terms.payment_mode.value)
        log.info(
            "schedule_regenerated",
            force=force,
            payment_mode=terms.payment_mode.value,
            installment_count=len(saved),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return saved

    async def delete_schedule(self, contract_id: str, force: bool = False) -> int:
        """Remove the schedule of a contract being deleted; refuses paid history unless forced."""
        log = bind_logger(self.logging_port, contract_id=contract_id, step="delete_schedule")
        deleted = await self.store.delete_all_for_contract(contract_id, force=force)
        log.info("schedule_deleted", force=force, deleted=deleted)
        return deleted
