# overdue reconciliation tests

from datetime import date
from decimal import Decimal

import pytest

from application.service.overdue_reconciliation import OverdueReconciliationService
from conftest import InMemoryInstallmentStore, make_installment
from domain.entities import InstallmentStatus
from domain.interfaces import MetricsPort

AS_OF = date(2025, 1, 15)


@pytest.fixture
def store():
    return InMemoryInstallmentStore([
        make_installment(seq=1, due_date=date(2025, 1, 10)),
        make_installment(seq=2, due_date=date(2025, 1, 15)),
        make_installment(seq=3, due_date=date(2025, 1, 1), status=InstallmentStatus.OVERDUE, days_overdue=3),
        make_installment(
            seq=4,
            due_date=date(2024, 12, 1),
            status=InstallmentStatus.PAID,
            payment_date=date(2024, 12, 20),
            paid_amount=Decimal("100.00"),
        ),
        make_installment(seq=5, due_date=date(2024, 12, 5), status=InstallmentStatus.CANCELLED),
    ])


@pytest.mark.asyncio
async def test_past_due_scheduled_becomes_overdue(store):
    service = OverdueReconciliationService(store)

    transitioned = await service.reconcile_overdue(AS_OF)

    assert transitioned == 1
    inst = await store.find_by_id("CTR-2025-0001-001")
    assert inst.status == InstallmentStatus.OVERDUE
    assert inst.days_overdue == 5


@pytest.mark.asyncio
async def test_due_today_stays_scheduled(store):
    await OverdueReconciliationService(store).reconcile_overdue(AS_OF)

    inst = await store.find_by_id("CTR-2025-0001-002")
    assert inst.status == InstallmentStatus.SCHEDULED
    assert inst.days_overdue == 0


@pytest.mark.asyncio
async def test_already_overdue_days_recomputed(store):
    await OverdueReconciliationService(store).reconcile_overdue(AS_OF)

    inst = await store.find_by_id("CTR-2025-0001-003")
    assert inst.days_overdue == 14


@pytest.mark.asyncio
async def test_paid_and_cancelled_untouched(store):
    await OverdueReconciliationService(store).reconcile_overdue(AS_OF)

    paid = await store.find_by_id("CTR-2025-0001-004")
    cancelled = await store.find_by_id("CTR-2025-0001-005")
    assert paid.status == InstallmentStatus.PAID
    assert paid.days_overdue == 0
    assert cancelled.status == InstallmentStatus.CANCELLED


@pytest.mark.asyncio
async def test_running_twice_is_idempotent(store):
    service = OverdueReconciliationService(store)

    first = await service.reconcile_overdue(AS_OF)
    snapshot = {i.id: (i.status, i.days_overdue) for i in (await store.find_all(page_size=None))[0]}
    second = await service.reconcile_overdue(AS_OF)
    again = {i.id: (i.status, i.days_overdue) for i in (await store.find_all(page_size=None))[0]}

    assert first == 1
    assert second == 0
    assert snapshot == again


@pytest.mark.asyncio
async def test_failure_applies_nothing_and_reraises(store):
    store.fail_next_write = RuntimeError("database unavailable")

    with pytest.raises(RuntimeError):
        await OverdueReconciliationService(store).reconcile_overdue(AS_OF)

    inst = await store.find_by_id("CTR-2025-0001-001")
    assert inst.status == InstallmentStatus.SCHEDULED


@pytest.mark.asyncio
async def test_emits_transition_metric(store, mocker):
    metrics = mocker.Mock(spec=MetricsPort)

    await OverdueReconciliationService(store, metrics_port=metrics).reconcile_overdue(AS_OF)

    metrics.increment_overdue_transitions.assert_called_once_with(count=1)


@pytest.mark.asyncio
async def test_installment_cancelled_during_run_stays_cancelled(store, mocker):
    service = OverdueReconciliationService(store)
    load_candidates = store.find_overdue_candidates

    async def cancel_after_read(as_of):
        candidates = await load_candidates(as_of)
        await store.update("CTR-2025-0001-001", {"status": InstallmentStatus.CANCELLED})
        return candidates

    mocker.patch.object(store, "find_overdue_candidates", side_effect=cancel_after_read)

    await service.reconcile_overdue(AS_OF)

    inst = await store.find_by_id("CTR-2025-0001-001")
    assert inst.status == InstallmentStatus.CANCELLED
    assert inst.days_overdue == 0
