# installment query tests

from datetime import date

import pytest

from application.service.installment_queries import InstallmentQueryService
from conftest import InMemoryInstallmentStore, make_installment
from domain.entities import InstallmentStatus
from domain.exceptions import NotFoundError, ValidationError


@pytest.fixture
def service():
    store = InMemoryInstallmentStore([
        make_installment(seq=1, due_date=date(2025, 1, 10), status=InstallmentStatus.OVERDUE, days_overdue=5),
        make_installment(seq=2, due_date=date(2025, 2, 10)),
        make_installment(seq=3, due_date=date(2025, 3, 10)),
        make_installment(seq=1, contract_id="CTR-2025-0002", due_date=date(2025, 2, 20)),
    ])
    return InstallmentQueryService(store)


@pytest.mark.asyncio
async def test_get_unknown_raises(service):
    with pytest.raises(NotFoundError):
        await service.get("nope")


@pytest.mark.asyncio
async def test_search_paginates(service):
    page = await service.search(page=2, page_size=3)

    assert page.total == 4
    assert page.total_pages == 2
    assert [i.id for i in page.items] == ["CTR-2025-0001-003"]


@pytest.mark.asyncio
async def test_search_by_month_and_year(service):
    page = await service.search(filters={"month": 2, "year": 2025})
    assert {i.id for i in page.items} == {"CTR-2025-0001-002", "CTR-2025-0002-001"}


@pytest.mark.asyncio
async def test_search_by_status(service):
    page = await service.search(filters={"status": "ATRASADO"})
    assert [i.id for i in page.items] == ["CTR-2025-0001-001"]


@pytest.mark.asyncio
async def test_search_month_without_year_rejected(service):
    with pytest.raises(ValidationError):
        await service.search(filters={"month": 2})


@pytest.mark.asyncio
async def test_overdue(service):
    assert [i.id for i in await service.overdue()] == ["CTR-2025-0001-001"]


@pytest.mark.asyncio
async def test_upcoming_window(service):
    upcoming = await service.upcoming(days=12, today=date(2025, 2, 8))
    assert [i.id for i in upcoming] == ["CTR-2025-0001-002", "CTR-2025-0002-001"]


@pytest.mark.asyncio
async def test_list_for_contract_ordered(service):
    installments = await service.list_for_contract("CTR-2025-0001")
    assert [i.sequence_number for i in installments] == [1, 2, 3]


@pytest.mark.asyncio
async def test_summary_for_contract(service):
    summary = await service.summary("CTR-2025-0001")

    assert summary.overdue_count == 1
    assert summary.scheduled_count == 2
    assert summary.total_days_overdue == 5


@pytest.mark.asyncio
async def test_summary_overall(service):
    summary = await service.summary()
    assert summary.scheduled_count == 3
