"""
SQLAlchemy store tests against an in-memory SQLite database (aiosqlite).
"""
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.dialects import postgresql
from sqlalchemy.pool import StaticPool

from conftest import make_installment
from domain.entities import InstallmentStatus, ReceiptMethod
from domain.exceptions import PaidHistoryError
from infrastructure.db.models import Base
from infrastructure.db.repositories.installment_store_sqlalchemy import InstallmentStoreSqlalchemy, lock_contract_rows

CONTRACT_ID = "CTR-2025-0001"


@pytest_asyncio.fixture
async def session():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with session_factory() as db:
        yield db
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_store(session):
    store = InstallmentStoreSqlalchemy(session)
    await store.insert_many(CONTRACT_ID, [
        make_installment(seq=1, due_date=date(2025, 1, 10), expected_amount="33.33"),
        make_installment(seq=2, due_date=date(2025, 2, 10), expected_amount="33.33"),
        make_installment(seq=3, due_date=date(2025, 3, 10), expected_amount="33.34"),
    ])
    return store


@pytest.mark.asyncio
async def test_round_trip_keeps_decimal_amounts(sql_store):
    installments = await sql_store.find_by_contract(CONTRACT_ID)

    assert [i.expected_amount for i in installments] == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
    assert installments[0].status == InstallmentStatus.SCHEDULED
    assert installments[0].competencia == "01/2025"


@pytest.mark.asyncio
async def test_mark_paid_is_conditional(sql_store):
    first = await sql_store.mark_paid(f"{CONTRACT_ID}-001", date(2025, 1, 9), Decimal("33.33"), ReceiptMethod.PIX)
    second = await sql_store.mark_paid(f"{CONTRACT_ID}-001", date(2025, 1, 20), Decimal("10.00"), ReceiptMethod.CHECK)

    assert first.status == InstallmentStatus.PAID
    assert second is None
    stored = await sql_store.find_by_id(f"{CONTRACT_ID}-001")
    assert stored.payment_date == date(2025, 1, 9)
    assert stored.receipt_method == ReceiptMethod.PIX


@pytest.mark.asyncio
async def test_update_missing_row_returns_none(sql_store):
    assert await sql_store.update("missing", {"notes": "x"}) is None


@pytest.mark.asyncio
async def test_overdue_candidates_and_update_many(sql_store):
    await sql_store.mark_paid(f"{CONTRACT_ID}-001", date(2025, 1, 9), Decimal("33.33"))

    candidates = await sql_store.find_overdue_candidates(date(2025, 3, 1))
    assert [i.id for i in candidates] == [f"{CONTRACT_ID}-002"]

    candidates[0].mark_overdue(date(2025, 3, 1))
    assert await sql_store.update_many(candidates) == 1

    stored = await sql_store.find_by_id(f"{CONTRACT_ID}-002")
    assert stored.status == InstallmentStatus.OVERDUE
    assert stored.days_overdue == 19


@pytest.mark.asyncio
async def test_update_many_skips_rows_paid_meanwhile(sql_store):
    candidates = await sql_store.find_overdue_candidates(date(2025, 3, 1))
    for inst in candidates:
        inst.mark_overdue(date(2025, 3, 1))
    await sql_store.mark_paid(f"{CONTRACT_ID}-001", date(2025, 2, 28), Decimal("33.33"))

    assert await sql_store.update_many(candidates) == 1
    assert (await sql_store.find_by_id(f"{CONTRACT_ID}-001")).status == InstallmentStatus.PAID


@pytest.mark.asyncio
async def test_update_many_skips_rows_cancelled_meanwhile(sql_store):
    as_of = date(2025, 3, 1)
    candidates = await sql_store.find_overdue_candidates(as_of)
    await sql_store.update(f"{CONTRACT_ID}-001", {"status": InstallmentStatus.CANCELLED})
    for inst in candidates:
        inst.mark_overdue(as_of)

    assert await sql_store.update_many(candidates) == 1
    assert (await sql_store.find_by_id(f"{CONTRACT_ID}-001")).status == InstallmentStatus.CANCELLED
    assert (await sql_store.find_by_id(f"{CONTRACT_ID}-002")).status == InstallmentStatus.OVERDUE


@pytest.mark.asyncio
async def test_update_many_skips_rows_rescheduled_meanwhile(sql_store):
    as_of = date(2025, 3, 1)
    candidates = await sql_store.find_overdue_candidates(as_of)
    await sql_store.update(f"{CONTRACT_ID}-002", {"due_date": date(2025, 3, 20), "competencia": "03/2025"})
    for inst in candidates:
        inst.mark_overdue(as_of)

    assert await sql_store.update_many(candidates) == 1
    rescheduled = await sql_store.find_by_id(f"{CONTRACT_ID}-002")
    assert rescheduled.status == InstallmentStatus.SCHEDULED
    assert rescheduled.days_overdue == 0


@pytest.mark.asyncio
async def test_replace_for_contract(sql_store):
    await sql_store.find_by_contract(CONTRACT_ID)
    new_schedule = [make_installment(seq=seq, due_date=date(2025, seq, 5), expected_amount="20.00") for seq in range(1, 6)]

    await sql_store.replace_for_contract(CONTRACT_ID, new_schedule)

    stored = await sql_store.find_by_contract(CONTRACT_ID)
    assert len(stored) == 5
    assert all(i.expected_amount == Decimal("20.00") for i in stored)


@pytest.mark.asyncio
async def test_replace_refuses_paid_history_and_rolls_back(sql_store):
    await sql_store.mark_paid(f"{CONTRACT_ID}-002", date(2025, 2, 1), Decimal("33.33"))

    with pytest.raises(PaidHistoryError):
        await sql_store.replace_for_contract(CONTRACT_ID, [make_installment(seq=1)])

    assert len(await sql_store.find_by_contract(CONTRACT_ID)) == 3
    assert await sql_store.has_paid(CONTRACT_ID)


@pytest.mark.asyncio
async def test_delete_all_for_contract(sql_store):
    assert await sql_store.delete_all_for_contract(CONTRACT_ID) == 3
    assert await sql_store.find_by_contract(CONTRACT_ID) == []


@pytest.mark.asyncio
async def test_find_all_filters_and_pages(sql_store):
    items, total = await sql_store.find_all(page=1, page_size=2)
    assert total == 3
    assert [i.sequence_number for i in items] == [1, 2]

    items, total = await sql_store.find_all(filters={"month": 2, "year": 2025})
    assert total == 1
    assert items[0].id == f"{CONTRACT_ID}-002"

    items, total = await sql_store.find_all(page_size=None, filters={"status": "SCHEDULED", "contract_id": CONTRACT_ID})
    assert total == 3
    assert len(items) == 3


@pytest.mark.asyncio
async def test_find_due_between_and_by_status(sql_store):
    due = await sql_store.find_due_between(date(2025, 2, 1), date(2025, 3, 10), InstallmentStatus.SCHEDULED)
    assert [i.sequence_number for i in due] == [2, 3]

    await sql_store.update(f"{CONTRACT_ID}-003", {"status": InstallmentStatus.CANCELLED})
    cancelled = await sql_store.find_by_status(InstallmentStatus.CANCELLED)
    assert [i.id for i in cancelled] == [f"{CONTRACT_ID}-003"]


def test_paid_history_check_locks_contract_rows():
    sql = str(lock_contract_rows(CONTRACT_ID).compile(dialect=postgresql.dialect()))

    assert "FOR UPDATE" in sql
    assert "installment.contract_id" in sql


@pytest.mark.asyncio
async def test_safe_delete_refuses_paid_history(sql_store):
    await sql_store.mark_paid(f"{CONTRACT_ID}-003", date(2025, 3, 9), Decimal("33.34"))

    with pytest.raises(PaidHistoryError) as exc:
        await sql_store.delete_all_for_contract(CONTRACT_ID, force=False)

    assert exc.value.paid_count == 1
    assert len(await sql_store.find_by_contract(CONTRACT_ID)) == 3
