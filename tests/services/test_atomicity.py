"""
Tests for the all-or-nothing contract of transaction writes.

Covers:
- A failed item write leaves no header behind (compensation)
- PartialWriteError carries the kind and id of the removed header
- Store failures during recalculation roll back the triggering write
- Balances are untouched by failed writes
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from pocket_ledger.domain.dtos import DonationHeader, ExpenseHeader
from pocket_ledger.exceptions import PartialWriteError, StorageError
from pocket_ledger.models import Donation, DonationItem, Expense, ExpenseItem
from pocket_ledger.selectors.pocket_selector import PocketSelector
from pocket_ledger.services.transaction_service import DonationService, ExpenseService

TEST_DATE = date(2024, 3, 15)


def _disk_error(*args, **kwargs):
    raise OperationalError("INSERT INTO items", {}, Exception("disk I/O error"))


def _write_one_then_fail(self, header, specs):
    """Write the first item, then fail like a dropped connection would."""
    spec = specs[0]
    header.items.append(
        self.item_model(category_id=spec.category_id, amount=spec.amount, line_seq=0)
    )
    self.session.flush()
    _disk_error()


def _count(session, model) -> int:
    return session.execute(select(func.count()).select_from(model)).scalar_one()


class TestCompensation:
    def test_failed_item_write_removes_donation_header(
        self, session, monkeypatch, general_pocket, zakat, items, treasurer, captured_logs
    ):
        monkeypatch.setattr(DonationService, "_write_items", _write_one_then_fail)
        service = DonationService(session)

        with pytest.raises(PartialWriteError) as exc_info:
            service.create_donation(
                DonationHeader(general_pocket.id, TEST_DATE, "cash"),
                items((zakat, 100), (zakat, 50)),
                treasurer.actor_id,
            )

        assert exc_info.value.transaction_kind == "donation"
        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert _count(session, Donation) == 0
        assert _count(session, DonationItem) == 0
        compensated = [r for r in captured_logs() if r["message"] == "transaction_compensated"]
        assert len(compensated) == 1
        assert compensated[0]["level"] == "WARNING"
        assert compensated[0]["removed_header_id"] == exc_info.value.transaction_id

    def test_failed_item_write_removes_expense_header(
        self, session, monkeypatch, general_pocket, utilities, items, treasurer
    ):
        monkeypatch.setattr(ExpenseService, "_write_items", _write_one_then_fail)
        service = ExpenseService(session)

        with pytest.raises(PartialWriteError):
            service.create_expense(
                ExpenseHeader(general_pocket.id, "Electricity", TEST_DATE),
                items((utilities, 75)),
                treasurer.actor_id,
            )

        assert _count(session, Expense) == 0
        assert _count(session, ExpenseItem) == 0

    def test_earlier_work_in_transaction_survives_compensation(
        self, session, monkeypatch, general_pocket, zakat, items, treasurer
    ):
        service = DonationService(session)
        kept = service.create_donation(
            DonationHeader(general_pocket.id, TEST_DATE, "cash"),
            items((zakat, 10)),
            treasurer.actor_id,
        )
        monkeypatch.setattr(DonationService, "_write_items", _write_one_then_fail)

        with pytest.raises(PartialWriteError):
            service.create_donation(
                DonationHeader(general_pocket.id, TEST_DATE, "transfer"),
                items((zakat, 99)),
                treasurer.actor_id,
            )

        ids = session.execute(select(Donation.id)).scalars().all()
        assert ids == [kept.id]
        assert _count(session, DonationItem) == 1

    def test_facade_reports_partial_write_and_keeps_balance(
        self, ledger, admin, monkeypatch, make_donation, zakat, general_pocket, pocket_balance
    ):
        make_donation((zakat, 10))
        monkeypatch.setattr(DonationService, "_write_items", _write_one_then_fail)

        with pytest.raises(PartialWriteError):
            make_donation((zakat, 500))

        assert pocket_balance(general_pocket) == Decimal("10")
        page = ledger.list_donations(admin)
        assert page.total == 1


class TestStorageFailure:
    def test_recalculation_failure_rolls_back_donation(
        self, ledger, admin, monkeypatch, make_donation, zakat, general_pocket,
        pocket_balance, session,
    ):
        make_donation((zakat, 10))
        monkeypatch.setattr(PocketSelector, "compute_balance", _disk_error)

        with pytest.raises(StorageError) as exc_info:
            make_donation((zakat, 500))

        assert exc_info.value.code == "DATABASE_ERROR"
        assert not isinstance(exc_info.value, PartialWriteError)
        monkeypatch.undo()
        assert _count(session, Donation) == 1
        assert pocket_balance(general_pocket) == Decimal("10")

    def test_failure_is_logged_with_operation(
        self, ledger, monkeypatch, make_donation, zakat, captured_logs
    ):
        monkeypatch.setattr(PocketSelector, "compute_balance", _disk_error)

        with pytest.raises(StorageError):
            make_donation((zakat, 500))

        failed = [r for r in captured_logs() if r["message"] == "ledger_operation_failed"]
        assert failed[-1]["operation"] == "create_donation"
        assert failed[-1]["exc_type"] == "StorageError"
