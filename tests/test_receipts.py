"""
Tests for OR/CR issuance and voiding.
Run from the project root: python -m pytest tests/test_receipts.py -v
"""
import itertools
import unittest
from datetime import date
from decimal import Decimal
from unittest import mock

from services import receipts
from services.errors import (
    AlreadyVoided,
    DuplicateReceiptNumber,
    Forbidden,
    IneligibleApplicationState,
    NotFound,
    ValidationFailed,
)
from services.identifiers import RECEIPT_NUMBER_PATTERN, SequentialNumberGenerator
from tests.support import ADMIN, NOW, PROCESSOR, VIEWER, DatabaseTestCase


def _receipt_fields(application_id, **overrides):
    fields = {
        "applicationId": application_id,
        "receiptType": "OFFICIAL_RECEIPT",
        "amount": "1500.00",
        "paymentMethod": "gcash",
        "paymentReference": "GC-778812",
        "paymentDate": "2025-06-15",
        "payorName": "Maria Santos",
        "particulars": "Processing fee",
    }
    fields.update(overrides)
    return fields


class ReceiptTestCase(DatabaseTestCase):
    async def issue(self, fields, actor=PROCESSOR, numbers=None):
        return await self.in_session(
            receipts.issue_receipt, fields, actor, numbers=numbers or self.numbers, now=NOW
        )

    async def void(self, receipt_id, reason, actor=PROCESSOR):
        return await self.in_session(receipts.void_receipt, receipt_id, reason, actor, now=NOW)


class TestIssue(ReceiptTestCase):
    async def test_ineligible_statuses(self):
        draft = await self.create_draft()
        with self.assertRaises(IneligibleApplicationState) as ctx:
            await self.issue(_receipt_fields(draft.id))
        self.assertEqual(ctx.exception.current_status, "DRAFT")

        submitted = await self.submitted_application()
        with self.assertRaises(IneligibleApplicationState):
            await self.issue(_receipt_fields(submitted.id))

        listed = await self.in_session(receipts.list_receipts, VIEWER)
        self.assertEqual(listed["total"], 0)

    async def test_official_receipt_for_approved_loan(self):
        app = await self.approved_application()
        receipt = await self.issue(_receipt_fields(app.id))
        stored = await self.reload_receipt(receipt.id)
        self.assertRegex(stored.receipt_number, RECEIPT_NUMBER_PATTERN)
        self.assertTrue(stored.receipt_number.startswith("OR-202506-"))
        self.assertEqual(stored.amount, Decimal("1500.00"))
        self.assertEqual(stored.payment_method, "gcash")
        self.assertEqual(stored.payment_date, date(2025, 6, 15))
        self.assertEqual(stored.issued_by_id, PROCESSOR.id)
        self.assertFalse(stored.is_voided)

    async def test_collection_receipt_prefix(self):
        app = await self.approved_application()
        receipt = await self.issue(_receipt_fields(app.id, receiptType="COLLECTION_RECEIPT"))
        self.assertTrue(receipt.receipt_number.startswith("CR-"))

    async def test_invalid_input(self):
        app = await self.approved_application()
        for field, value in (("amount", "0"), ("amount", "-10"), ("receiptType", "INVOICE"),
                             ("paymentMethod", "barter"), ("payorName", "  ")):
            with self.subTest(field=field, value=value):
                with self.assertRaises(ValidationFailed):
                    await self.issue(_receipt_fields(app.id, **{field: value}))

    async def test_viewer_cannot_issue(self):
        app = await self.approved_application()
        with self.assertRaises(Forbidden):
            await self.issue(_receipt_fields(app.id), actor=VIEWER)

    async def test_missing_application(self):
        with self.assertRaises(NotFound):
            await self.issue(_receipt_fields("app-missing"))


class TestNumbering(ReceiptTestCase):
    async def test_collision_is_retried(self):
        app = await self.approved_application()
        numbers = SequentialNumberGenerator(suffixes=[7, 7, 8])
        first = await self.issue(_receipt_fields(app.id), numbers=numbers)
        second = await self.issue(_receipt_fields(app.id), numbers=numbers)
        self.assertEqual(first.receipt_number, "OR-202506-00007")
        self.assertEqual(second.receipt_number, "OR-202506-00008")

    async def test_number_taken_at_insert_is_redrawn(self):
        app = await self.approved_application()
        numbers = SequentialNumberGenerator(suffixes=[7, 7, 8])
        await self.issue(_receipt_fields(app.id), numbers=numbers)
        # the lookup misses the existing receipt, as when another request inserts first
        with mock.patch("services.repository.number_in_use", mock.AsyncMock(return_value=False)):
            second = await self.issue(_receipt_fields(app.id), numbers=numbers)
        self.assertEqual(second.receipt_number, "OR-202506-00008")
        self.assertEqual((await self.reload_receipt(second.id)).amount, Decimal("1500.00"))

    async def test_exhausted_attempts(self):
        app = await self.approved_application()
        numbers = SequentialNumberGenerator(suffixes=itertools.repeat(7))
        await self.issue(_receipt_fields(app.id), numbers=numbers)
        with self.assertRaises(DuplicateReceiptNumber) as ctx:
            await self.issue(_receipt_fields(app.id), numbers=numbers)
        self.assertTrue(ctx.exception.retryable)
        listed = await self.in_session(receipts.list_receipts, VIEWER, application_id=app.id)
        self.assertEqual(listed["total"], 1)


class TestVoid(ReceiptTestCase):
    async def test_void_once(self):
        app = await self.approved_application()
        receipt = await self.issue(_receipt_fields(app.id))
        voided = await self.void(receipt.id, "Wrong amount keyed")
        self.assertTrue(voided.is_voided)
        stored = await self.reload_receipt(receipt.id)
        self.assertTrue(stored.is_voided)
        self.assertEqual(stored.void_reason, "Wrong amount keyed")
        self.assertEqual(stored.voided_by_id, PROCESSOR.id)
        self.assertIsNotNone(stored.voided_at)

        with self.assertRaises(AlreadyVoided):
            await self.void(receipt.id, "Again", actor=ADMIN)
        stored = await self.reload_receipt(receipt.id)
        self.assertEqual(stored.void_reason, "Wrong amount keyed")
        self.assertEqual(stored.voided_by_id, PROCESSOR.id)

    async def test_reason_required(self):
        app = await self.approved_application()
        receipt = await self.issue(_receipt_fields(app.id))
        for reason in (None, "", "   "):
            with self.assertRaises(ValidationFailed):
                await self.void(receipt.id, reason)
        self.assertFalse((await self.reload_receipt(receipt.id)).is_voided)

    async def test_viewer_cannot_void(self):
        app = await self.approved_application()
        receipt = await self.issue(_receipt_fields(app.id))
        with self.assertRaises(Forbidden):
            await self.void(receipt.id, "No", actor=VIEWER)

    async def test_missing_receipt(self):
        with self.assertRaises(NotFound):
            await self.void("rcpt-missing", "Typo")


class TestLoanToReceiptFlow(ReceiptTestCase):
    async def test_approve_disburse_receipt_and_close(self):
        app = await self.submitted_application()
        self.assertEqual(app.loan_amount, Decimal("50000"))
        await self.transition(app.id, "approve")
        await self.transition(app.id, "for_disbursement", actor=PROCESSOR)
        receipt = await self.issue(_receipt_fields(app.id, amount="2500.00", particulars="Service fee"))
        await self.transition(app.id, "activate", actor=PROCESSOR)
        await self.issue(_receipt_fields(app.id, receiptType="COLLECTION_RECEIPT", amount="4583.33"))
        await self.transition(app.id, "mark_paid", actor=PROCESSOR)

        stored = await self.reload(app.id)
        self.assertEqual(stored.status, "FULLY_PAID")
        self.assertEqual(stored.approved_amount, Decimal("50000"))

        with self.assertRaises(IneligibleApplicationState):
            await self.issue(_receipt_fields(app.id))

        listed = await self.in_session(receipts.list_receipts, VIEWER, application_id=app.id)
        self.assertEqual(listed["total"], 2)
        self.assertIn(receipt.id, [r.id for r in listed["items"]])

        # voiding stays possible after the loan closes
        await self.void(receipt.id, "Duplicate entry")
        self.assertTrue((await self.reload_receipt(receipt.id)).is_voided)


if __name__ == "__main__":
    unittest.main()
