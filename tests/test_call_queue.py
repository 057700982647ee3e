"""
Reviewer call queue: joining, FIFO position and wait estimate, claims and call outcomes.
"""
from unittest import mock

from config import settings
from services import call_queue, workflow
from services.errors import (
    AlreadyClaimedError,
    AlreadyInQueueError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from tests.factories import DatabaseTestCase, make_user


class TestJoinAndPosition(DatabaseTestCase):
    async def test_positions_follow_join_order(self):
        callers = [await make_user(self.session, phone=f"555-010{i}") for i in range(3)]
        for user in callers:
            await call_queue.join(self.session, user, None)

        with mock.patch.object(settings, "call_queue_minutes_per_caller", 4):
            positions = [await call_queue.status_for(self.session, user) for user in callers]
        self.assertEqual([p.position for p in positions], [1, 2, 3])
        self.assertEqual([p.estimated_wait_minutes for p in positions], [4, 8, 12])

    async def test_phone_required(self):
        user = await make_user(self.session)
        with self.assertRaises(ValidationError):
            await call_queue.join(self.session, user, "  ")

    async def test_one_active_entry_per_user(self):
        user = await make_user(self.session)
        await call_queue.join(self.session, user, "555-0100")
        with self.assertRaises(AlreadyInQueueError):
            await call_queue.join(self.session, user, "555-0100")

    async def test_leave_then_rejoin(self):
        user = await make_user(self.session)
        await call_queue.join(self.session, user, "555-0100")
        entry = await call_queue.leave(self.session, user)
        self.assertEqual(entry.status, "done")
        self.assertEqual(entry.outcome, "left")
        self.assertIsNone(await call_queue.status_for(self.session, user))
        await call_queue.join(self.session, user, "555-0100")

    async def test_leave_when_not_queued(self):
        user = await make_user(self.session)
        with self.assertRaises(NotFoundError):
            await call_queue.leave(self.session, user)

    async def test_queue_for_someone_elses_application(self):
        app = await self.submitted()
        other = await make_user(self.session)
        with self.assertRaises(PermissionDeniedError):
            await call_queue.join(self.session, other, "555-0100", application_id=app.id)

    async def test_position_moves_up_when_front_is_claimed(self):
        first = await make_user(self.session)
        second = await make_user(self.session)
        reviewer = await make_user(self.session, "reviewer")
        entry = await call_queue.join(self.session, first, "555-0100")
        await call_queue.join(self.session, second, "555-0101")

        await call_queue.claim(self.session, entry.id, reviewer)
        self.assertEqual((await call_queue.status_for(self.session, second)).position, 1)
        claimed = await call_queue.status_for(self.session, first)
        self.assertIsNone(claimed.position)
        self.assertIsNone(claimed.estimated_wait_minutes)


class TestCalls(DatabaseTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.applicant = await make_user(self.session, phone="555-0199")
        self.reviewer = await make_user(self.session, "reviewer")
        self.other_reviewer = await make_user(self.session, "reviewer")

    async def test_second_reviewer_cannot_claim(self):
        entry = await call_queue.join(self.session, self.applicant, None)
        await call_queue.claim(self.session, entry.id, self.reviewer)
        with self.assertRaises(AlreadyClaimedError):
            await call_queue.claim(self.session, entry.id, self.other_reviewer)

    async def test_applicant_cannot_work_queue(self):
        entry = await call_queue.join(self.session, self.applicant, None)
        with self.assertRaises(PermissionDeniedError):
            await call_queue.claim(self.session, entry.id, self.applicant)

    async def test_release_puts_caller_back(self):
        entry = await call_queue.join(self.session, self.applicant, None)
        await call_queue.claim(self.session, entry.id, self.reviewer)
        entry = await call_queue.release(self.session, entry.id, self.reviewer)
        self.assertEqual(entry.status, "waiting")
        self.assertIsNone(entry.reviewer_id)

    async def test_start_call_needs_claim(self):
        entry = await call_queue.join(self.session, self.applicant, None)
        with self.assertRaises(InvalidTransitionError):
            await call_queue.start_call(self.session, entry.id, self.reviewer)

    async def test_approved_call_advances_application(self):
        """An approved outcome on a linked application is the reviewer's decision."""
        app = await self.submitted(applicant=self.applicant)
        entry = await call_queue.join(self.session, self.applicant, None, application_id=app.id)
        self.assertEqual(entry.package_id, app.package_id)

        await call_queue.claim(self.session, entry.id, self.reviewer)
        await call_queue.start_call(self.session, entry.id, self.reviewer)
        entry, app = await call_queue.end_call(self.session, entry.id, self.reviewer, "approved", "verified by phone")
        self.assertEqual(entry.status, "done")
        self.assertEqual(entry.outcome, "approved")
        self.assertEqual(app.status, "level3_work")
        self.assertEqual(app.level2_approved_by, self.reviewer.id)

    async def test_denied_call_rejects_application(self):
        app = await self.submitted(applicant=self.applicant)
        entry = await call_queue.join(self.session, self.applicant, None, application_id=app.id)
        await call_queue.claim(self.session, entry.id, self.reviewer)
        _, app = await call_queue.end_call(self.session, entry.id, self.reviewer, "denied", "no")
        self.assertEqual(app.status, "rejected")

    async def test_follow_up_leaves_application(self):
        app = await self.submitted(applicant=self.applicant)
        entry = await call_queue.join(self.session, self.applicant, None, application_id=app.id)
        await call_queue.claim(self.session, entry.id, self.reviewer)
        _, result = await call_queue.end_call(self.session, entry.id, self.reviewer, "follow_up")
        self.assertIsNone(result)
        app = await workflow.get_application(self.session, app.id)
        self.assertEqual(app.status, "pending")

    async def test_unpaid_application_does_not_block_closing_the_call(self):
        """The call closes even when the linked application cannot take a reviewer decision."""
        app = await self.submitted(price="129.00", applicant=self.applicant)
        self.assertEqual(app.status, "awaiting_payment")
        entry = await call_queue.join(self.session, self.applicant, None, application_id=app.id)
        await call_queue.claim(self.session, entry.id, self.reviewer)
        await call_queue.start_call(self.session, entry.id, self.reviewer)

        entry, app = await call_queue.end_call(self.session, entry.id, self.reviewer, "approved", "call went fine")
        self.assertEqual(entry.status, "done")
        self.assertEqual(entry.outcome, "approved")
        self.assertEqual(app.status, "awaiting_payment")
        self.assertIsNone(app.level2_approved_by)
        self.assertIsNone(await call_queue.status_for(self.session, self.applicant))
        await call_queue.join(self.session, self.applicant, None)

    async def test_already_advanced_application_left_alone(self):
        app = await self.submitted(applicant=self.applicant)
        entry = await call_queue.join(self.session, self.applicant, None, application_id=app.id)
        await workflow.reviewer_decision(self.session, app.id, self.other_reviewer, True, "handled by staff")
        await call_queue.claim(self.session, entry.id, self.reviewer)

        entry, app = await call_queue.end_call(self.session, entry.id, self.reviewer, "denied")
        self.assertEqual(entry.status, "done")
        self.assertEqual(app.status, "level3_work")
        self.assertEqual(app.level2_approved_by, self.other_reviewer.id)

    async def test_only_holder_ends_call(self):
        entry = await call_queue.join(self.session, self.applicant, None)
        await call_queue.claim(self.session, entry.id, self.reviewer)
        with self.assertRaises(PermissionDeniedError):
            await call_queue.end_call(self.session, entry.id, self.other_reviewer, "approved")

    async def test_stats(self):
        waiting_user = await make_user(self.session)
        entry = await call_queue.join(self.session, self.applicant, None)
        await call_queue.join(self.session, waiting_user, "555-0123")
        await call_queue.claim(self.session, entry.id, self.reviewer)

        groups = await call_queue.stats(self.session)
        self.assertEqual([e.user_id for e in groups["waiting"]], [waiting_user.id])
        self.assertEqual([e.id for e in groups["in_call"]], [entry.id])

        await call_queue.end_call(self.session, entry.id, self.reviewer, "follow_up")
        groups = await call_queue.stats(self.session)
        self.assertEqual([e.id for e in groups["completed"]], [entry.id])
