import unittest

from services.authorization import OPERATION_ROLES, CurrentUser, UserRole, authorize, has_role, required_role
from services.errors import Forbidden

VIEWER = CurrentUser(id="v", role=UserRole.VIEWER)
PROCESSOR = CurrentUser(id="p", role=UserRole.PROCESSOR)
ADMIN = CurrentUser(id="a", role=UserRole.ADMIN)


class TestAuthorization(unittest.TestCase):
    def test_roles_are_ordered(self):
        self.assertTrue(has_role(ADMIN, UserRole.PROCESSOR))
        self.assertTrue(has_role(PROCESSOR, UserRole.VIEWER))
        self.assertFalse(has_role(VIEWER, UserRole.PROCESSOR))
        self.assertFalse(has_role(PROCESSOR, UserRole.ADMIN))

    def test_viewer_can_only_read(self):
        authorize(VIEWER, "view")
        for operation in OPERATION_ROLES:
            if operation == "view":
                continue
            with self.subTest(operation=operation):
                with self.assertRaises(Forbidden):
                    authorize(VIEWER, operation)

    def test_decisions_need_admin(self):
        for operation in ("approve", "disapprove"):
            with self.assertRaises(Forbidden) as ctx:
                authorize(PROCESSOR, operation)
            self.assertEqual(ctx.exception.details["requiredRole"], "ADMIN")
            self.assertEqual(ctx.exception.details["role"], "PROCESSOR")
            authorize(ADMIN, operation)

    def test_processor_runs_the_workflow(self):
        for operation in ("create_draft", "save_step", "submit", "start_vetting", "for_disbursement",
                          "activate", "mark_paid", "cancel", "issue_receipt", "void_receipt"):
            authorize(PROCESSOR, operation)

    def test_unknown_operation_needs_admin(self):
        self.assertIs(required_role("purge_everything"), UserRole.ADMIN)
        with self.assertRaises(Forbidden):
            authorize(PROCESSOR, "purge_everything")

    def test_role_given_as_string(self):
        authorize(CurrentUser(id="x", role="ADMIN"), "approve")


if __name__ == "__main__":
    unittest.main()
