"""
Partner billing tests:
- Top-up of an exhausted partner online package snapshots a PENDING settlement
- Approver configuration
- Manager / finance sign-off, rejection resets, export gating
"""
from django.conf import settings
from django.test import TestCase
from rest_framework.test import APIClient

from core.testing import make_admin, make_catalog, make_hours_package, make_student
from packages.models import CoursePackage
from packages.services.ledger import deduct
from packages.services.lifecycle import top_up
from partners.models import PartnerSettlement, SettlementApproval
from partners.services import are_all_approvers_confirmed, save_approval_config
from students.models import StudentSource


class SnapshotTests(TestCase):
    def setUp(self):
        self.course, _, _, _ = make_catalog()
        source = StudentSource.objects.create(name=settings.PARTNER_SOURCE_NAME)
        self.student = make_student("Partner Kid", source=source)
        self.pkg = make_hours_package(
            self.student, self.course, 450,
            settlement_mode=CoursePackage.SETTLEMENT_ONLINE_PACKAGE_END,
        )

    def test_exhausted_package_snapshots_before_top_up(self):
        deduct(self.pkg, 450)
        pkg, snapshot = top_up(self.pkg, 450)
        self.assertIsNotNone(snapshot)
        self.assertEqual(snapshot.status, PartnerSettlement.STATUS_PENDING)
        self.assertEqual(snapshot.online_snapshot_total_minutes, 450)
        self.assertEqual(str(snapshot.hours), "7.50")
        self.assertEqual(snapshot.amount, 700)
        self.assertEqual(pkg.total_minutes, 900)

        deduct(pkg, 450)
        _, second = top_up(pkg, 90)
        self.assertEqual(second.online_snapshot_total_minutes, 900)
        self.assertEqual(second.amount, 700)

    def test_package_with_balance_is_not_snapshotted(self):
        _, snapshot = top_up(self.pkg, 60)
        self.assertIsNone(snapshot)

    def test_non_partner_student_is_not_snapshotted(self):
        other = make_hours_package(make_student("Walk-in"), self.course, 60,
                                   settlement_mode=CoursePackage.SETTLEMENT_ONLINE_PACKAGE_END)
        deduct(other, 60)
        _, snapshot = top_up(other, 60)
        self.assertIsNone(snapshot)


class ApprovalFlowTests(TestCase):
    def setUp(self):
        self.manager = make_admin("manager@test.local")
        self.finance = make_admin("finance@test.local")
        self.outsider = make_admin("outsider@test.local")
        save_approval_config("Manager@test.local, manager@test.local", "finance@test.local")
        course, _, _, _ = make_catalog()
        student = make_student("Billed")
        pkg = make_hours_package(student, course, 60)
        self.settlement = PartnerSettlement.objects.create(
            student=student, package=pkg, mode=PartnerSettlement.MODE_OFFLINE_MONTHLY,
            month_key="2030-03", hours="4.00", amount=280,
        )

    def _client(self, user):
        client = APIClient()
        client.force_authenticate(user)
        return client

    def _post(self, user, action, **data):
        return self._client(user).post(
            f"/api/admin/partner-settlements/{self.settlement.pk}/{action}", data, format="json",
        )

    def _export(self, user=None):
        return self._client(user or self.manager).get(
            f"/api/admin/reports/partner-settlement/export?id={self.settlement.pk}"
        )

    def test_empty_approver_list_never_confirms(self):
        self.assertFalse(are_all_approvers_confirmed(["a@x.com"], []))

    def test_approvers_endpoint(self):
        res = self._client(self.manager).get("/api/admin/settings/approvers")
        self.assertEqual(res.data["managerApproverEmails"], ["manager@test.local"])
        res = self._client(self.manager).post("/api/admin/settings/approvers", {
            "managerApproverEmails": ["manager@test.local", "boss@test.local"],
            "financeApproverEmails": "finance@test.local",
        }, format="json")
        self.assertEqual(res.data["managerApproverEmails"], ["manager@test.local", "boss@test.local"])

    def test_full_flow_then_export(self):
        self.assertEqual(self._export().status_code, 403)
        self.assertEqual(self._post(self.outsider, "manager-approve").status_code, 403)
        self.assertEqual(self._post(self.finance, "finance-approve").status_code, 409)

        res = self._post(self.manager, "manager-approve")
        self.assertTrue(res.data["settlement"]["approval"]["managerReady"])
        res = self._post(self.finance, "finance-approve")
        self.assertTrue(res.data["settlement"]["approval"]["exportReady"])

        res = self._export()
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res["Content-Disposition"], f'attachment; filename="partner-settlement-{self.settlement.pk}.csv"')
        body = res.content.decode("utf-8")
        self.assertIn("settlement_id,created_at,student,mode,month,course,hours,amount,status,note", body)
        self.assertIn("Billed,OFFLINE_MONTHLY,2030-03,Math,4.00,280,PENDING", body)
        self.assertIsNotNone(SettlementApproval.objects.get(settlement=self.settlement).exported_at)

        pdf = self._client(self.manager).get(f"/api/exports/partner-invoice/{self.settlement.pk}")
        self.assertEqual(pdf.status_code, 200)
        self.assertEqual(pdf["Content-Type"], "application/pdf")

    def test_manager_reject_clears_finance_and_export(self):
        self._post(self.manager, "manager-approve")
        self._post(self.finance, "finance-approve")
        self._export()

        self.assertEqual(self._post(self.manager, "manager-reject").status_code, 400)
        res = self._post(self.manager, "manager-reject", reason="wrong hours")
        approval = res.data["settlement"]["approval"]
        self.assertEqual((approval["managerApprovedBy"], approval["financeApprovedBy"]), ([], []))
        self.assertIsNone(approval["exportedAt"])
        self.assertEqual(approval["managerRejectReason"], "wrong hours")
        self.assertEqual(self._export().status_code, 403)

    def test_list(self):
        res = self._client(self.finance).get("/api/admin/partner-settlements")
        self.assertEqual([s["id"] for s in res.data["settlements"]], [self.settlement.pk])
        self.assertTrue(res.data["isFinanceApprover"])
        self.assertFalse(res.data["isManagerApprover"])
