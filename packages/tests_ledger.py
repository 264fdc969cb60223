"""
Package API and ledger tests:
- Create HOURS / GROUP_COUNT / MONTHLY packages, MONTHLY overlap guard
- Top-up, gift and the running-balance ledger
- Retire keeps ledger rows
- Ledger-editor gated txn edit / delete / undo
- Ledger export (PDF and CSV) and the verify_package_ledger command
"""
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from rest_framework.test import APIClient

from core.errors import PKG_OVERLAP
from core.testing import make_admin, make_catalog, make_hours_package, make_student
from packages.models import CoursePackage, PackageTxn
from packages.services.integrity import verify_package_ledger


class PackageCreateTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, _, _, _ = make_catalog()
        self.student = make_student("Bob")

    def _create(self, **data):
        payload = {"studentId": self.student.pk, "courseId": self.course.pk, "validFrom": "2030-01-01"}
        payload.update(data)
        return self.client.post("/api/admin/packages", payload, format="json")

    def test_create_hours_package_writes_opening_purchase(self):
        res = self._create(type="HOURS", totalMinutes=600, status="ACTIVE")
        self.assertEqual(res.status_code, 201)
        pkg = CoursePackage.objects.get(pk=res.data["id"])
        self.assertEqual((pkg.total_minutes, pkg.remaining_minutes, pkg.mode), (600, 600, CoursePackage.MODE_HOURS_MINUTES))
        self.assertEqual(list(pkg.txns.values_list("kind", "delta_minutes")), [(PackageTxn.KIND_PURCHASE, 600)])

    def test_group_count_type_maps_to_hours_with_group_mode(self):
        res = self._create(type="GROUP_COUNT", totalMinutes=10)
        pkg = CoursePackage.objects.get(pk=res.data["id"])
        self.assertEqual((pkg.type, pkg.mode), (CoursePackage.TYPE_HOURS, CoursePackage.MODE_GROUP_COUNT))
        self.assertEqual(pkg.status, CoursePackage.STATUS_PAUSED)

    def test_missing_fields(self):
        res = self.client.post("/api/admin/packages", {"studentId": self.student.pk}, format="json")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["message"], "Missing studentId/courseId/validFrom")

    def test_hours_package_needs_minutes(self):
        res = self._create(type="HOURS")
        self.assertEqual(res.status_code, 409)

    def test_invalid_paid_amount(self):
        res = self._create(type="HOURS", totalMinutes=60, paid=True, paidAmount="abc")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["message"], "Invalid paidAmount")

    def test_overlapping_active_monthly_rejected(self):
        first = self._create(type="MONTHLY", status="ACTIVE", validTo="2030-03-31")
        self.assertEqual(first.status_code, 201)
        res = self._create(type="MONTHLY", status="ACTIVE", validFrom="2030-03-01", validTo="2030-04-30")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], PKG_OVERLAP)
        touching = self._create(type="MONTHLY", status="ACTIVE", validFrom="2030-04-01", validTo="2030-04-30")
        self.assertEqual(touching.status_code, 201)

    def test_list_filters_by_student(self):
        make_hours_package(self.student, self.course, 60)
        make_hours_package(make_student("Other"), self.course, 60)
        res = self.client.get(f"/api/admin/packages?studentId={self.student.pk}")
        self.assertEqual(res.status_code, 200)
        self.assertEqual([p["studentId"] for p in res.data["packages"]], [self.student.pk])

    def test_non_numeric_ids_are_invalid_input(self):
        res = self._create(type="HOURS", totalMinutes=60, studentId="abc")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Invalid studentId or courseId")
        res = self._create(type="HOURS", totalMinutes=60, sharedStudentIds=["abc"])
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["message"], "Invalid sharedStudentIds")
        res = self.client.get("/api/admin/packages?courseId=abc")
        self.assertEqual(res.status_code, 400)
        self.assertFalse(CoursePackage.objects.exists())

    def test_shared_ids_accept_numeric_strings(self):
        sibling = make_student("Sibling")
        res = self._create(type="HOURS", totalMinutes=60, sharedStudentIds=[str(sibling.pk), sibling.pk, self.student.pk])
        self.assertEqual(res.status_code, 201)
        pkg = CoursePackage.objects.get(pk=res.data["id"])
        self.assertEqual(list(pkg.shares.values_list("student_id", flat=True)), [sibling.pk])


class PackageBalanceTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, _, _, _ = make_catalog()
        self.student = make_student("Carol")
        self.pkg = make_hours_package(self.student, self.course, 600)

    def test_top_up_raises_total_and_remaining(self):
        res = self.client.post(f"/api/admin/packages/{self.pkg.pk}/top-up", {"addMinutes": 300, "note": "spring"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual((res.data["totalMinutes"], res.data["remainingMinutes"]), (900, 900))
        self.assertIsNone(res.data["partnerSettlementId"])
        self.assertTrue(verify_package_ledger(CoursePackage.objects.get(pk=self.pkg.pk))["ok"])

    def test_top_up_rejects_zero(self):
        res = self.client.post(f"/api/admin/packages/{self.pkg.pk}/top-up", {"addMinutes": 0}, format="json")
        self.assertEqual(res.status_code, 409)

    def test_gift_and_ledger_running_balance(self):
        res = self.client.post(f"/api/admin/packages/{self.pkg.pk}/ledger/gift", {"minutes": 45}, format="json")
        self.assertEqual(res.data["remainingMinutes"], 645)
        res = self.client.get(f"/api/admin/packages/{self.pkg.pk}/ledger")
        self.assertEqual([r["balanceAfter"] for r in res.data["rows"]], [600, 645])
        self.assertEqual(res.data["rows"][1]["kind"], PackageTxn.KIND_GIFT)
        self.assertTrue(res.data["ledgerCheck"]["ok"])

    def test_patch_remaining_writes_adjust_row(self):
        res = self.client.patch(f"/api/admin/packages/{self.pkg.pk}",
                                {"validFrom": "2020-01-01", "remainingMinutes": 500}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["package"]["remainingMinutes"], 500)
        adjust = self.pkg.txns.get(kind=PackageTxn.KIND_ADJUST)
        self.assertEqual(adjust.delta_minutes, -100)

    def test_patch_requires_valid_from(self):
        res = self.client.patch(f"/api/admin/packages/{self.pkg.pk}", {"note": "x"}, format="json")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["message"], "Missing validFrom")

    def test_delete_retires_and_keeps_ledger(self):
        res = self.client.delete(f"/api/admin/packages/{self.pkg.pk}")
        self.assertEqual(res.data, {"ok": True, "status": "RETIRED"})
        self.pkg.refresh_from_db()
        self.assertEqual(self.pkg.status, CoursePackage.STATUS_RETIRED)
        self.assertEqual(self.pkg.txns.count(), 1)


class LedgerEditorTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.editor = make_admin("ledger@test.local")
        self.client.force_authenticate(self.editor)
        self.course, _, _, _ = make_catalog()
        self.pkg = make_hours_package(make_student("Dan"), self.course, 600)
        self.client.post(f"/api/admin/packages/{self.pkg.pk}/ledger/gift", {"minutes": 30}, format="json")
        self.gift = self.pkg.txns.get(kind=PackageTxn.KIND_GIFT)

    def _url(self, txn_id=None):
        base = f"/api/admin/packages/{self.pkg.pk}/ledger/txns"
        return f"{base}/{txn_id}" if txn_id else base

    def test_plain_admin_cannot_edit(self):
        other = APIClient()
        other.force_authenticate(make_admin("plain@test.local"))
        res = other.delete(self._url(self.gift.pk))
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["code"], "permission_denied")
        self.assertTrue(PackageTxn.objects.filter(pk=self.gift.pk).exists())

    def test_edit_txn_moves_balance(self):
        res = self.client.patch(self._url(self.gift.pk), {"deltaMinutes": 45}, format="json")
        self.assertEqual(res.data["remainingMinutes"], 645)
        self.pkg.refresh_from_db()
        self.assertTrue(verify_package_ledger(self.pkg)["ok"])

    def test_edit_cannot_go_negative(self):
        res = self.client.patch(self._url(self.gift.pk), {"deltaMinutes": -700}, format="json")
        self.assertEqual(res.status_code, 409)

    def test_delete_then_undo(self):
        res = self.client.delete(self._url(self.gift.pk))
        self.assertEqual(res.data["remainingMinutes"], 600)
        deleted = res.data["deleted"]
        self.assertEqual((deleted["id"], deleted["deltaMinutes"]), (self.gift.pk, 30))

        res = self.client.post(self._url(), deleted, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["remainingMinutes"], 630)
        restored = PackageTxn.objects.get(pk=self.gift.pk)
        self.assertEqual(restored.created_at, self.gift.created_at)
        self.pkg.refresh_from_db()
        self.assertTrue(verify_package_ledger(self.pkg)["ok"])

    def test_undo_twice_rejected(self):
        res = self.client.post(self._url(), {"id": self.gift.pk, "kind": "GIFT", "deltaMinutes": 30}, format="json")
        self.assertEqual(res.status_code, 409)


class LedgerExportTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, _, _, _ = make_catalog()
        self.pkg = make_hours_package(make_student("王小明"), self.course, 600)

    def test_pdf(self):
        res = self.client.get(f"/api/exports/package-ledger/{self.pkg.pk}")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res["Content-Type"], "application/pdf")
        self.assertTrue(res.content.startswith(b"%PDF"))

    def test_csv(self):
        res = self.client.get(f"/api/exports/package-ledger/{self.pkg.pk}?format=csv")
        body = res.content.decode("utf-8")
        self.assertTrue(body.startswith("\ufeffTime,Kind,Change,Balance"))
        self.assertIn("PURCHASE,600,600", body)

    def test_missing_package(self):
        res = self.client.get("/api/exports/package-ledger/999999")
        self.assertEqual(res.status_code, 404)


class VerifyLedgerCommandTests(TestCase):
    def setUp(self):
        course, _, _, _ = make_catalog()
        self.pkg = make_hours_package(make_student("Eve"), course, 600)

    def test_dry_run_reports_without_fixing(self):
        CoursePackage.objects.filter(pk=self.pkg.pk).update(remaining_minutes=550)
        out = StringIO()
        call_command("verify_package_ledger", stdout=out)
        self.assertIn("diff=-50", out.getvalue())
        self.assertFalse(self.pkg.txns.filter(kind=PackageTxn.KIND_ADJUST).exists())

    def test_apply_writes_adjust_row(self):
        CoursePackage.objects.filter(pk=self.pkg.pk).update(remaining_minutes=550)
        call_command("verify_package_ledger", "--apply", stdout=StringIO())
        self.pkg.refresh_from_db()
        self.assertTrue(verify_package_ledger(self.pkg)["ok"])
        self.assertEqual(self.pkg.remaining_minutes, 550)
