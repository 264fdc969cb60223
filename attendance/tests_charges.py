"""
Attendance charge tests:
- Cancel with charge deducts the session length; restore refunds exactly that
- Cancel picks the oldest usable HOURS package and reports ledger errors as 409
- Admin save: group classes deduct one count, 1-on-1 classes deduct minutes
- EXCUSED is only charged from the fourth excused session on
- Mark-all-present and teacher saves
"""
from django.test import TestCase
from rest_framework.test import APIClient

from attendance.models import Attendance
from core.testing import (
    enroll,
    local_dt,
    make_admin,
    make_catalog,
    make_class,
    make_hours_package,
    make_student,
    make_teacher,
    make_teacher_user,
)
from packages.models import CoursePackage, PackageTxn
from packages.services.integrity import verify_package_ledger
from scheduling.models import Session


class CancelRestoreTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.teacher = make_teacher("Ms. Gao", self.subject)
        self.student = make_student("Alice")
        self.cls = make_class(self.course, self.subject, self.teacher, self.campus, capacity=1)
        enroll(self.cls, self.student)
        self.session = Session.objects.create(
            course_class=self.cls, student=self.student,
            start_at=local_dt(2030, 1, 7, 10), end_at=local_dt(2030, 1, 7, 11, 30),
        )
        self.pkg = make_hours_package(self.student, self.course, 600)

    def _cancel(self, charge=True, **extra):
        return self.client.post(f"/api/admin/students/{self.student.pk}/sessions/cancel",
                                {"sessionId": self.session.pk, "charge": charge, **extra}, format="json")

    def _restore(self):
        return self.client.post(f"/api/admin/students/{self.student.pk}/sessions/restore",
                                {"sessionId": self.session.pk}, format="json")

    def test_cancel_with_charge_then_restore(self):
        res = self._cancel()
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data, {"ok": True, "status": "EXCUSED", "excusedCharge": True, "deductedMinutes": 90})
        self.pkg.refresh_from_db()
        self.assertEqual(self.pkg.remaining_minutes, 510)
        row = Attendance.objects.get(session=self.session, student=self.student)
        self.assertEqual((row.status, row.package_id, row.note), ("EXCUSED", self.pkg.pk, "Canceled"))

        res = self._restore()
        self.assertEqual(res.data, {"ok": True, "status": "UNMARKED", "refundedMinutes": 90})
        self.pkg.refresh_from_db()
        self.assertEqual(self.pkg.remaining_minutes, 600)
        kinds = list(self.pkg.txns.order_by("id").values_list("kind", "delta_minutes", "note"))
        self.assertEqual(kinds[1], (PackageTxn.KIND_DEDUCT, -90, f"Cancel charge. studentId={self.student.pk}"))
        self.assertEqual(kinds[2], (PackageTxn.KIND_ROLLBACK, 90, f"Restore cancel. studentId={self.student.pk}"))
        self.assertTrue(verify_package_ledger(self.pkg)["ok"])

    def test_cancel_twice_is_idempotent(self):
        self._cancel()
        self._cancel()
        self.pkg.refresh_from_db()
        self.assertEqual(self.pkg.remaining_minutes, 510)
        self.assertEqual(self.pkg.txns.filter(kind=PackageTxn.KIND_DEDUCT).count(), 1)

    def test_switching_to_no_charge_rolls_back(self):
        self._cancel(charge=True)
        res = self._cancel(charge=False)
        self.assertEqual(res.data["deductedMinutes"], 0)
        self.pkg.refresh_from_db()
        self.assertEqual(self.pkg.remaining_minutes, 600)
        self.assertTrue(self.pkg.txns.filter(note=f"Cancel rollback. studentId={self.student.pk}").exists())

    def test_restore_without_cancel(self):
        res = self._restore()
        self.assertEqual(res.data, {"ok": True, "status": "UNMARKED", "refundedMinutes": 0})

    def test_cancel_without_charge_needs_no_package(self):
        CoursePackage.objects.filter(pk=self.pkg.pk).update(status=CoursePackage.STATUS_PAUSED)
        res = self._cancel(charge=False, note="Sick")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(Attendance.objects.get(session=self.session).note, "Sick")

    def test_no_active_package(self):
        CoursePackage.objects.filter(pk=self.pkg.pk).update(status=CoursePackage.STATUS_PAUSED)
        res = self._cancel()
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "NO_ACTIVE_HOURS_PACKAGE")
        self.assertFalse(Attendance.objects.exists())

    def test_not_enough_balance(self):
        CoursePackage.objects.filter(pk=self.pkg.pk).update(remaining_minutes=30)
        res = self._cancel()
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "NO_ACTIVE_HOURS_PACKAGE")

    def test_existing_package_short_on_balance(self):
        self._cancel(charge=False)
        Attendance.objects.filter(session=self.session).update(package=self.pkg)
        CoursePackage.objects.filter(pk=self.pkg.pk).update(remaining_minutes=30)
        res = self._cancel()
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "PKG_NOT_ENOUGH")
        self.pkg.refresh_from_db()
        self.assertEqual(self.pkg.remaining_minutes, 30)

    def test_shared_package_is_used(self):
        CoursePackage.objects.filter(pk=self.pkg.pk).update(status=CoursePackage.STATUS_PAUSED)
        sibling = make_student("Sibling")
        shared = make_hours_package(sibling, self.course, 300, shared_student_ids=[self.student.pk])
        self.assertEqual(self._cancel().status_code, 200)
        shared.refresh_from_db()
        self.assertEqual(shared.remaining_minutes, 210)

    def test_linked_package_no_longer_active(self):
        self._cancel(charge=False)
        Attendance.objects.filter(session=self.session).update(package=self.pkg)
        CoursePackage.objects.filter(pk=self.pkg.pk).update(status=CoursePackage.STATUS_PAUSED)
        res = self._cancel()
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "PKG_NOT_FOUND")

    def test_non_numeric_session_id(self):
        res = self.client.post(f"/api/admin/students/{self.student.pk}/sessions/cancel",
                               {"sessionId": "abc", "charge": True}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Invalid sessionId")
        res = self.client.post(f"/api/admin/students/{self.student.pk}/sessions/restore",
                               {"sessionId": "abc"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.pkg.refresh_from_db()
        self.assertEqual(self.pkg.remaining_minutes, 600)


class AdminSaveTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.teacher = make_teacher("Mr. Tang", self.subject)
        self.alice = make_student("Alice")
        self.bob = make_student("Bob")
        self.group = make_class(self.course, self.subject, self.teacher, self.campus)
        enroll(self.group, self.alice)
        enroll(self.group, self.bob)
        self.group_session = Session.objects.create(
            course_class=self.group, start_at=local_dt(2030, 1, 7, 10), end_at=local_dt(2030, 1, 7, 11),
        )

    def _save(self, session, items):
        return self.client.post(f"/api/admin/sessions/{session.pk}/attendance", {"items": items}, format="json")

    def test_group_class_deducts_one_count(self):
        pack = make_hours_package(self.alice, self.course, 10, mode=CoursePackage.MODE_GROUP_COUNT)
        make_hours_package(self.bob, self.course, 10, mode=CoursePackage.MODE_GROUP_COUNT)
        res = self._save(self.group_session, [
            {"studentId": self.alice.pk, "status": "PRESENT"},
            {"studentId": self.bob.pk, "status": "ABSENT"},
        ])
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["totalDeducted"], 1)
        pack.refresh_from_db()
        self.assertEqual(pack.remaining_minutes, 9)
        row = Attendance.objects.get(session=self.group_session, student=self.alice)
        self.assertEqual((row.deducted_count, row.deducted_minutes), (1, 0))

        # Re-marking absent gives the count back
        self._save(self.group_session, [{"studentId": self.alice.pk, "status": "ABSENT"}])
        pack.refresh_from_db()
        self.assertEqual(pack.remaining_minutes, 10)

    def test_group_class_rejects_minutes_package(self):
        make_hours_package(self.alice, self.course, 600)
        res = self._save(self.group_session, [{"studentId": self.alice.pk, "status": "PRESENT"}])
        self.assertEqual(res.status_code, 409)
        self.assertFalse(res.data["ok"])
        self.assertFalse(Attendance.objects.exists())

    def test_explicit_package_mode_mismatch(self):
        minutes_pkg = make_hours_package(self.alice, self.course, 600)
        res = self._save(self.group_session, [
            {"studentId": self.alice.pk, "status": "PRESENT", "packageId": minutes_pkg.pk},
        ])
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "PKG_MODE_MISMATCH")

    def test_unexpected_students_are_ignored(self):
        stranger = make_student("Stranger")
        res = self._save(self.group_session, [{"studentId": stranger.pk, "status": "PRESENT"}])
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["totalDeducted"], 0)
        self.assertFalse(Attendance.objects.exists())

    def test_empty_items(self):
        res = self._save(self.group_session, [])
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["message"], "No items")

    def test_one_on_one_deducts_minutes(self):
        one = make_class(self.course, self.subject, self.teacher, self.campus, capacity=1)
        enroll(one, self.alice)
        session = Session.objects.create(course_class=one, student=self.alice,
                                         start_at=local_dt(2030, 1, 8, 10), end_at=local_dt(2030, 1, 8, 11))
        make_hours_package(self.alice, self.course, 5, mode=CoursePackage.MODE_GROUP_COUNT)
        pkg = make_hours_package(self.alice, self.course, 600)
        res = self._save(session, [{"studentId": self.alice.pk, "status": "LATE", "deductedMinutes": 45}])
        self.assertEqual(res.data["totalDeducted"], 45)
        pkg.refresh_from_db()
        self.assertEqual(pkg.remaining_minutes, 555)

        res = self._save(session, [{"studentId": self.alice.pk, "status": "PRESENT"}])
        self.assertEqual(res.data["totalDeducted"], 15)
        pkg.refresh_from_db()
        self.assertEqual(pkg.remaining_minutes, 540)
        self.assertTrue(verify_package_ledger(pkg)["ok"])

    def test_excused_charge_needs_four_excused(self):
        pack = make_hours_package(self.alice, self.course, 10, mode=CoursePackage.MODE_GROUP_COUNT)
        item = {"studentId": self.alice.pk, "status": "EXCUSED", "excusedCharge": True}
        self._save(self.group_session, [item])
        pack.refresh_from_db()
        self.assertEqual(pack.remaining_minutes, 10)
        self.assertFalse(Attendance.objects.get(session=self.group_session, student=self.alice).excused_charge)

        for day in (1, 2, 3):
            earlier = Session.objects.create(course_class=self.group, start_at=local_dt(2029, 12, day, 10),
                                             end_at=local_dt(2029, 12, day, 11))
            Attendance.objects.create(session=earlier, student=self.alice, status=Attendance.STATUS_EXCUSED)
        self._save(self.group_session, [item])
        pack.refresh_from_db()
        self.assertEqual(pack.remaining_minutes, 9)

    def test_mark_all_present(self):
        make_hours_package(self.alice, self.course, 10, mode=CoursePackage.MODE_GROUP_COUNT)
        make_hours_package(self.bob, self.course, 10, mode=CoursePackage.MODE_GROUP_COUNT)
        res = self.client.post(f"/api/admin/sessions/{self.group_session.pk}/attendance/mark-all-present")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["updatedCount"], 2)
        self.assertEqual(Attendance.objects.filter(status="PRESENT", deducted_count=1).count(), 2)

    def test_restore_refunds_group_excused_charge(self):
        pack = make_hours_package(self.alice, self.course, 10, mode=CoursePackage.MODE_GROUP_COUNT)
        for day in (1, 2, 3):
            earlier = Session.objects.create(course_class=self.group, start_at=local_dt(2029, 12, day, 10),
                                             end_at=local_dt(2029, 12, day, 11))
            Attendance.objects.create(session=earlier, student=self.alice, status=Attendance.STATUS_EXCUSED)
        self._save(self.group_session, [{"studentId": self.alice.pk, "status": "EXCUSED", "excusedCharge": True}])
        pack.refresh_from_db()
        self.assertEqual(pack.remaining_minutes, 9)

        res = self.client.post(f"/api/admin/students/{self.alice.pk}/sessions/restore",
                               {"sessionId": self.group_session.pk}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["status"], "UNMARKED")
        pack.refresh_from_db()
        self.assertEqual(pack.remaining_minutes, 10)
        row = Attendance.objects.get(session=self.group_session, student=self.alice)
        self.assertEqual((row.status, row.deducted_count, row.package_id), ("UNMARKED", 0, None))

        # A later save has nothing left to refund
        res = self._save(self.group_session, [{"studentId": self.alice.pk, "status": "ABSENT"}])
        self.assertEqual(res.status_code, 200)
        pack.refresh_from_db()
        self.assertEqual(pack.remaining_minutes, 10)
        self.assertTrue(verify_package_ledger(pack)["ok"])

    def test_cancel_releases_group_count(self):
        pack = make_hours_package(self.alice, self.course, 10, mode=CoursePackage.MODE_GROUP_COUNT)
        self._save(self.group_session, [{"studentId": self.alice.pk, "status": "PRESENT"}])
        pack.refresh_from_db()
        self.assertEqual(pack.remaining_minutes, 9)

        res = self.client.post(f"/api/admin/students/{self.alice.pk}/sessions/cancel",
                               {"sessionId": self.group_session.pk, "charge": False}, format="json")
        self.assertEqual(res.status_code, 200)
        pack.refresh_from_db()
        self.assertEqual(pack.remaining_minutes, 10)
        row = Attendance.objects.get(session=self.group_session, student=self.alice)
        self.assertEqual((row.status, row.deducted_count, row.package_id), ("EXCUSED", 0, None))

    def test_non_numeric_package_id(self):
        make_hours_package(self.alice, self.course, 10, mode=CoursePackage.MODE_GROUP_COUNT)
        res = self._save(self.group_session, [{"studentId": self.alice.pk, "status": "PRESENT", "packageId": "bad"}])
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "PKG_NOT_FOUND")
        self.assertFalse(Attendance.objects.exists())

    def test_items_must_be_objects(self):
        res = self._save(self.group_session, ["alice"])
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Invalid items")


class TeacherAttendanceTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.teacher = make_teacher("Mr. Yang", self.subject)
        self.alice = make_student("Alice")
        self.cls = make_class(self.course, self.subject, self.teacher, self.campus)
        enroll(self.cls, self.alice)
        self.session = Session.objects.create(course_class=self.cls, start_at=local_dt(2030, 1, 7, 10),
                                              end_at=local_dt(2030, 1, 7, 11))
        self.client.force_authenticate(make_teacher_user(self.teacher))

    def test_teacher_save_keeps_deductions(self):
        Attendance.objects.create(session=self.session, student=self.alice, status="PRESENT", deducted_count=1)
        res = self.client.post(f"/api/teacher/sessions/{self.session.pk}/attendance",
                               {"items": [{"studentId": self.alice.pk, "status": "LATE", "note": "traffic"}]}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertIn("savedAt", res.data)
        row = Attendance.objects.get(session=self.session, student=self.alice)
        self.assertEqual((row.status, row.note, row.deducted_count), ("LATE", "traffic", 1))

    def test_other_teachers_session_forbidden(self):
        other = make_teacher("Ms. Ma", self.subject)
        self.session.teacher = other
        self.session.save()
        res = self.client.get(f"/api/teacher/sessions/{self.session.pk}/attendance")
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.data["message"], "No permission")

    def test_roster(self):
        res = self.client.get(f"/api/teacher/sessions/{self.session.pk}/attendance")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["rows"][0]["status"], "UNMARKED")
