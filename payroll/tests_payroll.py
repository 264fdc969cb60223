"""
Payroll tests:
- Payroll month runs from the 15th of the previous month to the 15th
- Sessions are paid to the effective teacher (substitute over class teacher)
- Rate fallback: exact -> without level -> course only -> 0
- Teacher self-service view, PDF and the monthly hours export
"""
from io import BytesIO

from django.test import TestCase
from django.utils import timezone
from openpyxl import load_workbook
from rest_framework.test import APIClient

from academics.models import Level
from attendance.models import Attendance
from core.testing import (
    local_dt,
    make_admin,
    make_catalog,
    make_class,
    make_student,
    make_teacher,
    make_teacher_user,
)
from payroll.models import TeacherCourseRate
from payroll.services import load_teacher_payroll, payroll_range, resolve_rate_cents
from scheduling.models import Session
from students.models import StudentSource


class PayrollRangeTests(TestCase):
    def test_range_spans_fifteenth_to_fifteenth(self):
        start, end = payroll_range("2030-03")
        self.assertEqual((start, end), (local_dt(2030, 2, 15), local_dt(2030, 3, 15)))

    def test_january_wraps_year(self):
        start, _ = payroll_range("2030-01")
        self.assertEqual(start, local_dt(2029, 12, 15))

    def test_invalid_month(self):
        self.assertIsNone(payroll_range("2030-13"))
        self.assertIsNone(load_teacher_payroll("March"))

    def test_rate_fallback_order(self):
        rates = {(1, 10, 20, None): 9000, (1, 10, None, None): 6000}
        self.assertEqual(resolve_rate_cents(rates, 1, 10, 20, 30), 9000)
        self.assertEqual(resolve_rate_cents(rates, 1, 10, 21, 30), 6000)
        self.assertEqual(resolve_rate_cents(rates, 2, 10, 20, None), 0)


class PayrollReportTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.level = Level.objects.create(subject=self.subject, name="L2")
        self.teacher = make_teacher("Ms. He", self.subject)
        self.sub = make_teacher("Mr. Xu", self.subject)
        self.cls = make_class(self.course, self.subject, self.teacher, self.campus)
        self.cls.level = self.level
        self.cls.save()
        # inside the 2030-03 payroll month
        Session.objects.create(course_class=self.cls, start_at=local_dt(2030, 2, 20, 10), end_at=local_dt(2030, 2, 20, 11, 30))
        Session.objects.create(course_class=self.cls, start_at=local_dt(2030, 3, 14, 23), end_at=local_dt(2030, 3, 14, 23, 45))
        Session.objects.create(course_class=self.cls, teacher=self.sub,
                               start_at=local_dt(2030, 3, 1, 9), end_at=local_dt(2030, 3, 1, 10))
        # outside
        Session.objects.create(course_class=self.cls, start_at=local_dt(2030, 3, 15, 0), end_at=local_dt(2030, 3, 15, 1))
        TeacherCourseRate.objects.create(teacher=self.teacher, course=self.course, subject=self.subject, hourly_rate_cents=12000)
        TeacherCourseRate.objects.create(teacher=self.sub, course=self.course, hourly_rate_cents=10000)

    def test_admin_report(self):
        res = self.client.get("/api/admin/reports/teacher-payroll?month=2030-03")
        self.assertEqual(res.status_code, 200)
        summary = {r["teacherName"]: r for r in res.data["summaryRows"]}
        self.assertEqual(summary["Ms. He"]["totalSessions"], 2)
        self.assertEqual(summary["Ms. He"]["totalMinutes"], 135)
        self.assertEqual(summary["Ms. He"]["totalAmountCents"], 27000)
        self.assertEqual(summary["Mr. Xu"]["totalAmountCents"], 10000)
        self.assertEqual(res.data["grandTotalAmountCents"], 37000)
        self.assertEqual(res.data["grandTotalHours"], 3.25)

    def test_rate_upsert_replaces_existing(self):
        payload = {"teacherId": self.teacher.pk, "courseId": self.course.pk, "subjectId": self.subject.pk,
                   "levelId": self.level.pk, "hourlyRateCents": 15000}
        self.assertEqual(self.client.post("/api/admin/reports/teacher-payroll/rates", payload, format="json").status_code, 200)
        payload["hourlyRateCents"] = 16000
        self.client.post("/api/admin/reports/teacher-payroll/rates", payload, format="json")
        self.assertEqual(TeacherCourseRate.objects.filter(teacher=self.teacher, level=self.level).count(), 1)
        data = load_teacher_payroll("2030-03", teacher_id=self.teacher.pk)
        self.assertEqual(data["breakdownRows"][0]["hourlyRateCents"], 16000)
        self.assertEqual(data["grandTotalAmountCents"], 36000)

    def test_negative_rate_rejected(self):
        res = self.client.post("/api/admin/reports/teacher-payroll/rates", {
            "teacherId": self.teacher.pk, "courseId": self.course.pk, "hourlyRateCents": -1,
        }, format="json")
        self.assertEqual(res.status_code, 409)

    def test_rate_ids_must_be_numeric(self):
        res = self.client.post("/api/admin/reports/teacher-payroll/rates", {
            "teacherId": self.teacher.pk, "courseId": self.course.pk, "subjectId": "x", "hourlyRateCents": 100,
        }, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Invalid subjectId")

    def test_teacher_sees_only_own_sessions(self):
        client = APIClient()
        client.force_authenticate(make_teacher_user(self.sub))
        res = client.get("/api/teacher/payroll?month=2030-03")
        self.assertEqual(res.status_code, 200)
        self.assertEqual([r["teacherName"] for r in res.data["summaryRows"]], ["Mr. Xu"])
        self.assertNotIn("rateEditorRows", res.data)

    def test_pdf(self):
        res = self.client.get(f"/api/admin/reports/teacher-payroll/{self.teacher.pk}/pdf?month=2030-03")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.content.startswith(b"%PDF"))

    def test_bad_month(self):
        res = self.client.get("/api/admin/reports/teacher-payroll?month=2030-3")
        self.assertEqual(res.status_code, 400)


class MonthlyHoursExportTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        course, subject, campus, _ = make_catalog()
        cls = make_class(course, subject, make_teacher("Ms. Ye", subject), campus)
        partner = StudentSource.objects.create(name="Partner")
        self.partner_student = make_student("Pat", source=partner)
        self.walk_in = make_student("Wendy")
        session = Session.objects.create(course_class=cls, start_at=local_dt(2030, 5, 2, 10), end_at=local_dt(2030, 5, 2, 11))
        Attendance.objects.create(session=session, student=self.partner_student, status=Attendance.STATUS_PRESENT, deducted_minutes=60)
        Attendance.objects.create(session=session, student=self.walk_in, status=Attendance.STATUS_UNMARKED)
        self.partner = partner
        self.month = timezone.localtime(Attendance.objects.first().updated_at).strftime("%Y-%m")

    def test_csv_skips_unmarked(self):
        res = self.client.get(f"/api/admin/reports/monthly-hours/export?month={self.month}")
        self.assertEqual(res.status_code, 200)
        body = res.content.decode("utf-8")
        self.assertIn("Pat", body)
        self.assertNotIn("Wendy", body)

    def test_xlsx_filtered_by_source(self):
        res = self.client.get(f"/api/admin/reports/monthly-hours/export?month={self.month}&sourceId={self.partner.pk}&format=xlsx")
        self.assertEqual(res.status_code, 200)
        ws = load_workbook(BytesIO(res.content)).active
        rows = list(ws.iter_rows(values_only=True))
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[1][2], "Pat")

    def test_invalid_month(self):
        self.assertEqual(self.client.get("/api/admin/reports/monthly-hours/export?month=x").status_code, 400)
