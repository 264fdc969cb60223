"""
Weekly generation, teacher replacement and the conflict audit.
"""
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from core.services import get_setting
from core.testing import local_dt, make_admin, make_catalog, make_class, make_student, make_teacher
from scheduling.models import Appointment, Session, SessionTeacherChange
from scheduling.services.conflict_audit import (
    AUDIT_LAST_DAY_KEY,
    AUDIT_VERSION,
    AUDIT_VERSION_KEY,
    auto_resolve_teacher_conflicts,
    get_or_run_daily_conflict_audit,
    run_conflict_audit_snapshot,
)


class GenerateWeeklyTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.teacher = make_teacher("Mr. Qian", self.subject)
        self.cls = make_class(self.course, self.subject, self.teacher, self.campus)

    def _generate(self, **body):
        payload = {"startDate": "2030-01-01", "weekday": 1, "time": "19:00", "weeks": 4, "durationMin": 60}
        payload.update(body)
        return self.client.post(f"/api/admin/classes/{self.cls.pk}/sessions/generate-weekly", payload, format="json")

    def test_creates_on_requested_weekday(self):
        res = self._generate()
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["created"], 4)
        self.assertEqual(res.data["msg"], "Generated done: created=4.")
        first = Session.objects.filter(course_class=self.cls).order_by("start_at").first()
        # 2030-01-01 is a Tuesday; the first Monday after it is the 7th
        self.assertEqual(first.start_at, local_dt(2030, 1, 7, 19))

    def test_reject_aborts_whole_series(self):
        Session.objects.create(course_class=self.cls, start_at=local_dt(2030, 1, 14, 19), end_at=local_dt(2030, 1, 14, 20))
        res = self._generate()
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "CONFLICT")
        self.assertTrue(res.data["message"].startswith("Conflict on 2030-01-14 19:00: Session already exists"))
        self.assertEqual(Session.objects.filter(course_class=self.cls).count(), 1)

    def test_skip_reports_samples(self):
        Session.objects.create(course_class=self.cls, start_at=local_dt(2030, 1, 14, 19), end_at=local_dt(2030, 1, 14, 20))
        res = self._generate(onConflict="skip")
        self.assertEqual(res.status_code, 200)
        self.assertEqual((res.data["created"], res.data["skipped"]), (3, 1))
        self.assertTrue(res.data["msg"].startswith("Generated done: created=3, skipped=1. Samples: 2030-01-14 19:00 - "))

    def test_invalid_weekday(self):
        self.assertEqual(self._generate(weekday=8).status_code, 400)


class ReplaceTeacherTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.teacher = make_teacher("Mr. Feng", self.subject)
        self.substitute = make_teacher("Ms. Chen", self.subject)
        self.student = make_student("Dan")
        self.cls = make_class(self.course, self.subject, self.teacher, self.campus, capacity=1)
        self.session = Session.objects.create(
            course_class=self.cls, student=self.student,
            start_at=local_dt(2030, 1, 7, 10), end_at=local_dt(2030, 1, 7, 11),
        )

    def test_session_replace_records_change(self):
        res = self.client.post(f"/api/admin/sessions/{self.session.pk}/replace-teacher",
                               {"newTeacherId": self.substitute.pk, "reason": "sick"}, format="json")
        self.assertEqual(res.status_code, 200)
        self.session.refresh_from_db()
        self.assertEqual(self.session.teacher_id, self.substitute.pk)
        change = SessionTeacherChange.objects.get(session=self.session)
        self.assertEqual((change.from_teacher_id, change.to_teacher_id), (self.teacher.pk, self.substitute.pk))

    def test_cannot_teach_other_subject(self):
        other_course, other_subject, _, _ = make_catalog("Physics")
        physicist = make_teacher("Dr. Wu", other_subject)
        res = self.client.post(f"/api/admin/sessions/{self.session.pk}/replace-teacher",
                               {"newTeacherId": physicist.pk}, format="json")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "CANNOT_TEACH")

    def test_appointment_replace_moves_matching_session(self):
        appointment = Appointment.objects.create(
            teacher=self.teacher, student=self.student,
            start_at=self.session.start_at, end_at=self.session.end_at,
        )
        res = self.client.post(f"/api/admin/appointments/{appointment.pk}/replace-teacher",
                               {"newTeacherId": self.substitute.pk}, format="json")
        self.assertEqual(res.status_code, 200)
        appointment.refresh_from_db()
        self.session.refresh_from_db()
        self.assertEqual(appointment.teacher_id, self.substitute.pk)
        self.assertEqual(self.session.teacher_id, self.substitute.pk)

    def test_replace_back_to_class_teacher_clears_override(self):
        self.session.teacher = self.substitute
        self.session.save()
        res = self.client.post(f"/api/admin/sessions/{self.session.pk}/replace-teacher",
                               {"newTeacherId": self.teacher.pk}, format="json")
        self.assertEqual(res.status_code, 200)
        self.session.refresh_from_db()
        self.assertIsNone(self.session.teacher_id)

    def test_busy_substitute_rejected(self):
        Appointment.objects.create(
            teacher=self.substitute, student=make_student("Eve"),
            start_at=local_dt(2030, 1, 7, 10, 30), end_at=local_dt(2030, 1, 7, 11, 30),
        )
        res = self.client.post(f"/api/admin/sessions/{self.session.pk}/replace-teacher",
                               {"newTeacherId": self.substitute.pk}, format="json")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "TIME_CONFLICT")


class ConflictAuditTests(TestCase):
    def setUp(self):
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.teacher = make_teacher("Mr. Lin", self.subject)
        self.other = make_teacher("Ms. He", self.subject)
        self.cls_a = make_class(self.course, self.subject, self.teacher, self.campus, room=self.room)
        self.cls_b = make_class(self.course, self.subject, self.other, self.campus)
        self.reference = local_dt(2030, 1, 7, 8)

    def test_clean_schedule(self):
        snapshot = run_conflict_audit_snapshot(self.reference)
        self.assertEqual(snapshot["totalIssues"], 0)
        self.assertEqual(snapshot["sample"], ["No conflict found."])
        self.assertEqual(snapshot["scannedFrom"], "2030-01-07")
        self.assertEqual(snapshot["scannedTo"], "2030-02-06")

    def test_counts_teacher_pair_and_appointment_overlap(self):
        Session.objects.create(course_class=self.cls_a, start_at=local_dt(2030, 1, 8, 10), end_at=local_dt(2030, 1, 8, 11))
        Session.objects.create(course_class=self.cls_b, teacher=self.teacher,
                               start_at=local_dt(2030, 1, 8, 10, 30), end_at=local_dt(2030, 1, 8, 11, 30))
        Appointment.objects.create(teacher=self.other, student=make_student(),
                                   start_at=local_dt(2030, 1, 9, 9), end_at=local_dt(2030, 1, 9, 10))
        Session.objects.create(course_class=self.cls_b, start_at=local_dt(2030, 1, 9, 9, 30), end_at=local_dt(2030, 1, 9, 10, 30))

        snapshot = run_conflict_audit_snapshot(self.reference)
        self.assertEqual(snapshot["teacherConflictPairs"], 1)
        self.assertEqual(snapshot["teacherAppointmentOverlapPairs"], 1)
        self.assertEqual(snapshot["totalIssues"], 2)

    def test_capacity_and_duplicates(self):
        self.cls_a.capacity = 10
        self.cls_a.save()
        for _ in range(2):
            Session.objects.create(course_class=self.cls_a, start_at=local_dt(2030, 1, 8, 10), end_at=local_dt(2030, 1, 8, 11))
        snapshot = run_conflict_audit_snapshot(self.reference)
        self.assertEqual(snapshot["capacityIssues"], 1)
        self.assertEqual(snapshot["duplicateSessionGroups"], 1)

    def test_autofix_falls_back_to_free_class_teacher(self):
        Session.objects.create(course_class=self.cls_a, start_at=local_dt(2030, 1, 8, 10), end_at=local_dt(2030, 1, 8, 11))
        overridden = Session.objects.create(course_class=self.cls_b, teacher=self.teacher,
                                            start_at=local_dt(2030, 1, 8, 10, 30), end_at=local_dt(2030, 1, 8, 11, 30))
        result = auto_resolve_teacher_conflicts(self.reference)
        self.assertEqual(result["fixedSessions"], 1)
        overridden.refresh_from_db()
        self.assertIsNone(overridden.teacher_id)
        self.assertEqual(run_conflict_audit_snapshot(self.reference)["teacherConflictPairs"], 0)

    def test_daily_cache(self):
        first = get_or_run_daily_conflict_audit(self.reference)
        self.assertEqual(get_setting(AUDIT_LAST_DAY_KEY), "2030-01-07")
        self.assertEqual(get_setting(AUDIT_VERSION_KEY), AUDIT_VERSION)
        Session.objects.create(course_class=self.cls_a, start_at=local_dt(2030, 1, 8, 10), end_at=local_dt(2030, 1, 8, 10))
        self.assertEqual(get_or_run_daily_conflict_audit(self.reference), first)


class CronAuthTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_missing_secret_unauthorized(self):
        res = self.client.get("/api/cron/conflict-audit")
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.data, {"ok": False, "error": "unauthorized"})

    def test_query_header_and_bearer_accepted(self):
        self.assertEqual(self.client.get("/api/cron/conflict-audit?secret=test-cron-secret").status_code, 200)
        self.assertEqual(self.client.get("/api/cron/conflict-audit", HTTP_X_CRON_SECRET="test-cron-secret").status_code, 200)
        res = self.client.post("/api/cron/conflict-audit?autofix=1", HTTP_AUTHORIZATION="Bearer test-cron-secret")
        self.assertEqual(res.status_code, 200)
        self.assertIn("snapshot", res.data)
        self.assertIsNotNone(res.data["autoFixResult"])

    @override_settings(CRON_SECRET="", DEBUG=False)
    def test_no_secret_configured_outside_debug(self):
        self.assertEqual(self.client.get("/api/cron/conflict-audit").status_code, 401)

    @override_settings(CRON_SECRET="", DEBUG=True)
    def test_no_secret_configured_in_debug(self):
        self.assertEqual(self.client.get("/api/cron/conflict-audit").status_code, 200)
