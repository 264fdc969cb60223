"""
Scheduling conflict tests:
- Availability windows (date slots override weekly slots)
- Appointment booking rejects overlaps, allows touching ranges
- Sessions every student was excused from do not block the teacher
- Class session placement: duplicates, room clashes, 1-on-1 student pinning
"""
from django.test import TestCase
from rest_framework.test import APIClient

from attendance.models import Attendance
from core.errors import AVAIL_CONFLICT, ConflictError, TIME_CONFLICT
from core.testing import (
    enroll,
    local_dt,
    make_admin,
    make_catalog,
    make_class,
    make_student,
    make_teacher,
)
from scheduling.models import Appointment, Session, TeacherAvailabilityDate
from scheduling.services.availability import availability_problem, check_teacher_availability
from scheduling.services.conflicts import find_conflict_for_session, teacher_session_conflict


class AvailabilityTests(TestCase):
    def setUp(self):
        self.teacher = make_teacher("Ms. Li", open_all_week=False)

    def test_no_slots_reports_weekday(self):
        # 2030-01-07 is a Monday
        problem = availability_problem(self.teacher.pk, local_dt(2030, 1, 7, 10), local_dt(2030, 1, 7, 11))
        self.assertEqual(problem, "No availability on Mon (no slots)")

    def test_spanning_midnight_rejected(self):
        problem = availability_problem(self.teacher.pk, local_dt(2030, 1, 7, 23), local_dt(2030, 1, 8, 0, 30))
        self.assertEqual(problem, "Session spans multiple days")

    def test_date_slot_takes_precedence_over_weekly(self):
        self.teacher.weekly_availability.create(weekday=1, start_min=8 * 60, end_min=20 * 60)
        TeacherAvailabilityDate.objects.create(
            teacher=self.teacher, date=local_dt(2030, 1, 7).date(), start_min=14 * 60, end_min=16 * 60,
        )
        problem = availability_problem(self.teacher.pk, local_dt(2030, 1, 7, 10), local_dt(2030, 1, 7, 11))
        self.assertEqual(problem, "Outside availability Mon 10:00-11:00. Available: 14:00-16:00")
        self.assertIsNone(availability_problem(self.teacher.pk, local_dt(2030, 1, 7, 14), local_dt(2030, 1, 7, 16)))

    def test_check_raises_conflict_code(self):
        with self.assertRaises(ConflictError) as ctx:
            check_teacher_availability(self.teacher.pk, local_dt(2030, 1, 7, 10), local_dt(2030, 1, 7, 11))
        self.assertEqual(ctx.exception.error_code, AVAIL_CONFLICT)


class AppointmentApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.teacher = make_teacher("Mr. Wang", self.subject)
        self.student = make_student("Alice")

    def _book(self, start, duration=60, student=None):
        return self.client.post("/api/admin/appointments", {
            "teacherId": self.teacher.pk,
            "studentId": (student or self.student).pk,
            "startAt": start,
            "durationMin": duration,
        }, format="json")

    def test_book_then_overlap_rejected(self):
        res = self._book("2030-01-07T10:00")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["appointment"]["mode"], Appointment.MODE_OFFLINE)

        res = self._book("2030-01-07T10:30")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], TIME_CONFLICT)
        self.assertEqual(res.data["message"], "Teacher conflict with appointment 2030-01-07 10:00-11:00")

    def test_touching_ranges_do_not_conflict(self):
        self.assertEqual(self._book("2030-01-07T10:00").status_code, 201)
        self.assertEqual(self._book("2030-01-07T11:00").status_code, 201)

    def test_outside_availability_rejected(self):
        res = self._book("2030-01-07T07:00")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], AVAIL_CONFLICT)

    def test_short_duration_is_invalid_input(self):
        res = self._book("2030-01-07T10:00", duration=10)
        self.assertEqual(res.status_code, 400)
        self.assertFalse(res.data["ok"])

    def test_session_of_teacher_blocks_booking(self):
        cls = make_class(self.course, self.subject, self.teacher, self.campus)
        session = Session.objects.create(course_class=cls, start_at=local_dt(2030, 1, 7, 10), end_at=local_dt(2030, 1, 7, 11))
        res = self._book("2030-01-07T10:30")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["message"], f"Teacher conflict with session {session.pk} (class {cls.pk})")

    def test_cancel_deletes_appointment(self):
        appointment_id = self._book("2030-01-07T10:00").data["appointment"]["id"]
        res = self.client.post(f"/api/admin/appointments/{appointment_id}/cancel")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["message"].startswith("Appointment cancelled: 2030-01-07 10:00-11:00"))
        self.assertFalse(Appointment.objects.filter(pk=appointment_id).exists())

    def test_non_numeric_ids_are_invalid_input(self):
        res = self.client.post("/api/admin/appointments", {
            "teacherId": "x",
            "studentId": self.student.pk,
            "startAt": "2030-01-07T10:00",
        }, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Invalid teacherId or studentId")
        res = self.client.get("/api/admin/appointments?teacherId=x")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Invalid teacherId")
        self.assertFalse(Appointment.objects.exists())


class ExcusedSessionTests(TestCase):
    def setUp(self):
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.teacher = make_teacher("Mr. Zhao", self.subject)
        self.alice = make_student("Alice")
        self.bob = make_student("Bob")
        self.group = make_class(self.course, self.subject, self.teacher, self.campus)
        enroll(self.group, self.alice)
        enroll(self.group, self.bob)
        self.session = Session.objects.create(
            course_class=self.group, start_at=local_dt(2030, 1, 7, 10), end_at=local_dt(2030, 1, 7, 11),
        )
        self.start, self.end = local_dt(2030, 1, 7, 10, 30), local_dt(2030, 1, 7, 11, 30)

    def _excuse(self, student, charge=False, minutes=0):
        Attendance.objects.create(
            session=self.session, student=student, status=Attendance.STATUS_EXCUSED,
            excused_charge=charge, deducted_minutes=minutes,
        )

    def test_partially_excused_group_still_blocks(self):
        self._excuse(self.alice)
        self.assertEqual(teacher_session_conflict(self.teacher.pk, self.start, self.end), self.session)

    def test_all_excused_without_charge_is_ignored(self):
        self._excuse(self.alice)
        self._excuse(self.bob)
        self.assertIsNone(teacher_session_conflict(self.teacher.pk, self.start, self.end))

    def test_charged_excuse_still_blocks(self):
        self._excuse(self.alice)
        self._excuse(self.bob, charge=True, minutes=60)
        self.assertEqual(teacher_session_conflict(self.teacher.pk, self.start, self.end), self.session)

    def test_scheduling_students_own_excuse_is_ignored(self):
        self._excuse(self.alice, charge=True, minutes=60)
        self.assertIsNone(teacher_session_conflict(self.teacher.pk, self.start, self.end, student_id=self.alice.pk))

    def test_override_teacher_owns_the_session(self):
        substitute = make_teacher("Substitute", self.subject)
        self.session.teacher = substitute
        self.session.save()
        self.assertIsNone(teacher_session_conflict(self.teacher.pk, self.start, self.end))
        self.assertEqual(teacher_session_conflict(substitute.pk, self.start, self.end), self.session)


class ClassSessionApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.teacher = make_teacher("Mr. Sun", self.subject)
        self.cls = make_class(self.course, self.subject, self.teacher, self.campus, room=self.room)

    def _create(self, cls, start, **extra):
        return self.client.post(f"/api/admin/classes/{cls.pk}/sessions", {"startAt": start, **extra}, format="json")

    def test_create_then_duplicate(self):
        res = self._create(self.cls, "2030-01-07T10:00")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["session"]["classTeacherId"], self.teacher.pk)

        res = self._create(self.cls, "2030-01-07T10:00")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], "CONFLICT")
        self.assertEqual(res.data["message"], "Session already exists at 2030-01-07 10:00-11:00")

    def test_room_conflict_with_other_teacher(self):
        other_teacher = make_teacher("Ms. Zhou", self.subject)
        other = make_class(self.course, self.subject, other_teacher, self.campus, room=self.room)
        first = self._create(self.cls, "2030-01-07T10:00").data["session"]["id"]
        res = self._create(other, "2030-01-07T10:30")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["message"], f"Room conflict with session {first} (class {self.cls.pk})")

    def test_one_on_one_requires_enrolled_student(self):
        one = make_class(self.course, self.subject, self.teacher, self.campus, capacity=1)
        student = make_student("Carol")
        res = self._create(one, "2030-01-08T10:00")
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["message"], "Please select a student")

        res = self._create(one, "2030-01-08T10:00", studentId=student.pk)
        self.assertEqual(res.data["message"], "Student not enrolled in this class")

        enroll(one, student)
        res = self._create(one, "2030-01-08T10:00", studentId=student.pk)
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["session"]["studentId"], student.pk)

    def test_delete_only_within_class(self):
        session_id = self._create(self.cls, "2030-01-07T10:00").data["session"]["id"]
        other = make_class(self.course, self.subject, self.teacher, self.campus)
        res = self.client.delete(f"/api/admin/classes/{other.pk}/sessions", {"sessionId": session_id}, format="json")
        self.assertEqual(res.status_code, 404)
        res = self.client.delete(f"/api/admin/classes/{self.cls.pk}/sessions", {"sessionId": session_id}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertFalse(Session.objects.filter(pk=session_id).exists())

    def test_non_numeric_session_and_student_ids(self):
        res = self.client.delete(f"/api/admin/classes/{self.cls.pk}/sessions", {"sessionId": "abc"}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Invalid sessionId")
        res = self._create(self.cls, "2030-01-07T10:00", studentId="abc")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Invalid studentId")
        self.assertFalse(Session.objects.exists())

    def test_find_conflict_checks_availability_first(self):
        self.teacher.weekly_availability.all().delete()
        problem = find_conflict_for_session(self.cls, local_dt(2030, 1, 7, 10), local_dt(2030, 1, 7, 11))
        self.assertEqual(problem, "No availability on Mon (no slots)")
