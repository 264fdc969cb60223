"""
Student API tests:
- Create / search / patch
- Detail lists own and shared packages, enrollments and upcoming sessions with attendance
- Student sources
"""
from django.test import TestCase
from rest_framework.test import APIClient

from attendance.models import Attendance
from core.models import AuditLog
from core.testing import (
    enroll,
    local_dt,
    make_admin,
    make_catalog,
    make_class,
    make_hours_package,
    make_student,
    make_teacher,
)
from packages.models import CoursePackageShare
from scheduling.models import Session
from students.models import Student, StudentSource


class StudentApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())

    def test_create_and_search(self):
        source = StudentSource.objects.create(name="Walk-in")
        res = self.client.post("/api/admin/students", {
            "name": "  Lily Chen ", "grade": "G8", "school": "No.1 Middle", "sourceId": source.pk,
        }, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["student"]["name"], "Lily Chen")
        self.assertEqual(res.data["student"]["sourceName"], "Walk-in")
        make_student("Tom Wu")

        res = self.client.get("/api/admin/students?q=lily")
        self.assertEqual([s["name"] for s in res.data["students"]], ["Lily Chen"])
        res = self.client.get("/api/admin/students?q=No.1")
        self.assertEqual(len(res.data["students"]), 1)
        self.assertTrue(AuditLog.objects.filter(module="STUDENT", action="CREATE").exists())

    def test_blank_name_rejected(self):
        res = self.client.post("/api/admin/students", {"name": "   "}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["ok"], False)

    def test_patch(self):
        student = make_student("Old Name")
        res = self.client.patch(f"/api/admin/students/{student.pk}", {"note": "prefers mornings"}, format="json")
        self.assertEqual(res.status_code, 200)
        student.refresh_from_db()
        self.assertEqual((student.name, student.note), ("Old Name", "prefers mornings"))

    def test_missing_student(self):
        self.assertEqual(self.client.get("/api/admin/students/999999").status_code, 404)

    def test_sources(self):
        res = self.client.post("/api/admin/student-sources", {"name": "Partner School"}, format="json")
        self.assertEqual(res.status_code, 201)
        again = self.client.post("/api/admin/student-sources", {"name": "Partner School"}, format="json")
        self.assertEqual(again.status_code, 200)
        res = self.client.get("/api/admin/student-sources")
        self.assertEqual([s["name"] for s in res.data["sources"]], ["Partner School"])


class StudentDetailTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())
        self.course, self.subject, self.campus, self.room = make_catalog()
        teacher = make_teacher("Ms. Sun", self.subject)
        self.student = make_student("Mia")
        self.sibling = make_student("Max")
        self.cls = make_class(self.course, self.subject, teacher, self.campus, self.room)
        enroll(self.cls, self.student)
        self.own = make_hours_package(self.student, self.course, 600)
        self.shared = make_hours_package(self.sibling, self.course, 300)
        CoursePackageShare.objects.create(package=self.shared, student=self.student)
        self.future = Session.objects.create(
            course_class=self.cls, start_at=local_dt(2099, 1, 5, 10), end_at=local_dt(2099, 1, 5, 11),
        )
        Session.objects.create(
            course_class=self.cls, start_at=local_dt(2020, 1, 5, 10), end_at=local_dt(2020, 1, 5, 11),
        )
        Attendance.objects.create(session=self.future, student=self.student, status=Attendance.STATUS_EXCUSED)

    def test_detail(self):
        res = self.client.get(f"/api/admin/students/{self.student.pk}")
        self.assertEqual(res.status_code, 200)
        self.assertEqual({p["id"] for p in res.data["packages"]}, {self.own.pk, self.shared.pk})
        self.assertEqual([e["classId"] for e in res.data["enrollments"]], [self.cls.pk])
        upcoming = res.data["upcomingSessions"]
        self.assertEqual([s["id"] for s in upcoming], [self.future.pk])
        self.assertEqual(upcoming[0]["attendanceStatus"], "EXCUSED")

    def test_sibling_sees_own_package_only(self):
        res = self.client.get(f"/api/admin/students/{self.sibling.pk}")
        self.assertEqual([p["id"] for p in res.data["packages"]], [self.shared.pk])
        self.assertEqual(res.data["packages"][0]["sharedStudentIds"], [self.student.pk])
        self.assertEqual(Student.objects.count(), 2)
