"""
Enrollment guard tests:
- An ACTIVE accessible package is required (NO_ACTIVE_PACKAGE)
- One enrollment per class (ALREADY_ENROLLED) and per course (COURSE_CONFLICT, localized)
- Remove and restore
- Reference data and the teacher picker
"""
from django.test import TestCase
from rest_framework.test import APIClient

from academics.models import CourseClass, Enrollment, Level, Teacher
from core.errors import ALREADY_ENROLLED, COURSE_CONFLICT, NO_ACTIVE_PACKAGE
from core.testing import (
    enroll,
    make_admin,
    make_catalog,
    make_class,
    make_hours_package,
    make_student,
    make_teacher,
    make_teacher_user,
)
from packages.models import CoursePackage, CoursePackageShare


class EnrollmentGuardTests(TestCase):
    def setUp(self):
        self.admin = make_admin()
        self.client = APIClient()
        self.client.force_authenticate(self.admin)
        self.course, self.subject, self.campus, self.room = make_catalog()
        self.teacher = make_teacher("Mr. Lin", self.subject)
        self.student = make_student("Ivy")
        self.cls = make_class(self.course, self.subject, self.teacher, self.campus, self.room)
        self.other_cls = make_class(self.course, self.subject, self.teacher, self.campus)

    def _enroll(self, cls=None, student=None):
        return self.client.post("/api/admin/enrollments", {
            "classId": (cls or self.cls).pk, "studentId": (student or self.student).pk,
        }, format="json")

    def test_requires_active_package(self):
        res = self._enroll()
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], NO_ACTIVE_PACKAGE)

    def test_non_numeric_ids_are_invalid_input(self):
        res = self.client.post("/api/admin/enrollments", {"classId": "abc", "studentId": self.student.pk}, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Invalid classId or studentId")
        res = self.client.get("/api/admin/classes?courseId=abc")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Invalid courseId")

    def test_paused_or_empty_package_does_not_count(self):
        make_hours_package(self.student, self.course, 60, status=CoursePackage.STATUS_PAUSED)
        pkg = make_hours_package(self.student, self.course, 60)
        CoursePackage.objects.filter(pk=pkg.pk).update(remaining_minutes=0)
        self.assertEqual(self._enroll().data["code"], NO_ACTIVE_PACKAGE)

    def test_shared_package_counts(self):
        owner = make_student("Owner")
        pkg = make_hours_package(owner, self.course, 600)
        CoursePackageShare.objects.create(package=pkg, student=self.student)
        self.assertEqual(self._enroll().status_code, 201)

    def test_group_pack_cannot_fund_one_on_one(self):
        make_hours_package(self.student, self.course, 10, mode=CoursePackage.MODE_GROUP_COUNT)
        one_on_one = make_class(self.course, self.subject, self.teacher, self.campus, capacity=1)
        self.assertEqual(self._enroll(one_on_one).data["code"], NO_ACTIVE_PACKAGE)
        self.assertEqual(self._enroll().status_code, 201)

    def test_duplicate_and_course_conflict(self):
        make_hours_package(self.student, self.course, 600)
        res = self._enroll()
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["enrollment"]["classId"], self.cls.pk)

        self.assertEqual(self._enroll().data["code"], ALREADY_ENROLLED)

        res = self._enroll(self.other_cls)
        self.assertEqual(res.status_code, 409)
        self.assertEqual(res.data["code"], COURSE_CONFLICT)
        detail = "Math / Math Core | Mr. Lin | Main Campus / Math Room"
        self.assertEqual(res.data["detail"], detail)
        self.assertEqual(
            res.data["message"],
            f"Student already has this course enrollment / 学生已存在该课程报名: {detail}",
        )

    def test_course_conflict_message_follows_language(self):
        make_hours_package(self.student, self.course, 600)
        enroll(self.other_cls, self.student)
        self.admin.language = "EN"
        self.admin.save(update_fields=["language"])
        res = self._enroll()
        self.assertTrue(res.data["message"].startswith("Student already has this course enrollment: "))
        self.assertIn("(none)", res.data["detail"])

    def test_missing_class(self):
        res = self.client.post("/api/admin/enrollments", {"classId": 999999, "studentId": self.student.pk}, format="json")
        self.assertEqual(res.status_code, 404)

    def test_remove_then_restore(self):
        enroll(self.cls, self.student)
        res = self.client.delete("/api/admin/enrollments", {"classId": self.cls.pk, "studentId": self.student.pk}, format="json")
        self.assertEqual(res.data, {"ok": True, "deleted": 1})
        self.assertFalse(Enrollment.objects.exists())

        res = self.client.post("/api/admin/enrollments/restore", {"classId": self.cls.pk, "studentId": self.student.pk}, format="json")
        self.assertEqual(res.status_code, 200)
        self.assertTrue(res.data["restored"])
        again = self.client.post("/api/admin/enrollments/restore", {"classId": self.cls.pk, "studentId": self.student.pk}, format="json")
        self.assertFalse(again.data["restored"])

    def test_restore_still_checks_course_conflict(self):
        enroll(self.other_cls, self.student)
        res = self.client.post("/api/admin/enrollments/restore", {"classId": self.cls.pk, "studentId": self.student.pk}, format="json")
        self.assertEqual(res.data["code"], COURSE_CONFLICT)


class ReferenceDataTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.client.force_authenticate(make_admin())

    def test_build_catalog_and_class(self):
        course = self.client.post("/api/admin/courses", {"name": "Physics"}, format="json").data["id"]
        subject = self.client.post("/api/admin/subjects", {"name": "Mechanics", "courseId": course}, format="json").data["id"]
        level = self.client.post("/api/admin/levels", {"name": "L1", "subjectId": subject}, format="json").data["id"]
        campus = self.client.post("/api/admin/campuses", {"name": "North"}, format="json").data["id"]
        room = self.client.post("/api/admin/rooms", {"name": "R1", "campusId": campus, "capacity": 8}, format="json").data["id"]
        teacher = self.client.post("/api/admin/teachers", {"name": "Dr. Qian", "subjectIds": [subject]}, format="json").data["id"]

        res = self.client.post("/api/admin/classes", {
            "courseId": course, "subjectId": subject, "levelId": level,
            "teacherId": teacher, "campusId": campus, "roomId": room, "capacity": 6,
        }, format="json")
        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["item"]["label"], "Physics / Mechanics / L1")
        self.assertEqual(CourseClass.objects.get().level, Level.objects.get())

        res = self.client.get(f"/api/admin/subjects?courseId={course}")
        self.assertEqual([s["name"] for s in res.data["subjects"]], ["Mechanics"])

    def test_class_rejects_unqualified_teacher(self):
        course, subject, campus, _ = make_catalog()
        outsider = Teacher.objects.create(name="Outsider")
        res = self.client.post("/api/admin/classes", {
            "courseId": course.pk, "subjectId": subject.pk, "teacherId": outsider.pk, "campusId": campus.pk,
        }, format="json")
        self.assertEqual(res.status_code, 400)
        self.assertEqual(res.data["message"], "Teacher cannot teach this course")

    def test_duplicate_course_name(self):
        self.client.post("/api/admin/courses", {"name": "Art"}, format="json")
        res = self.client.post("/api/admin/courses", {"name": "Art"}, format="json")
        self.assertEqual(res.status_code, 400)

    def test_teacher_picker_open_to_teachers(self):
        teacher = make_teacher("Ms. Bai")
        client = APIClient()
        client.force_authenticate(make_teacher_user(teacher))
        res = client.get("/api/teachers")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.data["teachers"], [{"id": teacher.pk, "name": "Ms. Bai"}])
