"""
Fixture builders shared by the app test modules.
"""
from datetime import datetime

from django.utils import timezone

from academics.models import Campus, Course, CourseClass, Enrollment, Room, Subject, Teacher
from accounts.models import User
from packages.models import CoursePackage
from packages.services.lifecycle import create_package
from scheduling.models import TeacherAvailability
from students.models import Student


def local_dt(year, month, day, hour=0, minute=0):
    return timezone.make_aware(datetime(year, month, day, hour, minute))


def make_admin(email='admin@test.local', name='Admin'):
    return User.objects.create_user(email=email, password='pass12345', name=name, role=User.ROLE_ADMIN)


def make_teacher_user(teacher, email='teacher@test.local'):
    return User.objects.create_user(
        email=email,
        password='pass12345',
        name=teacher.name,
        role=User.ROLE_TEACHER,
        teacher=teacher,
    )


def make_teacher(name, subject=None, open_all_week=True):
    teacher = Teacher.objects.create(name=name)
    if subject is not None:
        teacher.subjects.add(subject)
    if open_all_week:
        TeacherAvailability.objects.bulk_create([
            TeacherAvailability(teacher=teacher, weekday=d, start_min=8 * 60, end_min=22 * 60 + 50)
            for d in range(7)
        ])
    return teacher


def make_catalog(course_name='Math'):
    course = Course.objects.create(name=course_name)
    subject = Subject.objects.create(course=course, name=f'{course_name} Core')
    campus, _ = Campus.objects.get_or_create(name='Main Campus')
    room = Room.objects.create(campus=campus, name=f'{course_name} Room', capacity=6)
    return course, subject, campus, room


def make_class(course, subject, teacher, campus, room=None, capacity=0, one_on_one_student=None):
    return CourseClass.objects.create(
        course=course,
        subject=subject,
        teacher=teacher,
        campus=campus,
        room=room,
        capacity=capacity,
        one_on_one_student=one_on_one_student,
    )


def make_student(name='Student A', source=None):
    return Student.objects.create(name=name, source=source)


def enroll(course_class, student):
    return Enrollment.objects.create(course_class=course_class, student=student)


def make_hours_package(student, course, minutes, mode=CoursePackage.MODE_HOURS_MINUTES,
                       status=CoursePackage.STATUS_ACTIVE, **kwargs):
    kwargs.setdefault('valid_from', local_dt(2020, 1, 1))
    kwargs.setdefault('valid_to', None)
    return create_package(
        student,
        course,
        CoursePackage.TYPE_HOURS,
        mode,
        status,
        total_minutes=minutes,
        **kwargs,
    )
