"""
Academic structure: campuses/rooms, the course -> subject -> level tree,
teachers, classes and enrollments.
"""
from django.db import models


class Campus(models.Model):
    name = models.CharField(max_length=128, unique=True)
    is_online = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'campuses'
        verbose_name = 'Campus'
        verbose_name_plural = 'Campuses'
        ordering = ['name']

    def __str__(self):
        return self.name


class Room(models.Model):
    campus = models.ForeignKey(Campus, on_delete=models.CASCADE, related_name='rooms')
    name = models.CharField(max_length=128)
    capacity = models.PositiveIntegerField(default=0, help_text="0 = unlimited")

    class Meta:
        db_table = 'rooms'
        verbose_name = 'Room'
        verbose_name_plural = 'Rooms'
        ordering = ['campus__name', 'name']
        constraints = [
            models.UniqueConstraint(fields=['campus', 'name'], name='uniq_room_campus_name'),
        ]

    def __str__(self):
        return f"{self.campus.name} / {self.name}"


class Course(models.Model):
    name = models.CharField(max_length=128, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'courses'
        verbose_name = 'Course'
        verbose_name_plural = 'Courses'
        ordering = ['name']

    def __str__(self):
        return self.name


class Subject(models.Model):
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name='subjects')
    name = models.CharField(max_length=128)

    class Meta:
        db_table = 'subjects'
        verbose_name = 'Subject'
        verbose_name_plural = 'Subjects'
        ordering = ['course__name', 'name']
        constraints = [
            models.UniqueConstraint(fields=['course', 'name'], name='uniq_subject_course_name'),
        ]

    def __str__(self):
        return f"{self.course.name} / {self.name}"


class Level(models.Model):
    subject = models.ForeignKey(Subject, on_delete=models.CASCADE, related_name='levels')
    name = models.CharField(max_length=128)

    class Meta:
        db_table = 'levels'
        verbose_name = 'Level'
        verbose_name_plural = 'Levels'
        ordering = ['subject__name', 'name']
        constraints = [
            models.UniqueConstraint(fields=['subject', 'name'], name='uniq_level_subject_name'),
        ]

    def __str__(self):
        return self.name


class Teacher(models.Model):
    """
    Teaching staff profile. A login account (accounts.User) may point at it.
    subject_course is the primary subject; subjects lists everything else they may teach.
    """
    name = models.CharField(max_length=255, db_index=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    note = models.TextField(blank=True, null=True)
    subject_course = models.ForeignKey(
        Subject,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='primary_teachers',
    )
    subjects = models.ManyToManyField(Subject, blank=True, related_name='teachers')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'teachers'
        verbose_name = 'Teacher'
        verbose_name_plural = 'Teachers'
        ordering = ['name']

    def __str__(self):
        return self.name


class CourseClass(models.Model):
    """
    A teaching group for one course. capacity == 1 marks a 1-on-1 class,
    which may be pinned to a single student.
    """
    course = models.ForeignKey(Course, on_delete=models.PROTECT, related_name='classes')
    subject = models.ForeignKey(Subject, on_delete=models.SET_NULL, null=True, blank=True, related_name='classes')
    level = models.ForeignKey(Level, on_delete=models.SET_NULL, null=True, blank=True, related_name='classes')
    teacher = models.ForeignKey(Teacher, on_delete=models.PROTECT, related_name='classes')
    campus = models.ForeignKey(Campus, on_delete=models.PROTECT, related_name='classes')
    room = models.ForeignKey(Room, on_delete=models.SET_NULL, null=True, blank=True, related_name='classes')
    capacity = models.PositiveIntegerField(default=0, help_text="1 = 1-on-1, 0 = unlimited")
    one_on_one_student = models.ForeignKey(
        'students.Student',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='one_on_one_classes',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'classes'
        verbose_name = 'Class'
        verbose_name_plural = 'Classes'
        ordering = ['course__name', 'id']
        indexes = [
            models.Index(fields=['teacher'], name='classes_teacher_idx'),
            models.Index(fields=['course'], name='classes_course_idx'),
        ]

    def __str__(self):
        return f"{self.course.name} #{self.pk}"

    @property
    def is_one_on_one(self):
        return self.capacity == 1


class Enrollment(models.Model):
    course_class = models.ForeignKey(CourseClass, on_delete=models.CASCADE, related_name='enrollments')
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='enrollments')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'enrollments'
        verbose_name = 'Enrollment'
        verbose_name_plural = 'Enrollments'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['course_class', 'student'], name='uniq_enrollment_class_student'),
        ]

    def __str__(self):
        return f"{self.student_id} in class {self.course_class_id}"
