"""
Scheduling: teacher availability, class sessions, 1-on-1 appointments.
Availability slots are minutes-of-day in the business time zone.
"""
from django.db import models


class TeacherAvailability(models.Model):
    """Weekly recurring slot. weekday: 0=Sunday .. 6=Saturday."""
    teacher = models.ForeignKey('academics.Teacher', on_delete=models.CASCADE, related_name='weekly_availability')
    weekday = models.PositiveSmallIntegerField()
    start_min = models.PositiveIntegerField()
    end_min = models.PositiveIntegerField()

    class Meta:
        db_table = 'teacher_availability'
        verbose_name = 'Weekly Availability'
        verbose_name_plural = 'Weekly Availability'
        ordering = ['teacher', 'weekday', 'start_min']
        indexes = [
            models.Index(fields=['teacher', 'weekday'], name='avail_teacher_weekday_idx'),
        ]


class TeacherAvailabilityDate(models.Model):
    """Date-specific slot; when a date has any, weekly slots are ignored for it."""
    teacher = models.ForeignKey('academics.Teacher', on_delete=models.CASCADE, related_name='date_availability')
    date = models.DateField()
    start_min = models.PositiveIntegerField()
    end_min = models.PositiveIntegerField()

    class Meta:
        db_table = 'teacher_availability_dates'
        verbose_name = 'Date Availability'
        verbose_name_plural = 'Date Availability'
        ordering = ['teacher', 'date', 'start_min']
        indexes = [
            models.Index(fields=['teacher', 'date'], name='avail_date_teacher_date_idx'),
        ]


class Session(models.Model):
    """
    One occurrence of a class. teacher overrides the class teacher when set;
    student pins a 1-on-1 session to one student.
    """
    course_class = models.ForeignKey('academics.CourseClass', on_delete=models.CASCADE, related_name='sessions')
    start_at = models.DateTimeField(db_index=True)
    end_at = models.DateTimeField()
    teacher = models.ForeignKey(
        'academics.Teacher',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='override_sessions',
    )
    student = models.ForeignKey(
        'students.Student',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='one_on_one_sessions',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'sessions'
        verbose_name = 'Session'
        verbose_name_plural = 'Sessions'
        ordering = ['start_at']
        indexes = [
            models.Index(fields=['course_class', 'start_at'], name='session_class_start_idx'),
            models.Index(fields=['teacher', 'start_at'], name='session_teacher_start_idx'),
        ]

    def __str__(self):
        return f"Session {self.pk} class={self.course_class_id} {self.start_at:%Y-%m-%d %H:%M}"

    @property
    def effective_teacher_id(self):
        return self.teacher_id or self.course_class.teacher_id


class SessionTeacherChange(models.Model):
    session = models.ForeignKey(Session, on_delete=models.CASCADE, related_name='teacher_changes')
    from_teacher = models.ForeignKey('academics.Teacher', on_delete=models.SET_NULL, null=True, related_name='+')
    to_teacher = models.ForeignKey('academics.Teacher', on_delete=models.SET_NULL, null=True, related_name='+')
    reason = models.TextField(blank=True, null=True)
    changed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'session_teacher_changes'
        verbose_name = 'Session Teacher Change'
        verbose_name_plural = 'Session Teacher Changes'
        ordering = ['-changed_at']


class Appointment(models.Model):
    MODE_OFFLINE = 'OFFLINE'
    MODE_ONLINE = 'ONLINE'
    MODE_CHOICES = [
        (MODE_OFFLINE, 'Offline'),
        (MODE_ONLINE, 'Online'),
    ]

    teacher = models.ForeignKey('academics.Teacher', on_delete=models.CASCADE, related_name='appointments')
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='appointments')
    start_at = models.DateTimeField(db_index=True)
    end_at = models.DateTimeField()
    mode = models.CharField(max_length=16, choices=MODE_CHOICES, default=MODE_OFFLINE)
    place = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'appointments'
        verbose_name = 'Appointment'
        verbose_name_plural = 'Appointments'
        ordering = ['start_at']
        indexes = [
            models.Index(fields=['teacher', 'start_at'], name='appt_teacher_start_idx'),
        ]

    def __str__(self):
        return f"Appointment {self.pk} teacher={self.teacher_id} {self.start_at:%Y-%m-%d %H:%M}"
