"""
Teacher pay rates per course (optionally narrowed to subject and level).
"""
from django.db import models


class TeacherCourseRate(models.Model):
    teacher = models.ForeignKey('academics.Teacher', on_delete=models.CASCADE, related_name='course_rates')
    course = models.ForeignKey('academics.Course', on_delete=models.CASCADE, related_name='teacher_rates')
    subject = models.ForeignKey('academics.Subject', on_delete=models.CASCADE, null=True, blank=True, related_name='+')
    level = models.ForeignKey('academics.Level', on_delete=models.CASCADE, null=True, blank=True, related_name='+')
    hourly_rate_cents = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'teacher_course_rates'
        verbose_name = 'Teacher Course Rate'
        verbose_name_plural = 'Teacher Course Rates'
        ordering = ['teacher', 'course']
        constraints = [
            models.UniqueConstraint(
                fields=['teacher', 'course', 'subject', 'level'],
                name='uniq_teacher_course_rate',
            ),
        ]

    def __str__(self):
        return f"{self.teacher_id}/{self.course_id}: {self.hourly_rate_cents}"
