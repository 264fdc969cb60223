"""
Students and where they came from.
A student owns course packages (packages app) and enrolls in classes (academics app).
"""
from django.db import models


class StudentSource(models.Model):
    """Acquisition channel, e.g. walk-in or a partner school (partner billing keys on the name)."""
    name = models.CharField(max_length=128, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'student_sources'
        verbose_name = 'Student Source'
        verbose_name_plural = 'Student Sources'
        ordering = ['name']

    def __str__(self):
        return self.name


class Student(models.Model):
    name = models.CharField(max_length=255, db_index=True)
    grade = models.CharField(max_length=50, blank=True, null=True, help_text="Grade/year, e.g. G10")
    school = models.CharField(max_length=255, blank=True, null=True)
    phone = models.CharField(max_length=32, blank=True, null=True)
    note = models.TextField(blank=True, null=True)
    source = models.ForeignKey(
        StudentSource,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='students',
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'students'
        verbose_name = 'Student'
        verbose_name_plural = 'Students'
        ordering = ['-created_at']

    def __str__(self):
        return self.name
