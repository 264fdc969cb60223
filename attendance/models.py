"""
Attendance: one record per student per session.
Unique constraint: (session, student).
deducted_minutes / deducted_count record what the linked package absorbed
for this record, so a later change or restore can roll back exactly that.
"""
from django.db import models


class Attendance(models.Model):
    STATUS_UNMARKED = "UNMARKED"
    STATUS_PRESENT = "PRESENT"
    STATUS_ABSENT = "ABSENT"
    STATUS_LATE = "LATE"
    STATUS_EXCUSED = "EXCUSED"

    STATUS_CHOICES = [
        (STATUS_UNMARKED, "Unmarked"),
        (STATUS_PRESENT, "Present"),
        (STATUS_ABSENT, "Absent"),
        (STATUS_LATE, "Late"),
        (STATUS_EXCUSED, "Excused"),
    ]

    session = models.ForeignKey(
        "scheduling.Session",
        on_delete=models.CASCADE,
        related_name="attendances",
    )
    student = models.ForeignKey(
        "students.Student",
        on_delete=models.CASCADE,
        related_name="attendances",
    )
    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_UNMARKED,
    )
    deducted_minutes = models.IntegerField(default=0)
    deducted_count = models.IntegerField(default=0)
    package = models.ForeignKey(
        "packages.CoursePackage",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="attendances",
    )
    note = models.TextField(blank=True, null=True)
    excused_charge = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "attendance"
        verbose_name = "Attendance"
        verbose_name_plural = "Attendance"
        unique_together = [["session", "student"]]
        ordering = ["session", "student"]
        indexes = [
            models.Index(fields=["student", "status"], name="attendance_student_status_idx"),
            models.Index(fields=["updated_at"], name="attendance_updated_idx"),
        ]

    def __str__(self):
        return f"{self.student_id} @ session {self.session_id} - {self.status}"

    @property
    def is_excused_no_charge(self):
        return (
            self.status == self.STATUS_EXCUSED
            and not self.excused_charge
            and self.deducted_minutes == 0
            and self.deducted_count == 0
        )
