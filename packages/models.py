"""
Course packages and their ledger.

remaining_minutes is only written through packages.services.ledger
(conditional UPDATE under a row lock) so concurrent deductions cannot
overdraw a package. GROUP_COUNT packages store session counts in the
*_minutes columns.
"""
from django.conf import settings
from django.db import models


class CoursePackage(models.Model):
    TYPE_HOURS = 'HOURS'
    TYPE_MONTHLY = 'MONTHLY'
    TYPE_CHOICES = [
        (TYPE_HOURS, 'Hours'),
        (TYPE_MONTHLY, 'Monthly'),
    ]

    MODE_HOURS_MINUTES = 'HOURS_MINUTES'
    MODE_GROUP_COUNT = 'GROUP_COUNT'
    MODE_CHOICES = [
        (MODE_HOURS_MINUTES, 'Minutes'),
        (MODE_GROUP_COUNT, 'Group session count'),
    ]

    STATUS_ACTIVE = 'ACTIVE'
    STATUS_PAUSED = 'PAUSED'
    STATUS_EXPIRED = 'EXPIRED'
    STATUS_RETIRED = 'RETIRED'
    STATUS_CHOICES = [
        (STATUS_ACTIVE, 'Active'),
        (STATUS_PAUSED, 'Paused'),
        (STATUS_EXPIRED, 'Expired'),
        (STATUS_RETIRED, 'Retired'),
    ]

    SETTLEMENT_NONE = 'NONE'
    SETTLEMENT_ONLINE_PACKAGE_END = 'ONLINE_PACKAGE_END'
    SETTLEMENT_OFFLINE_MONTHLY = 'OFFLINE_MONTHLY'
    SETTLEMENT_CHOICES = [
        (SETTLEMENT_NONE, 'None'),
        (SETTLEMENT_ONLINE_PACKAGE_END, 'Online (settle at package end)'),
        (SETTLEMENT_OFFLINE_MONTHLY, 'Offline (monthly)'),
    ]

    student = models.ForeignKey('students.Student', on_delete=models.PROTECT, related_name='packages')
    course = models.ForeignKey('academics.Course', on_delete=models.PROTECT, related_name='packages')
    type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_HOURS)
    mode = models.CharField(max_length=16, choices=MODE_CHOICES, default=MODE_HOURS_MINUTES)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PAUSED, db_index=True)
    total_minutes = models.IntegerField(null=True, blank=True)
    remaining_minutes = models.IntegerField(null=True, blank=True)
    valid_from = models.DateTimeField()
    valid_to = models.DateTimeField(null=True, blank=True)
    note = models.TextField(blank=True, null=True)
    paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)
    paid_amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    paid_note = models.TextField(blank=True, null=True)
    settlement_mode = models.CharField(max_length=24, choices=SETTLEMENT_CHOICES, default=SETTLEMENT_NONE)
    shared_students = models.ManyToManyField(
        'students.Student',
        through='CoursePackageShare',
        related_name='shared_packages',
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'course_packages'
        verbose_name = 'Course Package'
        verbose_name_plural = 'Course Packages'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['student', 'course', 'status'], name='pkg_student_course_status_idx'),
        ]

    def __str__(self):
        return f"Package {self.pk} ({self.type}) {self.student_id}/{self.course_id}"

    @property
    def is_group_count(self):
        return self.mode == self.MODE_GROUP_COUNT


class CoursePackageShare(models.Model):
    package = models.ForeignKey(CoursePackage, on_delete=models.CASCADE, related_name='shares')
    student = models.ForeignKey('students.Student', on_delete=models.CASCADE, related_name='package_shares')
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'course_package_shares'
        verbose_name = 'Package Share'
        verbose_name_plural = 'Package Shares'
        constraints = [
            models.UniqueConstraint(fields=['package', 'student'], name='uniq_package_share'),
        ]


class PackageTxn(models.Model):
    """One balance change. delta_minutes is signed; PURCHASE carries the purchased amount."""
    KIND_PURCHASE = 'PURCHASE'
    KIND_DEDUCT = 'DEDUCT'
    KIND_ROLLBACK = 'ROLLBACK'
    KIND_GIFT = 'GIFT'
    KIND_ADJUST = 'ADJUST'
    KIND_CHOICES = [
        (KIND_PURCHASE, 'Purchase'),
        (KIND_DEDUCT, 'Deduct'),
        (KIND_ROLLBACK, 'Rollback'),
        (KIND_GIFT, 'Gift'),
        (KIND_ADJUST, 'Adjust'),
    ]

    package = models.ForeignKey(CoursePackage, on_delete=models.PROTECT, related_name='txns')
    kind = models.CharField(max_length=16, choices=KIND_CHOICES)
    delta_minutes = models.IntegerField()
    session = models.ForeignKey(
        'scheduling.Session',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='package_txns',
    )
    note = models.TextField(blank=True, null=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='package_txns',
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'package_txns'
        verbose_name = 'Package Transaction'
        verbose_name_plural = 'Package Transactions'
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['package', 'created_at'], name='pkgtxn_package_created_idx'),
        ]

    def __str__(self):
        return f"{self.kind} {self.delta_minutes:+d} on package {self.package_id}"
