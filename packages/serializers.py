"""
Serializers for packages app
"""
from rest_framework import serializers

from .models import CoursePackage, PackageTxn


class CoursePackageSerializer(serializers.ModelSerializer):
    """Package payload (camelCase for the front end). Read-only; writes go through services."""
    studentId = serializers.IntegerField(source='student_id', read_only=True)
    studentName = serializers.CharField(source='student.name', read_only=True)
    courseId = serializers.IntegerField(source='course_id', read_only=True)
    courseName = serializers.CharField(source='course.name', read_only=True)
    totalMinutes = serializers.IntegerField(source='total_minutes', read_only=True)
    remainingMinutes = serializers.IntegerField(source='remaining_minutes', read_only=True)
    validFrom = serializers.DateTimeField(source='valid_from', read_only=True)
    validTo = serializers.DateTimeField(source='valid_to', read_only=True)
    paidAt = serializers.DateTimeField(source='paid_at', read_only=True)
    paidAmount = serializers.DecimalField(source='paid_amount', max_digits=12, decimal_places=2, read_only=True)
    paidNote = serializers.CharField(source='paid_note', read_only=True)
    settlementMode = serializers.CharField(source='settlement_mode', read_only=True)
    sharedStudentIds = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = CoursePackage
        fields = [
            'id', 'studentId', 'studentName', 'courseId', 'courseName', 'type', 'mode', 'status',
            'totalMinutes', 'remainingMinutes', 'validFrom', 'validTo', 'note',
            'paid', 'paidAt', 'paidAmount', 'paidNote', 'settlementMode', 'sharedStudentIds', 'createdAt',
        ]

    def get_sharedStudentIds(self, obj):
        return [share.student_id for share in obj.shares.all()]


class PackageTxnSerializer(serializers.ModelSerializer):
    deltaMinutes = serializers.IntegerField(source='delta_minutes', read_only=True)
    sessionId = serializers.IntegerField(source='session_id', read_only=True)
    createdBy = serializers.CharField(source='created_by.email', read_only=True, default=None)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = PackageTxn
        fields = ['id', 'kind', 'deltaMinutes', 'sessionId', 'note', 'createdBy', 'createdAt']
