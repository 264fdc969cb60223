"""
Serializers for students app
"""
from rest_framework import serializers

from .models import Student, StudentSource


class StudentSourceSerializer(serializers.ModelSerializer):
    class Meta:
        model = StudentSource
        fields = ['id', 'name']


class StudentSerializer(serializers.ModelSerializer):
    """Student list/detail payload (camelCase for the front end)."""
    sourceId = serializers.PrimaryKeyRelatedField(
        source='source', queryset=StudentSource.objects.all(), allow_null=True, required=False
    )
    sourceName = serializers.CharField(source='source.name', read_only=True, default=None)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Student
        fields = ['id', 'name', 'grade', 'school', 'phone', 'note', 'sourceId', 'sourceName', 'createdAt']

    def validate_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value
