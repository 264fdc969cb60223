"""
Serializers for academics app (reference data)
"""
from rest_framework import serializers

from .models import Campus, Course, CourseClass, Level, Room, Subject, Teacher
from .services import can_teach_class, class_label


class CampusSerializer(serializers.ModelSerializer):
    isOnline = serializers.BooleanField(source='is_online', required=False)

    class Meta:
        model = Campus
        fields = ['id', 'name', 'isOnline']


class RoomSerializer(serializers.ModelSerializer):
    campusId = serializers.PrimaryKeyRelatedField(source='campus', queryset=Campus.objects.all())

    class Meta:
        model = Room
        fields = ['id', 'name', 'campusId', 'capacity']


class CourseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Course
        fields = ['id', 'name']


class SubjectSerializer(serializers.ModelSerializer):
    courseId = serializers.PrimaryKeyRelatedField(source='course', queryset=Course.objects.all())

    class Meta:
        model = Subject
        fields = ['id', 'name', 'courseId']


class LevelSerializer(serializers.ModelSerializer):
    subjectId = serializers.PrimaryKeyRelatedField(source='subject', queryset=Subject.objects.all())

    class Meta:
        model = Level
        fields = ['id', 'name', 'subjectId']


class TeacherSerializer(serializers.ModelSerializer):
    subjectCourseId = serializers.PrimaryKeyRelatedField(
        source='subject_course', queryset=Subject.objects.all(), allow_null=True, required=False
    )
    subjectIds = serializers.PrimaryKeyRelatedField(
        source='subjects', queryset=Subject.objects.all(), many=True, required=False
    )

    class Meta:
        model = Teacher
        fields = ['id', 'name', 'phone', 'note', 'subjectCourseId', 'subjectIds']


class CourseClassSerializer(serializers.ModelSerializer):
    courseId = serializers.PrimaryKeyRelatedField(source='course', queryset=Course.objects.all())
    subjectId = serializers.PrimaryKeyRelatedField(
        source='subject', queryset=Subject.objects.all(), allow_null=True, required=False
    )
    levelId = serializers.PrimaryKeyRelatedField(
        source='level', queryset=Level.objects.all(), allow_null=True, required=False
    )
    teacherId = serializers.PrimaryKeyRelatedField(source='teacher', queryset=Teacher.objects.all())
    campusId = serializers.PrimaryKeyRelatedField(source='campus', queryset=Campus.objects.all())
    roomId = serializers.PrimaryKeyRelatedField(
        source='room', queryset=Room.objects.all(), allow_null=True, required=False
    )
    oneOnOneStudentId = serializers.PrimaryKeyRelatedField(
        source='one_on_one_student', read_only=True
    )
    label = serializers.SerializerMethodField()
    teacherName = serializers.CharField(source='teacher.name', read_only=True)
    studentCount = serializers.SerializerMethodField()

    class Meta:
        model = CourseClass
        fields = [
            'id', 'label', 'courseId', 'subjectId', 'levelId', 'teacherId', 'teacherName',
            'campusId', 'roomId', 'capacity', 'oneOnOneStudentId', 'studentCount',
        ]

    def get_label(self, obj):
        return class_label(obj)

    def get_studentCount(self, obj):
        return obj.enrollments.count()

    def validate(self, attrs):
        subject = attrs.get('subject')
        if subject is not None and subject.course_id != attrs['course'].pk:
            raise serializers.ValidationError('Subject does not belong to course')
        level = attrs.get('level')
        if level is not None and (subject is None or level.subject_id != subject.pk):
            raise serializers.ValidationError('Level does not belong to subject')
        room = attrs.get('room')
        if room is not None and room.campus_id != attrs['campus'].pk:
            raise serializers.ValidationError('Room does not belong to campus')
        probe = CourseClass(course=attrs['course'], subject=subject)
        if not can_teach_class(attrs['teacher'], probe):
            raise serializers.ValidationError('Teacher cannot teach this course')
        return attrs
