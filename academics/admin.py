"""
Admin configuration for academics app
"""
from django.contrib import admin
from .models import Campus, Course, CourseClass, Enrollment, Level, Room, Subject, Teacher


class RoomInline(admin.TabularInline):
    model = Room
    extra = 0


@admin.register(Campus)
class CampusAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_online', 'created_at']
    inlines = [RoomInline]


@admin.register(Course)
class CourseAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']


@admin.register(Subject)
class SubjectAdmin(admin.ModelAdmin):
    list_display = ['name', 'course']
    list_filter = ['course']


@admin.register(Level)
class LevelAdmin(admin.ModelAdmin):
    list_display = ['name', 'subject']
    list_filter = ['subject__course']


@admin.register(Teacher)
class TeacherAdmin(admin.ModelAdmin):
    list_display = ['name', 'subject_course', 'phone', 'created_at']
    search_fields = ['name']
    filter_horizontal = ['subjects']


@admin.register(CourseClass)
class CourseClassAdmin(admin.ModelAdmin):
    list_display = ['id', 'course', 'subject', 'level', 'teacher', 'campus', 'room', 'capacity']
    list_filter = ['course', 'campus']
    search_fields = ['course__name', 'teacher__name']


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ['course_class', 'student', 'created_at']
    raw_id_fields = ['course_class', 'student']
