from django.contrib import admin
from .models import TeacherCourseRate


@admin.register(TeacherCourseRate)
class TeacherCourseRateAdmin(admin.ModelAdmin):
    list_display = ['teacher', 'course', 'subject', 'level', 'hourly_rate_cents', 'updated_at']
    list_filter = ['course']
    search_fields = ['teacher__name', 'course__name']
