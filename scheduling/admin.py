from django.contrib import admin
from .models import Appointment, Session, SessionTeacherChange, TeacherAvailability, TeacherAvailabilityDate


@admin.register(TeacherAvailability)
class TeacherAvailabilityAdmin(admin.ModelAdmin):
    list_display = ['teacher', 'weekday', 'start_min', 'end_min']
    list_filter = ['weekday']


@admin.register(TeacherAvailabilityDate)
class TeacherAvailabilityDateAdmin(admin.ModelAdmin):
    list_display = ['teacher', 'date', 'start_min', 'end_min']
    date_hierarchy = 'date'


@admin.register(Session)
class SessionAdmin(admin.ModelAdmin):
    list_display = ['id', 'course_class', 'start_at', 'end_at', 'teacher', 'student']
    date_hierarchy = 'start_at'
    raw_id_fields = ['course_class', 'teacher', 'student']


@admin.register(SessionTeacherChange)
class SessionTeacherChangeAdmin(admin.ModelAdmin):
    list_display = ['session', 'from_teacher', 'to_teacher', 'changed_at']
    raw_id_fields = ['session']


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['id', 'teacher', 'student', 'start_at', 'end_at', 'mode']
    date_hierarchy = 'start_at'
    raw_id_fields = ['teacher', 'student']
