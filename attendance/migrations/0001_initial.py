# Generated migration for session attendance
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('scheduling', '0001_initial'),
        ('students', '0001_initial'),
        ('packages', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Attendance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('UNMARKED', 'Unmarked'), ('PRESENT', 'Present'), ('ABSENT', 'Absent'), ('LATE', 'Late'), ('EXCUSED', 'Excused')], default='UNMARKED', max_length=20)),
                ('deducted_minutes', models.IntegerField(default=0)),
                ('deducted_count', models.IntegerField(default=0)),
                ('note', models.TextField(blank=True, null=True)),
                ('excused_charge', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('package', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='attendances', to='packages.coursepackage')),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attendances', to='scheduling.session')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attendances', to='students.student')),
            ],
            options={
                'verbose_name': 'Attendance',
                'verbose_name_plural': 'Attendance',
                'db_table': 'attendance',
                'ordering': ['session', 'student'],
                'unique_together': {('session', 'student')},
                'indexes': [
                    models.Index(fields=['student', 'status'], name='attendance_student_status_idx'),
                    models.Index(fields=['updated_at'], name='attendance_updated_idx'),
                ],
            },
        ),
    ]
