# Generated migration for availability, sessions and appointments
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
        ('students', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='TeacherAvailability',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('weekday', models.PositiveSmallIntegerField()),
                ('start_min', models.PositiveIntegerField()),
                ('end_min', models.PositiveIntegerField()),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='weekly_availability', to='academics.teacher')),
            ],
            options={
                'verbose_name': 'Weekly Availability',
                'verbose_name_plural': 'Weekly Availability',
                'db_table': 'teacher_availability',
                'ordering': ['teacher', 'weekday', 'start_min'],
                'indexes': [models.Index(fields=['teacher', 'weekday'], name='avail_teacher_weekday_idx')],
            },
        ),
        migrations.CreateModel(
            name='TeacherAvailabilityDate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('start_min', models.PositiveIntegerField()),
                ('end_min', models.PositiveIntegerField()),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='date_availability', to='academics.teacher')),
            ],
            options={
                'verbose_name': 'Date Availability',
                'verbose_name_plural': 'Date Availability',
                'db_table': 'teacher_availability_dates',
                'ordering': ['teacher', 'date', 'start_min'],
                'indexes': [models.Index(fields=['teacher', 'date'], name='avail_date_teacher_date_idx')],
            },
        ),
        migrations.CreateModel(
            name='Session',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_at', models.DateTimeField(db_index=True)),
                ('end_at', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('course_class', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sessions', to='academics.courseclass')),
                ('student', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='one_on_one_sessions', to='students.student')),
                ('teacher', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='override_sessions', to='academics.teacher')),
            ],
            options={
                'verbose_name': 'Session',
                'verbose_name_plural': 'Sessions',
                'db_table': 'sessions',
                'ordering': ['start_at'],
                'indexes': [
                    models.Index(fields=['course_class', 'start_at'], name='session_class_start_idx'),
                    models.Index(fields=['teacher', 'start_at'], name='session_teacher_start_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SessionTeacherChange',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('reason', models.TextField(blank=True, null=True)),
                ('changed_at', models.DateTimeField(auto_now_add=True)),
                ('from_teacher', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='academics.teacher')),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='teacher_changes', to='scheduling.session')),
                ('to_teacher', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='academics.teacher')),
            ],
            options={
                'verbose_name': 'Session Teacher Change',
                'verbose_name_plural': 'Session Teacher Changes',
                'db_table': 'session_teacher_changes',
                'ordering': ['-changed_at'],
            },
        ),
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('start_at', models.DateTimeField(db_index=True)),
                ('end_at', models.DateTimeField()),
                ('mode', models.CharField(choices=[('OFFLINE', 'Offline'), ('ONLINE', 'Online')], default='OFFLINE', max_length=16)),
                ('place', models.CharField(blank=True, max_length=255, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='appointments', to='students.student')),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='appointments', to='academics.teacher')),
            ],
            options={
                'verbose_name': 'Appointment',
                'verbose_name_plural': 'Appointments',
                'db_table': 'appointments',
                'ordering': ['start_at'],
                'indexes': [models.Index(fields=['teacher', 'start_at'], name='appt_teacher_start_idx')],
            },
        ),
    ]
