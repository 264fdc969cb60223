# Generated migration for TeacherCourseRate
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('academics', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='TeacherCourseRate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('hourly_rate_cents', models.PositiveIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='teacher_rates', to='academics.course')),
                ('level', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='+', to='academics.level')),
                ('subject', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='+', to='academics.subject')),
                ('teacher', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='course_rates', to='academics.teacher')),
            ],
            options={
                'verbose_name': 'Teacher Course Rate',
                'verbose_name_plural': 'Teacher Course Rates',
                'db_table': 'teacher_course_rates',
                'ordering': ['teacher', 'course'],
                'constraints': [models.UniqueConstraint(fields=('teacher', 'course', 'subject', 'level'), name='uniq_teacher_course_rate')],
            },
        ),
    ]
