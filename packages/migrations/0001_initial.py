# Generated migration for course packages and the package ledger
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('students', '0001_initial'),
        ('academics', '0001_initial'),
        ('scheduling', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CoursePackage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('HOURS', 'Hours'), ('MONTHLY', 'Monthly')], default='HOURS', max_length=16)),
                ('mode', models.CharField(choices=[('HOURS_MINUTES', 'Minutes'), ('GROUP_COUNT', 'Group session count')], default='HOURS_MINUTES', max_length=16)),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('PAUSED', 'Paused'), ('EXPIRED', 'Expired'), ('RETIRED', 'Retired')], db_index=True, default='PAUSED', max_length=16)),
                ('total_minutes', models.IntegerField(blank=True, null=True)),
                ('remaining_minutes', models.IntegerField(blank=True, null=True)),
                ('valid_from', models.DateTimeField()),
                ('valid_to', models.DateTimeField(blank=True, null=True)),
                ('note', models.TextField(blank=True, null=True)),
                ('paid', models.BooleanField(default=False)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('paid_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('paid_note', models.TextField(blank=True, null=True)),
                ('settlement_mode', models.CharField(choices=[('NONE', 'None'), ('ONLINE_PACKAGE_END', 'Online (settle at package end)'), ('OFFLINE_MONTHLY', 'Offline (monthly)')], default='NONE', max_length=24)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('course', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='packages', to='academics.course')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='packages', to='students.student')),
            ],
            options={
                'verbose_name': 'Course Package',
                'verbose_name_plural': 'Course Packages',
                'db_table': 'course_packages',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['student', 'course', 'status'], name='pkg_student_course_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='CoursePackageShare',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('package', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shares', to='packages.coursepackage')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='package_shares', to='students.student')),
            ],
            options={
                'verbose_name': 'Package Share',
                'verbose_name_plural': 'Package Shares',
                'db_table': 'course_package_shares',
                'constraints': [models.UniqueConstraint(fields=('package', 'student'), name='uniq_package_share')],
            },
        ),
        migrations.AddField(
            model_name='coursepackage',
            name='shared_students',
            field=models.ManyToManyField(blank=True, related_name='shared_packages', through='packages.CoursePackageShare', to='students.student'),
        ),
        migrations.CreateModel(
            name='PackageTxn',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('PURCHASE', 'Purchase'), ('DEDUCT', 'Deduct'), ('ROLLBACK', 'Rollback'), ('GIFT', 'Gift'), ('ADJUST', 'Adjust')], max_length=16)),
                ('delta_minutes', models.IntegerField()),
                ('note', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='package_txns', to=settings.AUTH_USER_MODEL)),
                ('package', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='txns', to='packages.coursepackage')),
                ('session', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='package_txns', to='scheduling.session')),
            ],
            options={
                'verbose_name': 'Package Transaction',
                'verbose_name_plural': 'Package Transactions',
                'db_table': 'package_txns',
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['package', 'created_at'], name='pkgtxn_package_created_idx')],
            },
        ),
    ]
