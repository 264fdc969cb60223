# Generated migration for partner settlements and approvals
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('students', '0001_initial'),
        ('packages', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PartnerSettlement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('mode', models.CharField(choices=[('ONLINE_PACKAGE_END', 'Online (package end)'), ('OFFLINE_MONTHLY', 'Offline (monthly)')], max_length=24)),
                ('month_key', models.CharField(blank=True, help_text='YYYY-MM for monthly settlements', max_length=7, null=True)),
                ('hours', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('amount', models.IntegerField(default=0)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('INVOICED', 'Invoiced'), ('PAID', 'Paid')], db_index=True, default='PENDING', max_length=16)),
                ('online_snapshot_total_minutes', models.IntegerField(blank=True, null=True)),
                ('note', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('package', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='partner_settlements', to='packages.coursepackage')),
                ('student', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='partner_settlements', to='students.student')),
            ],
            options={
                'verbose_name': 'Partner Settlement',
                'verbose_name_plural': 'Partner Settlements',
                'db_table': 'partner_settlements',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['package', 'online_snapshot_total_minutes'], name='settlement_pkg_snapshot_idx')],
            },
        ),
        migrations.CreateModel(
            name='SettlementApproval',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('manager_approved_by', models.JSONField(blank=True, default=list)),
                ('finance_approved_by', models.JSONField(blank=True, default=list)),
                ('manager_rejected_by', models.CharField(blank=True, max_length=254, null=True)),
                ('manager_rejected_at', models.DateTimeField(blank=True, null=True)),
                ('manager_reject_reason', models.TextField(blank=True, null=True)),
                ('finance_rejected_by', models.CharField(blank=True, max_length=254, null=True)),
                ('finance_rejected_at', models.DateTimeField(blank=True, null=True)),
                ('finance_reject_reason', models.TextField(blank=True, null=True)),
                ('exported_at', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('exported_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('settlement', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='approval', to='partners.partnersettlement')),
            ],
            options={
                'verbose_name': 'Settlement Approval',
                'verbose_name_plural': 'Settlement Approvals',
                'db_table': 'partner_settlement_approvals',
            },
        ),
    ]
