import django.core.validators
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Employee',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('first_name', models.CharField(max_length=150)),
                ('last_name', models.CharField(blank=True, max_length=150)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('employee_number', models.CharField(blank=True, max_length=20, null=True, unique=True)),
                ('worker_type', models.CharField(choices=[('salaried', 'Salaried'), ('hourly', 'Hourly'), ('contractor', 'Contractor')], default='salaried', max_length=20)),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive'), ('suspended', 'Suspended'), ('on_leave', 'On Leave'), ('sick', 'Sick'), ('pending_approval', 'Pending Approval')], default='active', max_length=20)),
                ('salary', models.DecimalField(decimal_places=2, default=0, help_text='Annual salary (salaried) or annual contract amount (contractor)', max_digits=14, validators=[django.core.validators.MinValueValidator(0)])),
                ('hourly_rate', models.DecimalField(decimal_places=2, default=0, max_digits=10, validators=[django.core.validators.MinValueValidator(0)])),
                ('hours_worked', models.DecimalField(decimal_places=2, default=0, help_text='Finalized hours for the period (hourly workers)', max_digits=7, validators=[django.core.validators.MinValueValidator(0)])),
                ('overtime', models.DecimalField(decimal_places=2, default=0, help_text='Overtime hours for the period (hourly workers)', max_digits=7, validators=[django.core.validators.MinValueValidator(0)])),
                ('bonus', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('allowances', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('deductions', models.DecimalField(decimal_places=2, default=0, help_text='Non-statutory deductions for the period', max_digits=12)),
                ('reimbursements', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('bank_name', models.CharField(blank=True, max_length=100)),
                ('account_number', models.CharField(blank=True, max_length=50)),
                ('branch_code', models.CharField(blank=True, max_length=20)),
            ],
            options={
                'verbose_name': 'Employee',
                'verbose_name_plural': 'Employees',
                'ordering': ['first_name', 'last_name'],
            },
        ),
    ]
