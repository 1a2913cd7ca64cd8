import django.core.validators
import django.db.models.deletion
import uuid
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('employees', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='PayrollConfig',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('effective_from', models.DateField()),
                ('effective_to', models.DateField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('napsa_rate', models.DecimalField(decimal_places=4, default=Decimal('0.05'), help_text='Employee NAPSA rate as a fraction of contributable gross', max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(1)])),
                ('employer_napsa_rate', models.DecimalField(blank=True, decimal_places=4, help_text='Employer NAPSA rate; defaults to the employee rate', max_digits=5, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(1)])),
                ('napsa_ceiling', models.DecimalField(decimal_places=2, help_text='Maximum contributable gross pay per period', max_digits=12, validators=[django.core.validators.MinValueValidator(0)])),
                ('nhima_rate', models.DecimalField(decimal_places=4, default=Decimal('0.01'), max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(1)])),
                ('employer_nhima_rate', models.DecimalField(blank=True, decimal_places=4, help_text='Employer NHIMA rate; defaults to the employee rate', max_digits=5, null=True, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(1)])),
                ('overtime_multiplier', models.DecimalField(decimal_places=2, default=Decimal('1.5'), max_digits=4, validators=[django.core.validators.MinValueValidator(0)])),
                ('working_hours', models.DecimalField(decimal_places=2, default=Decimal('8'), help_text='Daily target working hours', max_digits=4)),
                ('allowances_pretax', models.BooleanField(default=False, help_text='Exclude allowances from the PAYE taxable base')),
                ('napsa_pretax', models.BooleanField(default=False, help_text='Exclude the employee NAPSA deduction from the PAYE taxable base')),
            ],
            options={
                'ordering': ['-effective_from'],
            },
        ),
        migrations.CreateModel(
            name='TaxBand',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('upper_bound', models.DecimalField(blank=True, decimal_places=2, help_text='Leave empty for the final, unbounded band', max_digits=14, null=True)),
                ('rate', models.DecimalField(decimal_places=4, max_digits=5, validators=[django.core.validators.MinValueValidator(0), django.core.validators.MaxValueValidator(1)])),
                ('config', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tax_bands', to='payroll.payrollconfig')),
            ],
            options={
                'ordering': [models.OrderBy(models.F('upper_bound'), nulls_last=True)],
            },
        ),
        migrations.CreateModel(
            name='PayrollRun',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('run_date', models.DateTimeField()),
                ('actor', models.CharField(max_length=150)),
                ('employee_count', models.IntegerField(help_text='Employees actually processed')),
                ('total_amount', models.DecimalField(decimal_places=2, help_text='Sum of net pay for all processed employees', max_digits=16)),
                ('ach_file_name', models.CharField(max_length=100)),
                ('skipped_count', models.IntegerField(default=0)),
                ('skipped_employee_ids', models.JSONField(blank=True, default=list)),
            ],
            options={
                'ordering': ['-run_date'],
            },
        ),
        migrations.CreateModel(
            name='PayrollRunEmployee',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('position', models.PositiveIntegerField()),
                ('employee_name', models.CharField(max_length=255)),
                ('bank_name', models.CharField(max_length=100)),
                ('account_number', models.CharField(max_length=50)),
                ('branch_code', models.CharField(blank=True, max_length=20)),
                ('base_pay', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('overtime_pay', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('gross_pay', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('tax_deduction', models.DecimalField(decimal_places=2, default=0, help_text='PAYE', max_digits=14)),
                ('employee_napsa_deduction', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('employer_napsa_contribution', models.DecimalField(decimal_places=2, default=0, help_text='Tracked, not deducted from the employee', max_digits=14)),
                ('employee_nhima_deduction', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('employer_nhima_contribution', models.DecimalField(decimal_places=2, default=0, help_text='Tracked, not deducted from the employee', max_digits=14)),
                ('other_deductions', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('reimbursements', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('total_deductions', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('net_pay', models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ('employee', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payroll_run_entries', to='employees.employee')),
                ('payroll_run', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='employees', to='payroll.payrollrun')),
            ],
            options={
                'verbose_name_plural': 'Payroll Run Employees',
                'ordering': ['payroll_run', 'position'],
                'constraints': [
                    models.UniqueConstraint(fields=('payroll_run', 'employee'), name='unique_employee_per_payroll_run'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PayrollRunLock',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('period', models.CharField(help_text='YYYY-MM', max_length=7, unique=True)),
                ('last_actor', models.CharField(blank=True, max_length=150)),
            ],
        ),
    ]
