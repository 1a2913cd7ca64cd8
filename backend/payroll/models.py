"""
Payroll models for HRS - Payroll Engine
Statutory configuration (PAYE bands, NAPSA, NHIMA) and payroll run records.
"""
from django.db import models
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from decimal import Decimal
from core.models import BaseModel, ImmutableModel


class PayrollConfig(BaseModel):
    """
    Statutory configuration for payroll runs.
    Allows updating rates and tax bands without code changes.
    """

    effective_from = models.DateField()
    effective_to = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    # NAPSA (capped)
    napsa_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.05'),
        validators=[MinValueValidator(0), MaxValueValidator(1)],
        help_text='Employee NAPSA rate as a fraction of contributable gross'
    )
    employer_napsa_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(1)],
        help_text='Employer NAPSA rate; defaults to the employee rate'
    )
    napsa_ceiling = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(0)],
        help_text='Maximum contributable gross pay per period'
    )

    # NHIMA (uncapped)
    nhima_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal('0.01'),
        validators=[MinValueValidator(0), MaxValueValidator(1)]
    )
    employer_nhima_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(1)],
        help_text='Employer NHIMA rate; defaults to the employee rate'
    )

    # Hours
    overtime_multiplier = models.DecimalField(
        max_digits=4,
        decimal_places=2,
        default=Decimal('1.5'),
        validators=[MinValueValidator(0)]
    )
    working_hours = models.DecimalField(
        max_digits=4,
        decimal_places=2,
        default=Decimal('8'),
        help_text='Daily target working hours'
    )

    # PAYE base
    allowances_pretax = models.BooleanField(
        default=False,
        help_text='Exclude allowances from the PAYE taxable base'
    )
    napsa_pretax = models.BooleanField(
        default=False,
        help_text='Exclude the employee NAPSA deduction from the PAYE taxable base'
    )

    class Meta:
        ordering = ['-effective_from']

    def __str__(self):
        return f"Payroll Config from {self.effective_from}"

    def clean(self):
        super().clean()
        if self.effective_to and self.effective_to < self.effective_from:
            raise ValidationError({'effective_to': 'Must not be before effective_from.'})
        if self.pk:
            from payroll.exceptions import InvalidPayrollConfig
            from payroll.services.config import TaxBracket, validate_tax_bands
            try:
                validate_tax_bands([
                    TaxBracket(upper_bound=band.upper_bound, rate=band.rate)
                    for band in self.tax_bands.all()
                ])
            except InvalidPayrollConfig as e:
                raise ValidationError(str(e))

    @classmethod
    def get_active(cls, date=None):
        """Get the active payroll configuration for a given date."""
        from django.utils import timezone
        if date is None:
            date = timezone.localdate()

        return cls.objects.filter(
            is_active=True,
            effective_from__lte=date
        ).filter(
            models.Q(effective_to__isnull=True) | models.Q(effective_to__gte=date)
        ).first()


class TaxBand(BaseModel):
    """
    PAYE band: income above the previous band's upper bound, up to and
    including this band's upper bound, is taxed at this band's rate.
    """

    config = models.ForeignKey(
        PayrollConfig,
        on_delete=models.CASCADE,
        related_name='tax_bands'
    )
    upper_bound = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        null=True,
        blank=True,
        help_text='Leave empty for the final, unbounded band'
    )
    rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        validators=[MinValueValidator(0), MaxValueValidator(1)]
    )

    class Meta:
        ordering = [models.F('upper_bound').asc(nulls_last=True)]

    def __str__(self):
        upper = self.upper_bound if self.upper_bound is not None else 'and above'
        return f"{upper} @ {self.rate}"


class PayrollRun(ImmutableModel):
    """
    One payroll run: every processed employee's breakdown and the totals.
    Written once; a wrong run is corrected by issuing a new run.
    """

    run_date = models.DateTimeField()
    actor = models.CharField(max_length=150)
    employee_count = models.IntegerField(help_text='Employees actually processed')
    total_amount = models.DecimalField(
        max_digits=16,
        decimal_places=2,
        help_text='Sum of net pay for all processed employees'
    )
    ach_file_name = models.CharField(max_length=100)
    skipped_count = models.IntegerField(default=0)
    skipped_employee_ids = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ['-run_date']

    def __str__(self):
        return f"Payroll run {self.run_date:%Y-%m-%d} ({self.employee_count} employees)"

    def employee_map(self):
        """Employee id -> PayrollRunEmployee, in processing order."""
        return {
            str(row.employee_id): row
            for row in self.employees.order_by('position')
        }


class PayrollRunEmployee(ImmutableModel):
    """
    Gross-to-net breakdown for one employee in a payroll run.
    Name and bank details are copied at run time.
    """

    payroll_run = models.ForeignKey(
        PayrollRun,
        on_delete=models.PROTECT,
        related_name='employees'
    )
    employee = models.ForeignKey(
        'employees.Employee',
        on_delete=models.PROTECT,
        related_name='payroll_run_entries'
    )
    position = models.PositiveIntegerField()
    employee_name = models.CharField(max_length=255)

    # Bank details at run time
    bank_name = models.CharField(max_length=100)
    account_number = models.CharField(max_length=50)
    branch_code = models.CharField(max_length=20, blank=True)

    # Earnings
    base_pay = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    overtime_pay = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    gross_pay = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    # Statutory deductions
    tax_deduction = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=0,
        help_text='PAYE'
    )
    employee_napsa_deduction = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    employer_napsa_contribution = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=0,
        help_text='Tracked, not deducted from the employee'
    )
    employee_nhima_deduction = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    employer_nhima_contribution = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=0,
        help_text='Tracked, not deducted from the employee'
    )

    # Other
    other_deductions = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    reimbursements = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    # Net pay
    total_deductions = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    net_pay = models.DecimalField(max_digits=14, decimal_places=2, default=0)

    class Meta:
        ordering = ['payroll_run', 'position']
        constraints = [
            models.UniqueConstraint(
                fields=['payroll_run', 'employee'],
                name='unique_employee_per_payroll_run'
            ),
        ]
        verbose_name_plural = 'Payroll Run Employees'

    def __str__(self):
        return f"{self.employee_name} - {self.payroll_run}"


class PayrollRunLock(BaseModel):
    """
    Row locked for the duration of a payroll run so that two runs for the
    same pay period execute one after the other.
    """

    period = models.CharField(max_length=7, unique=True, help_text='YYYY-MM')
    last_actor = models.CharField(max_length=150, blank=True)

    def __str__(self):
        return f"Payroll lock {self.period}"
