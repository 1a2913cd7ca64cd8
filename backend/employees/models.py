"""
Employee models for HRS - Payroll Engine
Employee records are maintained by HR; payroll only reads them.
"""
from django.db import models
from django.core.validators import MinValueValidator
from core.models import BaseModel


class Employee(BaseModel):
    """
    Employee record consumed by payroll.
    Attendance hours arrive here already finalized.
    """

    class WorkerType(models.TextChoices):
        SALARIED = 'salaried', 'Salaried'
        HOURLY = 'hourly', 'Hourly'
        CONTRACTOR = 'contractor', 'Contractor'

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'
        SUSPENDED = 'suspended', 'Suspended'
        ON_LEAVE = 'on_leave', 'On Leave'
        SICK = 'sick', 'Sick'
        PENDING_APPROVAL = 'pending_approval', 'Pending Approval'

    # Personal Information
    first_name = models.CharField(max_length=150)
    last_name = models.CharField(max_length=150, blank=True)
    email = models.EmailField(blank=True)
    employee_number = models.CharField(max_length=20, unique=True, blank=True, null=True)

    # Employment Details
    worker_type = models.CharField(
        max_length=20,
        choices=WorkerType.choices,
        default=WorkerType.SALARIED
    )
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.ACTIVE
    )

    # Compensation
    salary = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
        help_text='Annual salary (salaried) or annual contract amount (contractor)'
    )
    hourly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)]
    )
    hours_worked = models.DecimalField(
        max_digits=7,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
        help_text='Finalized hours for the period (hourly workers)'
    )
    overtime = models.DecimalField(
        max_digits=7,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
        help_text='Overtime hours for the period (hourly workers)'
    )
    bonus = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    allowances = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    deductions = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=0,
        help_text='Non-statutory deductions for the period'
    )
    reimbursements = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    # Banking Information
    bank_name = models.CharField(max_length=100, blank=True)
    account_number = models.CharField(max_length=50, blank=True)
    branch_code = models.CharField(max_length=20, blank=True)

    class Meta:
        ordering = ['first_name', 'last_name']
        verbose_name = 'Employee'
        verbose_name_plural = 'Employees'

    def __str__(self):
        return f"{self.get_full_name()} ({self.get_worker_type_display()})"

    def get_full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def has_bank_details(self):
        return bool((self.bank_name or '').strip() and (self.account_number or '').strip())

    @property
    def is_payroll_eligible(self):
        return self.status == self.Status.ACTIVE and self.has_bank_details
