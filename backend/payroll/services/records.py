"""
Employee records as seen by the payroll calculator.
"""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from payroll.exceptions import InvalidEmployeeRecord

SALARIED = 'salaried'
HOURLY = 'hourly'
CONTRACTOR = 'contractor'
WORKER_TYPES = (SALARIED, HOURLY, CONTRACTOR)

ACTIVE = 'active'

ZERO = Decimal('0')


def non_negative(value) -> Decimal:
    """Coerce a raw amount to Decimal; missing, invalid or negative becomes zero."""
    if value is None or value == '':
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def _text(value) -> str:
    return (value or '').strip()


@dataclass(frozen=True)
class PayeeRecord:
    """
    Immutable copy of the employee fields payroll needs.

    Only the fields that belong to the worker type carry values:
    - salaried / contractor: salary
    - hourly: hourly_rate, hours_worked, overtime
    """
    employee_id: str
    name: str
    worker_type: str
    status: str
    salary: Decimal = ZERO
    hourly_rate: Decimal = ZERO
    hours_worked: Decimal = ZERO
    overtime: Decimal = ZERO
    bonus: Decimal = ZERO
    allowances: Decimal = ZERO
    deductions: Decimal = ZERO
    reimbursements: Decimal = ZERO
    bank_name: str = ''
    account_number: str = ''
    branch_code: str = ''

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    @property
    def has_bank_details(self) -> bool:
        return bool(self.bank_name and self.account_number)

    @property
    def is_payroll_eligible(self) -> bool:
        return self.is_active and self.has_bank_details

    @classmethod
    def from_employee(cls, employee) -> 'PayeeRecord':
        worker_type = _text(getattr(employee, 'worker_type', '')).lower()
        if worker_type not in WORKER_TYPES:
            raise InvalidEmployeeRecord(
                f"Employee {employee.pk} has unknown worker type {worker_type!r}"
            )

        is_hourly = worker_type == HOURLY
        return cls(
            employee_id=str(employee.pk),
            name=employee.get_full_name(),
            worker_type=worker_type,
            status=employee.status,
            salary=ZERO if is_hourly else non_negative(employee.salary),
            hourly_rate=non_negative(employee.hourly_rate) if is_hourly else ZERO,
            hours_worked=non_negative(employee.hours_worked) if is_hourly else ZERO,
            overtime=non_negative(employee.overtime) if is_hourly else ZERO,
            bonus=non_negative(employee.bonus),
            allowances=non_negative(employee.allowances),
            deductions=non_negative(employee.deductions),
            reimbursements=non_negative(employee.reimbursements),
            bank_name=_text(employee.bank_name),
            account_number=_text(employee.account_number),
            branch_code=_text(employee.branch_code),
        )
