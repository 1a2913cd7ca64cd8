"""
Payroll Processor Service
Runs payroll for all eligible employees and produces the bank transfer file.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple
from django.conf import settings
from django.utils import timezone
from django.db import transaction
import logging

from core.models import AuditLog
from core.services.audit import AuditRecorder
from employees.models import Employee
from payroll.exceptions import ConfigMissing, NoEligibleEmployees, PayrollRunError
from payroll.models import PayrollRun, PayrollRunEmployee, PayrollRunLock
from .bank_file import BankFileGenerator
from .calculator import PayrollCalculator
from .config import ConfigProvider, StatutoryConfig
from .records import PayeeRecord

logger = logging.getLogger('payroll')

UNEXPECTED_ERROR_MESSAGE = 'An unexpected error occurred during payroll processing.'


@dataclass(frozen=True)
class RunSnapshot:
    """Configuration and employee records read once at the start of a run."""
    taken_at: object
    config: StatutoryConfig
    employees: Tuple[PayeeRecord, ...]


@dataclass
class PayrollRunResult:
    """Outcome of a payroll run as reported to the caller."""
    success: bool
    message: str
    payroll_run_id: Optional[str] = None
    file_content: Optional[str] = None
    employee_count: int = 0
    total_amount: Decimal = Decimal('0.00')
    skipped_count: int = 0
    skipped_employee_ids: List[str] = field(default_factory=list)
    error_code: Optional[str] = None

    def as_dict(self) -> dict:
        result = {'success': self.success, 'message': self.message}
        if self.payroll_run_id:
            result['payrollRunId'] = self.payroll_run_id
        if self.file_content:
            result['fileContent'] = self.file_content
        return result


class PayrollProcessor:
    """
    Processes payroll for all active employees with complete bank details.

    A run is all or nothing: the PayrollRun, its employee rows and the
    transfer file are produced in one transaction. Exactly one audit entry
    is written per run attempt, after the transaction has finished.
    """

    def __init__(
        self,
        actor: Optional[str] = None,
        config_provider: Optional[ConfigProvider] = None,
        bank_file_generator: Optional[BankFileGenerator] = None,
        audit_recorder: Optional[AuditRecorder] = None,
    ):
        """
        Args:
            actor: Name recorded in the audit log; PAYROLL_DEFAULT_ACTOR if not given
            config_provider: Source of the statutory configuration
            bank_file_generator: Renders the transfer file
            audit_recorder: Writes the audit entry
        """
        self.actor = actor or getattr(settings, 'PAYROLL_DEFAULT_ACTOR', 'System')
        self.config_provider = config_provider or ConfigProvider()
        self.bank_file_generator = bank_file_generator or BankFileGenerator()
        self.audit_recorder = audit_recorder or AuditRecorder()

    def get_employees(self):
        """Active employees in processing order; bank details are checked on the snapshot."""
        return Employee.objects.filter(status=Employee.Status.ACTIVE).order_by(
            'first_name', 'last_name', 'employee_number', 'id'
        )

    def take_snapshot(self, taken_at) -> RunSnapshot:
        config = self.config_provider.get_config(timezone.localdate(taken_at))
        if config is None:
            raise ConfigMissing()

        employees = tuple(PayeeRecord.from_employee(e) for e in self.get_employees())
        return RunSnapshot(taken_at=taken_at, config=config, employees=employees)

    def select_eligible(self, snapshot: RunSnapshot) -> Tuple[List[PayeeRecord], List[str]]:
        """
        Split active employees into those to pay and those skipped for
        missing bank details.

        Raises:
            NoEligibleEmployees: when nobody is left to pay
        """
        active = [e for e in snapshot.employees if e.is_active]
        if not active:
            raise NoEligibleEmployees('No active employees found to process payroll for.')

        eligible = []
        skipped = []
        for record in active:
            if not record.has_bank_details:
                logger.warning(
                    f"Skipping employee {record.name} (ID: {record.employee_id}) due to missing bank details."
                )
                skipped.append(record.employee_id)
                continue
            eligible.append(record)

        if not eligible:
            raise NoEligibleEmployees('No employees with complete bank details found.')

        return eligible, skipped

    def acquire_lock(self, run_date) -> PayrollRunLock:
        """Serialize runs for the same pay period until the transaction ends."""
        period = f"{timezone.localdate(run_date):%Y-%m}"
        lock, _ = PayrollRunLock.objects.get_or_create(period=period)
        lock = PayrollRunLock.objects.select_for_update().get(pk=lock.pk)
        lock.last_actor = self.actor
        lock.save(update_fields=['last_actor', 'updated_at'])
        return lock

    def process(self, snapshot: RunSnapshot) -> PayrollRun:
        eligible, skipped = self.select_eligible(snapshot)
        calculator = PayrollCalculator(snapshot.config)

        total_amount = Decimal('0.00')
        rows = []
        for position, record in enumerate(eligible):
            breakdown = calculator.compute(record)
            total_amount += breakdown.net_pay
            rows.append((position, record, breakdown))

        run_date = snapshot.taken_at
        payroll_run = PayrollRun.objects.create(
            run_date=run_date,
            actor=self.actor,
            employee_count=len(rows),
            total_amount=total_amount,
            ach_file_name=self.bank_file_generator.file_name(timezone.localdate(run_date)),
            skipped_count=len(skipped),
            skipped_employee_ids=skipped,
        )

        PayrollRunEmployee.objects.bulk_create([
            PayrollRunEmployee(
                payroll_run=payroll_run,
                employee_id=record.employee_id,
                position=position,
                employee_name=record.name,
                bank_name=record.bank_name,
                account_number=record.account_number,
                branch_code=record.branch_code,
                base_pay=breakdown.base_pay,
                overtime_pay=breakdown.overtime_pay,
                gross_pay=breakdown.gross_pay,
                tax_deduction=breakdown.tax_deduction,
                employee_napsa_deduction=breakdown.employee_napsa_deduction,
                employer_napsa_contribution=breakdown.employer_napsa_contribution,
                employee_nhima_deduction=breakdown.employee_nhima_deduction,
                employer_nhima_contribution=breakdown.employer_nhima_contribution,
                other_deductions=breakdown.other_deductions,
                reimbursements=breakdown.reimbursements,
                total_deductions=breakdown.total_deductions,
                net_pay=breakdown.net_pay,
            )
            for position, record, breakdown in rows
        ])

        logger.info(
            f"Payroll run {payroll_run.id} persisted. "
            f"Employees: {payroll_run.employee_count}, "
            f"Skipped: {payroll_run.skipped_count}, "
            f"Total Net: {payroll_run.total_amount}"
        )
        return payroll_run

    def run(self) -> PayrollRunResult:
        """
        Run payroll for all eligible employees.

        Returns:
            PayrollRunResult; never raises
        """
        started_at = timezone.now()
        logger.info(f"Payroll run started by {self.actor}")

        try:
            with transaction.atomic():
                self.acquire_lock(started_at)
                snapshot = self.take_snapshot(started_at)
                payroll_run = self.process(snapshot)
                content = self.bank_file_generator.render(payroll_run)
        except PayrollRunError as e:
            logger.warning(f"Payroll run failed: {e.message}")
            self.audit_recorder.record(
                self.actor, AuditLog.Action.PAYROLL_RUN_FAILED, e.message, timezone.now()
            )
            return PayrollRunResult(success=False, message=e.message, error_code=e.code)
        except Exception as e:
            logger.exception("Error running payroll")
            self.audit_recorder.record(
                self.actor,
                AuditLog.Action.PAYROLL_RUN_FAILED,
                str(e) or UNEXPECTED_ERROR_MESSAGE,
                timezone.now(),
            )
            return PayrollRunResult(
                success=False, message=UNEXPECTED_ERROR_MESSAGE, error_code='unexpected'
            )

        details = (
            f"Processed payroll for {payroll_run.employee_count} employees. "
            f"Total amount: {payroll_run.total_amount:.2f}. ACH file generated."
        )
        if payroll_run.skipped_count:
            details += f" Skipped {payroll_run.skipped_count} employees with missing bank details."
        self.audit_recorder.record(
            self.actor, AuditLog.Action.PAYROLL_RUN_EXECUTED, details, payroll_run.run_date
        )

        message = 'Payroll processed successfully.'
        if payroll_run.skipped_count:
            message += f" {payroll_run.skipped_count} employees skipped due to missing bank details."

        return PayrollRunResult(
            success=True,
            message=message,
            payroll_run_id=str(payroll_run.id),
            file_content=self.bank_file_generator.encode(content),
            employee_count=payroll_run.employee_count,
            total_amount=payroll_run.total_amount,
            skipped_count=payroll_run.skipped_count,
            skipped_employee_ids=list(payroll_run.skipped_employee_ids),
        )


def run_payroll(actor: Optional[str] = None) -> PayrollRunResult:
    """Entry point for schedulers and the run_payroll command."""
    return PayrollProcessor(actor=actor).run()
