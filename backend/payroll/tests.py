"""
Tests for payroll calculation engine and payroll runs.
Validates statutory calculations (PAYE, NAPSA, NHIMA) and run orchestration.
"""
import csv
import datetime
import io
import os
import tempfile
from dataclasses import FrozenInstanceError
from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from core.exceptions import ImmutableRecordError
from core.models import AuditLog
from employees.models import Employee
from payroll.exceptions import InvalidEmployeeRecord, InvalidPayrollConfig
from payroll.models import PayrollConfig, PayrollRun, PayrollRunLock, TaxBand
from payroll.services.bank_file import BankFileGenerator
from payroll.services.calculator import PayrollCalculator, compute, round_money
from payroll.services.config import ConfigProvider, StatutoryConfig, TaxBracket, validate_tax_bands
from payroll.services.processor import PayrollProcessor, run_payroll
from payroll.services.records import PayeeRecord

# Monthly PAYE bands: 0 - 5,100 at 0%, to 7,100 at 20%, to 9,200 at 30%, above at 37%
TAX_BANDS = (
    TaxBracket(upper_bound=Decimal('5100'), rate=Decimal('0')),
    TaxBracket(upper_bound=Decimal('7100'), rate=Decimal('0.20')),
    TaxBracket(upper_bound=Decimal('9200'), rate=Decimal('0.30')),
    TaxBracket(upper_bound=None, rate=Decimal('0.37')),
)


def make_config(**overrides):
    values = {
        'tax_bands': TAX_BANDS,
        'napsa_rate': Decimal('0.05'),
        'napsa_ceiling': Decimal('8000'),
        'nhima_rate': Decimal('0.01'),
        'overtime_multiplier': Decimal('1.5'),
        'working_hours': Decimal('8'),
    }
    values.update(overrides)
    return StatutoryConfig(**values)


def make_record(worker_type='salaried', **fields):
    values = {
        'employee_id': 'emp-1',
        'name': 'Test Employee',
        'worker_type': worker_type,
        'status': 'active',
        'bank_name': 'Zanaco',
        'account_number': '0011223344',
    }
    values.update(fields)
    return PayeeRecord(**values)


class PayrollCalculatorTests(SimpleTestCase):
    """Tests for the PayrollCalculator service."""

    def setUp(self):
        self.calculator = PayrollCalculator(make_config())

    def test_salaried_gross_is_monthly_salary(self):
        """Scenario A: 120,000 a year is 10,000 a month."""
        result = self.calculator.compute(make_record(salary=Decimal('120000')))
        self.assertEqual(result.base_pay, Decimal('10000.00'))
        self.assertEqual(result.gross_pay, Decimal('10000.00'))

    def test_salaried_statutory_deductions(self):
        """Scenario A: NAPSA capped at the ceiling, NHIMA on full gross."""
        result = self.calculator.compute(make_record(salary=Decimal('120000')))
        # NAPSA: 5% of min(10000, 8000) = 400
        # NHIMA: 1% of 10000 = 100
        self.assertEqual(result.employee_napsa_deduction, Decimal('400.00'))
        self.assertEqual(result.employee_nhima_deduction, Decimal('100.00'))

    def test_salaried_full_breakdown(self):
        """Test complete payroll calculation for a salaried employee."""
        result = self.calculator.compute(make_record(salary=Decimal('120000')))
        # PAYE on 10000:
        # - Band 1: 0% of 5100 = 0
        # - Band 2: 20% of 2000 = 400
        # - Band 3: 30% of 2100 = 630
        # - Band 4: 37% of 800 = 296
        # Total: 1326
        self.assertEqual(result.tax_deduction, Decimal('1326.00'))
        self.assertEqual(result.total_deductions, Decimal('1826.00'))
        self.assertEqual(result.net_pay, Decimal('8174.00'))
        self.assertEqual(result.employer_napsa_contribution, Decimal('400.00'))

    def test_hourly_gross_with_overtime(self):
        """Scenario B: 160h at 20 plus 10h overtime at 1.5x."""
        result = self.calculator.compute(make_record(
            'hourly',
            hours_worked=Decimal('160'),
            hourly_rate=Decimal('20'),
            overtime=Decimal('10'),
        ))
        self.assertEqual(result.base_pay, Decimal('3200.00'))
        self.assertEqual(result.overtime_pay, Decimal('300.00'))
        self.assertEqual(result.gross_pay, Decimal('3500.00'))

    def test_hourly_bonus_and_allowances_added_to_gross(self):
        result = self.calculator.compute(make_record(
            'hourly',
            hours_worked=Decimal('160'),
            hourly_rate=Decimal('20'),
            overtime=Decimal('10'),
            bonus=Decimal('250'),
            allowances=Decimal('150'),
        ))
        self.assertEqual(result.gross_pay, Decimal('3900.00'))

    def test_overtime_ignored_for_salaried(self):
        """Overtime hours only pay for hourly workers."""
        result = self.calculator.compute(make_record(
            salary=Decimal('120000'),
            hourly_rate=Decimal('50'),
            overtime=Decimal('20'),
        ))
        self.assertEqual(result.overtime_pay, Decimal('0.00'))
        self.assertEqual(result.gross_pay, Decimal('10000.00'))

    def test_contractor_has_no_statutory_deductions(self):
        """Scenario E: contractor pays ad-hoc deductions only."""
        result = self.calculator.compute(make_record(
            'contractor',
            salary=Decimal('60000'),
            deductions=Decimal('500'),
        ))
        self.assertEqual(result.gross_pay, Decimal('5000.00'))
        self.assertEqual(result.tax_deduction, Decimal('0'))
        self.assertEqual(result.employee_napsa_deduction, Decimal('0'))
        self.assertEqual(result.employee_nhima_deduction, Decimal('0'))
        self.assertEqual(result.employer_napsa_contribution, Decimal('0'))
        self.assertEqual(result.total_deductions, Decimal('500.00'))
        self.assertEqual(result.net_pay, Decimal('4500.00'))

    def test_contractor_high_pay_still_untaxed(self):
        result = self.calculator.compute(make_record('contractor', salary=Decimal('2400000')))
        self.assertEqual(result.gross_pay, Decimal('200000.00'))
        self.assertEqual(result.tax_deduction, Decimal('0'))
        self.assertEqual(result.net_pay, Decimal('200000.00'))

    def test_napsa_never_exceeds_ceiling_times_rate(self):
        """NAPSA caps at 8000 x 5% = 400 however large gross pay is."""
        for gross in ('0', '100', '7999.99', '8000', '8000.01', '50000', '10000000'):
            napsa = self.calculator.calculate_napsa(Decimal(gross))
            self.assertLessEqual(napsa, Decimal('400'))
        self.assertEqual(self.calculator.calculate_napsa(Decimal('10000000')), Decimal('400'))
        self.assertEqual(self.calculator.calculate_napsa(Decimal('4000')), Decimal('200'))

    def test_nhima_uncapped(self):
        self.assertEqual(self.calculator.calculate_nhima(Decimal('1000000')), Decimal('10000'))

    def test_employer_contributions_use_employer_rates(self):
        calculator = PayrollCalculator(make_config(
            employer_napsa_rate=Decimal('0.06'),
            employer_nhima_rate=Decimal('0.02'),
        ))
        result = calculator.compute(make_record(salary=Decimal('120000')))
        self.assertEqual(result.employer_napsa_contribution, Decimal('480.00'))
        self.assertEqual(result.employer_nhima_contribution, Decimal('200.00'))
        # Employer contributions are not deducted from the employee
        self.assertEqual(result.total_deductions, Decimal('1826.00'))

    def test_paye_first_band_only(self):
        """Income inside the zero-rated band pays no tax."""
        self.assertEqual(self.calculator.calculate_tax(Decimal('5100')), Decimal('0'))

    def test_paye_band1_and_band2(self):
        """Test PAYE for income spanning band 1 and 2."""
        # Band 2: 20% of (6100 - 5100) = 200
        self.assertEqual(self.calculator.calculate_tax(Decimal('6100')), Decimal('200'))

    def test_paye_band_upper_bound_is_inclusive(self):
        """Income equal to an upper bound is taxed entirely within that band."""
        self.assertEqual(self.calculator.calculate_tax(Decimal('7100')), Decimal('400'))
        self.assertEqual(self.calculator.calculate_tax(Decimal('9200')), Decimal('1030'))

    def test_paye_top_band(self):
        """Final band taxes everything above the last bound."""
        # 400 + 630 + 37% of (20000 - 9200) = 1030 + 3996 = 5026
        self.assertEqual(self.calculator.calculate_tax(Decimal('20000')), Decimal('5026'))

    def test_paye_zero_or_negative_income(self):
        self.assertEqual(self.calculator.calculate_tax(Decimal('0')), Decimal('0'))
        self.assertEqual(self.calculator.calculate_tax(Decimal('-100')), Decimal('0'))

    def test_paye_single_unbounded_band(self):
        calculator = PayrollCalculator(make_config(
            tax_bands=(TaxBracket(upper_bound=None, rate=Decimal('0.25')),)
        ))
        self.assertEqual(calculator.calculate_tax(Decimal('1000')), Decimal('250'))

    def test_paye_monotonic_in_gross_pay(self):
        """Increasing gross pay never decreases tax owed."""
        previous = Decimal('0')
        for monthly in range(0, 30000, 137):
            result = self.calculator.compute(make_record(salary=Decimal(monthly * 12)))
            self.assertGreaterEqual(result.tax_deduction, previous)
            previous = result.tax_deduction

    def test_allowances_pretax_reduce_taxable_income(self):
        calculator = PayrollCalculator(make_config(allowances_pretax=True))
        result = calculator.compute(make_record(
            salary=Decimal('96000'),
            allowances=Decimal('2000'),
        ))
        self.assertEqual(result.gross_pay, Decimal('10000.00'))
        self.assertEqual(result.taxable_income, Decimal('8000.00'))
        # NHIMA still on full gross
        self.assertEqual(result.employee_nhima_deduction, Decimal('100.00'))

    def test_napsa_pretax_reduces_taxable_income(self):
        calculator = PayrollCalculator(make_config(napsa_pretax=True))
        result = calculator.compute(make_record(salary=Decimal('120000')))
        self.assertEqual(result.taxable_income, Decimal('9600.00'))

    def test_taxable_income_defaults_to_gross(self):
        result = self.calculator.compute(make_record(
            salary=Decimal('96000'),
            allowances=Decimal('2000'),
        ))
        self.assertEqual(result.taxable_income, result.gross_pay)

    def test_net_pay_floored_at_zero(self):
        """Deductions above earnings give zero net pay, not a negative one."""
        result = self.calculator.compute(make_record(
            salary=Decimal('12000'),
            deductions=Decimal('5000'),
        ))
        self.assertEqual(result.gross_pay, Decimal('1000.00'))
        self.assertEqual(result.net_pay, Decimal('0.00'))

    def test_reimbursements_added_to_net_not_gross(self):
        result = self.calculator.compute(make_record(
            salary=Decimal('48000'),
            reimbursements=Decimal('250.50'),
        ))
        self.assertEqual(result.gross_pay, Decimal('4000.00'))
        self.assertEqual(result.reimbursements, Decimal('250.50'))
        # NAPSA 200, NHIMA 40, PAYE 0
        self.assertEqual(result.net_pay, Decimal('4010.50'))

    def test_totals_reconcile_after_rounding(self):
        """Net and total deductions are consistent to the cent."""
        result = self.calculator.compute(make_record(
            salary=Decimal('100000'),
            deductions=Decimal('12.345'),
            reimbursements=Decimal('7.005'),
        ))
        self.assertEqual(result.gross_pay, Decimal('8333.33'))
        self.assertEqual(result.employee_nhima_deduction, Decimal('83.33'))
        self.assertEqual(
            result.total_deductions,
            result.tax_deduction
            + result.employee_napsa_deduction
            + result.employee_nhima_deduction
            + result.other_deductions
        )
        self.assertEqual(
            result.net_pay,
            result.gross_pay + result.reimbursements - result.total_deductions
        )

    def test_all_fields_have_two_decimal_places(self):
        result = self.calculator.compute(make_record(salary=Decimal('100000')))
        for value in (
            result.gross_pay, result.tax_deduction, result.employee_napsa_deduction,
            result.employee_nhima_deduction, result.total_deductions, result.net_pay,
        ):
            self.assertEqual(value.as_tuple().exponent, -2)

    def test_zero_salary(self):
        """Test calculation with zero salary."""
        result = self.calculator.compute(make_record(salary=Decimal('0')))
        self.assertEqual(result.gross_pay, Decimal('0'))
        self.assertEqual(result.tax_deduction, Decimal('0'))
        self.assertEqual(result.employee_napsa_deduction, Decimal('0'))
        self.assertEqual(result.net_pay, Decimal('0'))

    def test_module_level_compute(self):
        result = compute(make_record(salary=Decimal('120000')), make_config())
        self.assertEqual(result.net_pay, Decimal('8174.00'))


class RoundingTests(SimpleTestCase):

    def test_round_half_up(self):
        self.assertEqual(round_money(Decimal('0.125')), Decimal('0.13'))
        self.assertEqual(round_money(Decimal('2.675')), Decimal('2.68'))
        self.assertEqual(round_money(Decimal('2.674999')), Decimal('2.67'))

    def test_rounding_is_idempotent(self):
        for raw in ('0', '0.005', '1.115', '8333.3333333', '99999.995', '123.45'):
            once = round_money(Decimal(raw))
            self.assertEqual(round_money(once), once)


class TaxBandValidationTests(SimpleTestCase):

    def test_valid_bands(self):
        validate_tax_bands(TAX_BANDS)

    def test_no_bands(self):
        with self.assertRaises(InvalidPayrollConfig):
            validate_tax_bands([])

    def test_final_band_must_be_unbounded(self):
        with self.assertRaises(InvalidPayrollConfig):
            validate_tax_bands([TaxBracket(Decimal('5000'), Decimal('0.1'))])

    def test_only_final_band_unbounded(self):
        with self.assertRaises(InvalidPayrollConfig):
            validate_tax_bands([
                TaxBracket(None, Decimal('0.1')),
                TaxBracket(None, Decimal('0.2')),
            ])

    def test_upper_bounds_must_increase(self):
        with self.assertRaises(InvalidPayrollConfig):
            validate_tax_bands([
                TaxBracket(Decimal('5000'), Decimal('0.1')),
                TaxBracket(Decimal('5000'), Decimal('0.2')),
                TaxBracket(None, Decimal('0.3')),
            ])

    def test_rate_out_of_range(self):
        with self.assertRaises(InvalidPayrollConfig):
            validate_tax_bands([TaxBracket(None, Decimal('1.5'))])

    def test_statutory_config_rejects_bad_rates(self):
        with self.assertRaises(InvalidPayrollConfig):
            make_config(napsa_rate=Decimal('5'))
        with self.assertRaises(InvalidPayrollConfig):
            make_config(napsa_ceiling=Decimal('-1'))

    def test_statutory_config_is_frozen(self):
        config = make_config()
        with self.assertRaises(FrozenInstanceError):
            config.napsa_rate = Decimal('0.5')


class PayeeRecordTests(SimpleTestCase):

    def make_employee(self, **fields):
        values = {
            'first_name': 'Mwila',
            'last_name': 'Banda',
            'bank_name': 'Zanaco',
            'account_number': '0011223344',
        }
        values.update(fields)
        return Employee(**values)

    def test_negative_amounts_clamped_to_zero(self):
        record = PayeeRecord.from_employee(self.make_employee(
            salary=Decimal('-100'),
            bonus=Decimal('-5'),
            deductions=None,
        ))
        self.assertEqual(record.salary, Decimal('0'))
        self.assertEqual(record.bonus, Decimal('0'))
        self.assertEqual(record.deductions, Decimal('0'))

    def test_hourly_fields_zeroed_for_salaried(self):
        record = PayeeRecord.from_employee(self.make_employee(
            worker_type=Employee.WorkerType.SALARIED,
            salary=Decimal('120000'),
            hourly_rate=Decimal('20'),
            overtime=Decimal('8'),
        ))
        self.assertEqual(record.salary, Decimal('120000'))
        self.assertEqual(record.hourly_rate, Decimal('0'))
        self.assertEqual(record.overtime, Decimal('0'))

    def test_salary_zeroed_for_hourly(self):
        record = PayeeRecord.from_employee(self.make_employee(
            worker_type=Employee.WorkerType.HOURLY,
            salary=Decimal('120000'),
            hourly_rate=Decimal('20'),
            hours_worked=Decimal('160'),
        ))
        self.assertEqual(record.salary, Decimal('0'))
        self.assertEqual(record.hours_worked, Decimal('160'))

    def test_unknown_worker_type_rejected(self):
        with self.assertRaises(InvalidEmployeeRecord):
            PayeeRecord.from_employee(self.make_employee(worker_type='volunteer'))

    def test_bank_fields_stripped(self):
        record = PayeeRecord.from_employee(self.make_employee(bank_name='  ', branch_code=' 001 '))
        self.assertFalse(record.has_bank_details)
        self.assertEqual(record.branch_code, '001')

    def test_record_carries_name_and_id(self):
        employee = self.make_employee()
        record = PayeeRecord.from_employee(employee)
        self.assertEqual(record.employee_id, str(employee.pk))
        self.assertEqual(record.name, 'Mwila Banda')


class PayrollRunTestMixin:
    """Database fixtures for payroll run tests."""

    def setUp(self):
        self.config = PayrollConfig.objects.create(
            effective_from=datetime.date(2020, 1, 1),
            napsa_rate=Decimal('0.05'),
            napsa_ceiling=Decimal('8000'),
            nhima_rate=Decimal('0.01'),
            overtime_multiplier=Decimal('1.5'),
            working_hours=Decimal('8'),
        )
        for band in TAX_BANDS:
            TaxBand.objects.create(config=self.config, upper_bound=band.upper_bound, rate=band.rate)

    def create_employee(self, first_name, **fields):
        values = {
            'first_name': first_name,
            'last_name': 'Phiri',
            'worker_type': Employee.WorkerType.SALARIED,
            'status': Employee.Status.ACTIVE,
            'salary': Decimal('120000'),
            'bank_name': 'Zanaco',
            'account_number': f'ACC-{first_name}',
            'branch_code': '001',
        }
        values.update(fields)
        return Employee.objects.create(**values)

    def decode_rows(self, result):
        content = BankFileGenerator.decode(result.file_content).decode('utf-8')
        return list(csv.reader(io.StringIO(content)))


class ConfigProviderTests(PayrollRunTestMixin, TestCase):

    def test_active_config_snapshot(self):
        config = ConfigProvider().get_config(datetime.date(2026, 1, 31))
        self.assertEqual(config.napsa_ceiling, Decimal('8000'))
        self.assertEqual(len(config.tax_bands), 4)
        self.assertIsNone(config.tax_bands[-1].upper_bound)
        self.assertEqual(config.tax_bands[0].upper_bound, Decimal('5100'))

    def test_no_config_before_effective_date(self):
        self.assertIsNone(ConfigProvider().get_config(datetime.date(2019, 12, 31)))

    def test_inactive_config_ignored(self):
        self.config.is_active = False
        self.config.save()
        self.assertIsNone(ConfigProvider().get_config())

    def test_clean_rejects_bounded_final_band(self):
        self.config.tax_bands.filter(upper_bound__isnull=True).delete()
        with self.assertRaises(ValidationError):
            self.config.clean()


class PayrollProcessorTests(PayrollRunTestMixin, TestCase):
    """Tests for the PayrollProcessor service."""

    def test_successful_run(self):
        employee = self.create_employee('Alice')
        result = PayrollProcessor(actor='Payroll Admin').run()

        self.assertTrue(result.success)
        self.assertEqual(result.message, 'Payroll processed successfully.')
        self.assertEqual(result.employee_count, 1)
        self.assertEqual(result.total_amount, Decimal('8174.00'))

        payroll_run = PayrollRun.objects.get(pk=result.payroll_run_id)
        self.assertEqual(payroll_run.actor, 'Payroll Admin')
        self.assertEqual(payroll_run.employee_count, 1)
        self.assertEqual(payroll_run.total_amount, Decimal('8174.00'))
        self.assertEqual(list(payroll_run.employee_map()), [str(employee.pk)])

        row = payroll_run.employee_map()[str(employee.pk)]
        self.assertEqual(row.gross_pay, Decimal('10000.00'))
        self.assertEqual(row.tax_deduction, Decimal('1326.00'))
        self.assertEqual(row.employee_napsa_deduction, Decimal('400.00'))
        self.assertEqual(row.employee_nhima_deduction, Decimal('100.00'))
        self.assertEqual(row.net_pay, Decimal('8174.00'))

    def test_success_audit_entry(self):
        self.create_employee('Alice')
        PayrollProcessor(actor='Payroll Admin').run()

        self.assertEqual(AuditLog.objects.count(), 1)
        entry = AuditLog.objects.get()
        self.assertEqual(entry.actor, 'Payroll Admin')
        self.assertEqual(entry.action, AuditLog.Action.PAYROLL_RUN_EXECUTED)
        self.assertIn('Processed payroll for 1 employees', entry.details)
        self.assertIn('Total amount: 8174.00', entry.details)

    def test_default_actor_from_settings(self):
        self.create_employee('Alice')
        with self.settings(PAYROLL_DEFAULT_ACTOR='Scheduler'):
            result = run_payroll()
        self.assertEqual(PayrollRun.objects.get(pk=result.payroll_run_id).actor, 'Scheduler')
        self.assertEqual(AuditLog.objects.get().actor, 'Scheduler')

    def test_no_eligible_employees(self):
        """Scenario C: nobody to pay means no run and one failure audit entry."""
        self.create_employee('Alice', status=Employee.Status.INACTIVE)
        self.create_employee('Bob', bank_name='')
        self.create_employee('Chanda', account_number='')

        result = PayrollProcessor().run()

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'no_eligible_employees')
        self.assertEqual(result.message, 'No employees with complete bank details found.')
        self.assertIsNone(result.payroll_run_id)
        self.assertIsNone(result.file_content)
        self.assertEqual(PayrollRun.objects.count(), 0)

        self.assertEqual(AuditLog.objects.count(), 1)
        entry = AuditLog.objects.get()
        self.assertEqual(entry.action, AuditLog.Action.PAYROLL_RUN_FAILED)
        self.assertEqual(entry.details, result.message)

    def test_no_active_employees(self):
        self.create_employee('Alice', status=Employee.Status.SUSPENDED)
        result = PayrollProcessor().run()
        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'no_eligible_employees')
        self.assertEqual(result.message, 'No active employees found to process payroll for.')
        self.assertEqual(AuditLog.objects.count(), 1)

    def test_mixed_run_skips_missing_bank_details(self):
        """Scenario D: 5 active employees, 2 without bank details."""
        paid = [
            self.create_employee('Alice'),
            self.create_employee('Bwalya', worker_type=Employee.WorkerType.HOURLY,
                                 salary=0, hourly_rate=Decimal('20'),
                                 hours_worked=Decimal('160'), overtime=Decimal('10')),
            self.create_employee('Chanda', worker_type=Employee.WorkerType.CONTRACTOR,
                                 salary=Decimal('60000'), deductions=Decimal('500')),
        ]
        skipped = [
            self.create_employee('Daliso', bank_name=''),
            self.create_employee('Esther', account_number=''),
        ]
        self.create_employee('Febby', status=Employee.Status.INACTIVE)

        result = PayrollProcessor().run()

        self.assertTrue(result.success)
        self.assertEqual(result.employee_count, 3)
        self.assertEqual(result.skipped_count, 2)
        self.assertEqual(set(result.skipped_employee_ids), {str(e.pk) for e in skipped})
        self.assertIn('2 employees skipped', result.message)

        payroll_run = PayrollRun.objects.get(pk=result.payroll_run_id)
        self.assertEqual(payroll_run.employee_count, 3)
        self.assertEqual(payroll_run.skipped_count, 2)
        employee_map = payroll_run.employee_map()
        self.assertEqual(set(employee_map), {str(e.pk) for e in paid})
        for employee in skipped:
            self.assertNotIn(str(employee.pk), employee_map)

        rows = self.decode_rows(result)
        self.assertEqual(len(rows) - 1, 3)

    def test_total_amount_matches_sum_of_net_pay(self):
        self.create_employee('Alice', salary=Decimal('100000'), reimbursements=Decimal('12.34'))
        self.create_employee('Bwalya', salary=Decimal('77777.77'), bonus=Decimal('33.33'))
        self.create_employee('Chanda', worker_type=Employee.WorkerType.HOURLY,
                             hourly_rate=Decimal('17.35'), hours_worked=Decimal('151.5'),
                             overtime=Decimal('7.25'))
        self.create_employee('Daliso', salary=Decimal('12000'), deductions=Decimal('9000'))

        result = PayrollProcessor().run()
        payroll_run = PayrollRun.objects.get(pk=result.payroll_run_id)
        rows = list(payroll_run.employees.all())

        self.assertEqual(payroll_run.total_amount, sum(row.net_pay for row in rows))
        self.assertEqual(result.total_amount, payroll_run.total_amount)
        for row in rows:
            self.assertGreaterEqual(row.net_pay, Decimal('0'))

        file_total = sum(Decimal(row[4]) for row in self.decode_rows(result)[1:])
        self.assertEqual(file_total, payroll_run.total_amount)

    def test_config_missing(self):
        self.create_employee('Alice')
        self.config.tax_bands.all().delete()
        self.config.delete()

        result = PayrollProcessor().run()

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'config_missing')
        self.assertEqual(
            result.message,
            'Payroll configuration not found. Please set it up in Settings.'
        )
        self.assertEqual(PayrollRun.objects.count(), 0)
        self.assertEqual(AuditLog.objects.count(), 1)
        self.assertEqual(AuditLog.objects.get().action, AuditLog.Action.PAYROLL_RUN_FAILED)

    def test_invalid_config_is_unexpected_failure(self):
        self.create_employee('Alice')
        self.config.tax_bands.filter(upper_bound__isnull=True).delete()

        result = PayrollProcessor().run()

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'unexpected')
        self.assertEqual(result.message, 'An unexpected error occurred during payroll processing.')
        self.assertEqual(PayrollRun.objects.count(), 0)
        self.assertIn('unbounded', AuditLog.objects.get().details)

    def test_failure_after_persistence_rolls_back(self):
        """Nothing is kept when the run fails after records were written."""
        self.create_employee('Alice')

        with mock.patch.object(BankFileGenerator, 'render', side_effect=RuntimeError('disk full')):
            result = PayrollProcessor().run()

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'unexpected')
        self.assertNotIn('disk full', result.message)
        self.assertEqual(PayrollRun.objects.count(), 0)
        self.assertEqual(PayrollRunLock.objects.count(), 0)

        entry = AuditLog.objects.get()
        self.assertEqual(entry.action, AuditLog.Action.PAYROLL_RUN_FAILED)
        self.assertEqual(entry.details, 'disk full')

    def test_audit_failure_does_not_change_outcome(self):
        self.create_employee('Alice')

        with mock.patch.object(AuditLog, 'log', side_effect=RuntimeError('audit store down')):
            result = PayrollProcessor().run()

        self.assertTrue(result.success)
        self.assertEqual(PayrollRun.objects.count(), 1)
        self.assertEqual(AuditLog.objects.count(), 0)

    def test_audit_failure_on_failed_run(self):
        with mock.patch.object(AuditLog, 'log', side_effect=RuntimeError('audit store down')):
            result = PayrollProcessor().run()

        self.assertFalse(result.success)
        self.assertEqual(result.error_code, 'no_eligible_employees')

    def test_processing_order(self):
        """Rows follow the order employees were processed in."""
        self.create_employee('Chanda')
        self.create_employee('Alice')
        self.create_employee('Bwalya')

        result = PayrollProcessor().run()
        payroll_run = PayrollRun.objects.get(pk=result.payroll_run_id)

        names = [row.employee_name for row in payroll_run.employee_map().values()]
        self.assertEqual(names, ['Alice Phiri', 'Bwalya Phiri', 'Chanda Phiri'])
        file_names = [row[0] for row in self.decode_rows(result)[1:]]
        self.assertEqual(file_names, names)

    def test_repeat_runs_create_new_records(self):
        """A later run never changes an earlier one."""
        employee = self.create_employee('Alice')
        first = PayrollProcessor().run()

        employee.salary = Decimal('240000')
        employee.save()
        second = PayrollProcessor().run()

        self.assertNotEqual(first.payroll_run_id, second.payroll_run_id)
        self.assertEqual(PayrollRun.objects.count(), 2)
        self.assertEqual(PayrollRun.objects.get(pk=first.payroll_run_id).total_amount, Decimal('8174.00'))
        self.assertEqual(PayrollRunLock.objects.count(), 1)
        self.assertEqual(AuditLog.objects.count(), 2)

    def test_inactive_employee_with_invalid_record_is_ignored(self):
        """Only active employees are read, so a bad inactive record cannot fail the run."""
        alice = self.create_employee('Alice')
        self.create_employee('Zed', status=Employee.Status.INACTIVE, worker_type='')

        result = PayrollProcessor().run()

        self.assertTrue(result.success)
        self.assertEqual(result.employee_count, 1)
        self.assertEqual(result.skipped_count, 0)
        payroll_run = PayrollRun.objects.get(pk=result.payroll_run_id)
        self.assertEqual(list(payroll_run.employee_map()), [str(alice.pk)])

    def test_lock_period_uses_local_date(self):
        # 23:30 UTC on 31 January is 01:30 on 1 February in Lusaka
        run_date = datetime.datetime(2026, 1, 31, 23, 30, tzinfo=datetime.timezone.utc)
        with self.settings(TIME_ZONE='Africa/Lusaka'):
            lock = PayrollProcessor(actor='Payroll Admin').acquire_lock(run_date)
            file_name = BankFileGenerator(prefix='ACH').file_name(timezone.localdate(run_date))

        self.assertEqual(lock.period, '2026-02')
        self.assertEqual(lock.last_actor, 'Payroll Admin')
        self.assertEqual(file_name, 'ACH-2026-02-01.csv')

    def test_snapshot_is_immutable(self):
        self.create_employee('Alice')
        snapshot = PayrollProcessor().take_snapshot(timezone.now())
        self.assertEqual(len(snapshot.employees), 1)
        with self.assertRaises(FrozenInstanceError):
            snapshot.employees[0].salary = Decimal('1')

    def test_result_as_dict(self):
        self.create_employee('Alice')
        result = PayrollProcessor().run()
        payload = result.as_dict()
        self.assertEqual(
            set(payload),
            {'success', 'message', 'payrollRunId', 'fileContent'}
        )
        self.assertTrue(payload['fileContent'].startswith('data:text/csv;base64,'))

    def test_failed_result_as_dict(self):
        payload = PayrollProcessor().run().as_dict()
        self.assertEqual(set(payload), {'success', 'message'})
        self.assertFalse(payload['success'])


class PayrollRunImmutabilityTests(PayrollRunTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.create_employee('Alice')
        result = PayrollProcessor().run()
        self.payroll_run = PayrollRun.objects.get(pk=result.payroll_run_id)

    def test_run_cannot_be_updated(self):
        self.payroll_run.total_amount = Decimal('0')
        with self.assertRaises(ImmutableRecordError):
            self.payroll_run.save()
        self.payroll_run.refresh_from_db()
        self.assertEqual(self.payroll_run.total_amount, Decimal('8174.00'))

    def test_run_cannot_be_deleted(self):
        with self.assertRaises(ImmutableRecordError):
            self.payroll_run.delete()

    def test_run_employee_cannot_be_updated(self):
        row = self.payroll_run.employees.get()
        row.net_pay = Decimal('1')
        with self.assertRaises(ImmutableRecordError):
            row.save()


class BankFileGeneratorTests(PayrollRunTestMixin, TestCase):

    def test_header_and_row_format(self):
        self.create_employee('Alice', branch_code='')
        result = PayrollProcessor().run()
        content = BankFileGenerator.decode(result.file_content).decode('utf-8')

        lines = content.splitlines()
        self.assertEqual(lines[0], 'EmployeeName,BankName,AccountNumber,BranchCode,Amount')
        self.assertEqual(lines[1], 'Alice Phiri,Zanaco,ACC-Alice,,8174.00')
        self.assertEqual(len(lines), 2)

    def test_render_matches_encoded_content(self):
        self.create_employee('Alice')
        result = PayrollProcessor().run()
        payroll_run = PayrollRun.objects.get(pk=result.payroll_run_id)

        rendered = BankFileGenerator().render(payroll_run)
        self.assertEqual(BankFileGenerator.decode(result.file_content), rendered)
        self.assertEqual(BankFileGenerator.encode(rendered), result.file_content)

    def test_amount_has_two_decimals_and_no_separator(self):
        self.create_employee('Alice', worker_type=Employee.WorkerType.CONTRACTOR,
                             salary=Decimal('24000000'))
        result = PayrollProcessor().run()
        rows = self.decode_rows(result)
        self.assertEqual(rows[1][4], '2000000.00')

    def test_fields_with_commas_are_quoted(self):
        self.create_employee('Alice', last_name='Phiri, Jr', bank_name='Bank "A", Ltd')
        result = PayrollProcessor().run()
        content = BankFileGenerator.decode(result.file_content).decode('utf-8')

        self.assertIn('"Alice Phiri, Jr","Bank ""A"", Ltd",ACC-Alice,001,8174.00', content)
        rows = self.decode_rows(result)
        self.assertEqual(rows[1][0], 'Alice Phiri, Jr')
        self.assertEqual(len(rows[1]), 5)

    def test_file_name_uses_run_date(self):
        self.create_employee('Alice')
        result = PayrollProcessor().run()
        payroll_run = PayrollRun.objects.get(pk=result.payroll_run_id)
        expected = f"ACH-PAYROLL-{timezone.localdate(payroll_run.run_date):%Y-%m-%d}.csv"
        self.assertEqual(payroll_run.ach_file_name, expected)

    def test_file_name_prefix_setting(self):
        with self.settings(PAYROLL_ACH_FILE_PREFIX='EFT'):
            generator = BankFileGenerator()
        self.assertEqual(generator.file_name(datetime.date(2026, 10, 31)), 'EFT-2026-10-31.csv')


class RunPayrollCommandTests(PayrollRunTestMixin, TestCase):

    def test_command_success(self):
        self.create_employee('Alice')
        out = io.StringIO()
        call_command('run_payroll', '--actor', 'Scheduler', stdout=out)

        self.assertIn('Payroll processed successfully.', out.getvalue())
        self.assertEqual(PayrollRun.objects.get().actor, 'Scheduler')

    def test_command_writes_transfer_file(self):
        self.create_employee('Alice')
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'payroll.csv')
            call_command('run_payroll', '--output', path, stdout=io.StringIO())
            with open(path, encoding='utf-8') as f:
                lines = f.read().splitlines()

        self.assertEqual(lines[0], 'EmployeeName,BankName,AccountNumber,BranchCode,Amount')
        self.assertEqual(len(lines), 2)

    def test_command_failure(self):
        with self.assertRaises(CommandError) as ctx:
            call_command('run_payroll', stdout=io.StringIO())
        self.assertIn('No active employees', str(ctx.exception))
