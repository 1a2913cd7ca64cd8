"""
Payroll Calculator Service
Implements statutory deductions: PAYE, NAPSA, NHIMA
Pure computation: no database access, same inputs give the same breakdown.
"""
from decimal import Decimal, ROUND_HALF_UP
from dataclasses import dataclass
import logging

from .config import StatutoryConfig
from .records import PayeeRecord, HOURLY, CONTRACTOR, ZERO

logger = logging.getLogger('payroll')

MONTHS_PER_YEAR = Decimal('12')
CENT = Decimal('0.01')


def round_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places, half up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PayrollBreakdown:
    """Gross-to-net result for one employee. Every amount has 2 decimal places."""
    # Earnings
    base_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal

    # Tax calculation
    taxable_income: Decimal
    tax_deduction: Decimal

    # Statutory deductions
    employee_napsa_deduction: Decimal
    employer_napsa_contribution: Decimal
    employee_nhima_deduction: Decimal
    employer_nhima_contribution: Decimal

    # Other
    other_deductions: Decimal
    reimbursements: Decimal

    # Totals
    total_deductions: Decimal
    net_pay: Decimal


@dataclass(frozen=True)
class GrossPay:
    base_pay: Decimal
    overtime_pay: Decimal
    gross_pay: Decimal


class PayrollCalculator:
    """
    Gross-to-net calculator for salaried, hourly and contractor workers.

    Calculation Steps:
    1. Base pay: salary / 12 (salaried, contractor) or hours x rate (hourly)
    2. Overtime (hourly only): overtime hours x rate x overtime multiplier
    3. Gross Pay = Base + Overtime + Bonus + Allowances
    4. NAPSA = min(Gross, ceiling) x rate
    5. NHIMA = Gross x rate
    6. PAYE on taxable income using progressive tax bands
    7. Total Deductions = PAYE + NAPSA + NHIMA + other deductions
    8. Net Pay = Gross + Reimbursements - Total Deductions, never below zero

    Contractors pay no statutory deductions.

    Intermediate values keep full precision. Each breakdown field is rounded
    once; totals are summed from the rounded fields so that they reconcile
    to the cent.
    """

    def __init__(self, config: StatutoryConfig):
        self.config = config

    def calculate_gross(self, record: PayeeRecord) -> GrossPay:
        if record.worker_type == HOURLY:
            base_pay = record.hours_worked * record.hourly_rate
            overtime_pay = record.overtime * record.hourly_rate * self.config.overtime_multiplier
        else:
            # Salaried and contractor: annual amount paid monthly
            base_pay = record.salary / MONTHS_PER_YEAR
            overtime_pay = ZERO

        gross_pay = base_pay + overtime_pay + record.bonus + record.allowances
        logger.debug(
            f"Gross Pay: {gross_pay} (Base: {base_pay}, Overtime: {overtime_pay}, "
            f"Bonus: {record.bonus}, Allowances: {record.allowances})"
        )
        return GrossPay(base_pay=base_pay, overtime_pay=overtime_pay, gross_pay=gross_pay)

    def calculate_napsa(self, gross_pay: Decimal, rate: Decimal = None) -> Decimal:
        """
        Calculate NAPSA contribution.

        Only gross pay up to the ceiling is contributable, so the contribution
        never exceeds ceiling x rate.

        Args:
            gross_pay: Monthly gross pay
            rate: Contribution rate; the employee rate if not given

        Returns:
            NAPSA contribution (unrounded)
        """
        if rate is None:
            rate = self.config.napsa_rate
        contributable = min(max(gross_pay, ZERO), self.config.napsa_ceiling)
        napsa = contributable * rate
        logger.debug(f"NAPSA: {napsa} ({rate} of {contributable})")
        return napsa

    def calculate_nhima(self, gross_pay: Decimal, rate: Decimal = None) -> Decimal:
        """Calculate NHIMA contribution (uncapped)."""
        if rate is None:
            rate = self.config.nhima_rate
        nhima = max(gross_pay, ZERO) * rate
        logger.debug(f"NHIMA: {nhima} ({rate} of {gross_pay})")
        return nhima

    def calculate_tax(self, taxable_income: Decimal) -> Decimal:
        """
        Calculate PAYE using progressive tax bands.

        Income in (previous upper bound, this upper bound] is taxed at this
        band's rate; the first band starts at zero and the last band takes
        everything above the previous bound.

        Args:
            taxable_income: Monthly taxable income

        Returns:
            Tax charged (unrounded)
        """
        if taxable_income <= 0:
            return ZERO

        tax = ZERO
        previous_limit = ZERO

        for band in self.config.tax_bands:
            if band.upper_bound is None or taxable_income <= band.upper_bound:
                band_income = taxable_income - previous_limit
                tax += band_income * band.rate
                logger.debug(f"Tax Band: income={band_income}, rate={band.rate}")
                break

            band_income = band.upper_bound - previous_limit
            tax += band_income * band.rate
            logger.debug(f"Tax Band: income={band_income}, rate={band.rate}")
            previous_limit = band.upper_bound

        logger.debug(f"Total Tax Charged: {tax}")
        return tax

    def taxable_income(self, record: PayeeRecord, gross_pay: Decimal, napsa: Decimal) -> Decimal:
        taxable = gross_pay
        if self.config.allowances_pretax:
            taxable -= record.allowances
        if self.config.napsa_pretax:
            taxable -= napsa
        return max(taxable, ZERO)

    def compute(self, record: PayeeRecord) -> PayrollBreakdown:
        """
        Calculate complete payroll for an employee.

        Args:
            record: Employee compensation inputs

        Returns:
            PayrollBreakdown with all computed values
        """
        gross = self.calculate_gross(record)
        gross_pay = gross.gross_pay

        if record.worker_type == CONTRACTOR:
            employee_napsa = employer_napsa = ZERO
            employee_nhima = employer_nhima = ZERO
            taxable_income = ZERO
            tax = ZERO
        else:
            employee_napsa = self.calculate_napsa(gross_pay)
            employer_napsa = self.calculate_napsa(gross_pay, self.config.effective_employer_napsa_rate)
            employee_nhima = self.calculate_nhima(gross_pay)
            employer_nhima = self.calculate_nhima(gross_pay, self.config.effective_employer_nhima_rate)
            taxable_income = self.taxable_income(record, gross_pay, employee_napsa)
            tax = self.calculate_tax(taxable_income)
            logger.info(f"PAYE: {tax} (Taxable: {taxable_income})")

        gross_pay = round_money(gross_pay)
        tax = round_money(tax)
        employee_napsa = round_money(employee_napsa)
        employee_nhima = round_money(employee_nhima)
        other_deductions = round_money(record.deductions)
        reimbursements = round_money(record.reimbursements)

        total_deductions = tax + employee_napsa + employee_nhima + other_deductions
        net_pay = max(gross_pay + reimbursements - total_deductions, ZERO)
        if net_pay == 0 and total_deductions > gross_pay + reimbursements:
            logger.warning(
                f"Deductions {total_deductions} exceed earnings {gross_pay + reimbursements} "
                f"for {record.name}; net pay floored at zero"
            )

        logger.info(f"Net Pay: {net_pay} (Gross: {gross_pay}, Deductions: {total_deductions})")

        return PayrollBreakdown(
            base_pay=round_money(gross.base_pay),
            overtime_pay=round_money(gross.overtime_pay),
            gross_pay=gross_pay,
            taxable_income=round_money(taxable_income),
            tax_deduction=tax,
            employee_napsa_deduction=employee_napsa,
            employer_napsa_contribution=round_money(employer_napsa),
            employee_nhima_deduction=employee_nhima,
            employer_nhima_contribution=round_money(employer_nhima),
            other_deductions=other_deductions,
            reimbursements=reimbursements,
            total_deductions=total_deductions,
            net_pay=round_money(net_pay),
        )


def compute(record: PayeeRecord, config: StatutoryConfig) -> PayrollBreakdown:
    """Gross-to-net breakdown for one employee under the given configuration."""
    return PayrollCalculator(config).compute(record)
