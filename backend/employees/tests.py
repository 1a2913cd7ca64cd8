"""
Tests for employee payroll eligibility.
"""
from django.test import TestCase

from employees.models import Employee


class EmployeeEligibilityTests(TestCase):

    def create_employee(self, **fields):
        values = {
            'first_name': 'Mwila',
            'last_name': 'Banda',
            'bank_name': 'Zanaco',
            'account_number': '0011223344',
        }
        values.update(fields)
        return Employee.objects.create(**values)

    def test_active_with_bank_details_is_eligible(self):
        self.assertTrue(self.create_employee().is_payroll_eligible)

    def test_branch_code_is_optional(self):
        self.assertTrue(self.create_employee(branch_code='').is_payroll_eligible)

    def test_missing_bank_name(self):
        employee = self.create_employee(bank_name='')
        self.assertFalse(employee.has_bank_details)
        self.assertFalse(employee.is_payroll_eligible)

    def test_blank_account_number(self):
        employee = self.create_employee(account_number='   ')
        self.assertFalse(employee.has_bank_details)
        self.assertFalse(employee.is_payroll_eligible)

    def test_non_active_statuses_not_eligible(self):
        for status in (
            Employee.Status.INACTIVE,
            Employee.Status.SUSPENDED,
            Employee.Status.ON_LEAVE,
            Employee.Status.SICK,
            Employee.Status.PENDING_APPROVAL,
        ):
            employee = self.create_employee(status=status)
            self.assertTrue(employee.has_bank_details)
            self.assertFalse(employee.is_payroll_eligible, status)

    def test_full_name(self):
        self.assertEqual(self.create_employee().get_full_name(), 'Mwila Banda')
        self.assertEqual(self.create_employee(last_name='').get_full_name(), 'Mwila')
