"""
Payroll exceptions.

PayrollRunError subclasses are expected run outcomes; their message is shown
to the caller as-is. Any other PayrollError is reported as an unexpected
failure.
"""


class PayrollError(Exception):
    """Base class for payroll errors."""


class InvalidPayrollConfig(PayrollError):
    """Statutory configuration cannot be used (e.g. malformed tax bands)."""


class InvalidEmployeeRecord(PayrollError):
    """Employee record cannot be mapped to a pay model."""


class PayrollRunError(PayrollError):
    code = 'run_failed'
    default_message = 'Payroll run failed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ConfigMissing(PayrollRunError):
    code = 'config_missing'
    default_message = 'Payroll configuration not found. Please set it up in Settings.'


class NoEligibleEmployees(PayrollRunError):
    code = 'no_eligible_employees'
    default_message = 'No employees eligible for payroll were found.'
