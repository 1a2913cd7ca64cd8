"""
Bank File Generator
Renders a payroll run into the CSV transfer file the bank consumes.
"""
import base64
import csv
import io
import logging

from django.conf import settings

logger = logging.getLogger('payroll')

HEADER = ('EmployeeName', 'BankName', 'AccountNumber', 'BranchCode', 'Amount')
CONTENT_TYPE = 'text/csv'


class BankFileGenerator:
    """
    CSV transfer file: one row per processed employee, in processing order.

    Fields containing commas, quotes or line breaks are quoted (RFC 4180).
    """

    def __init__(self, prefix=None):
        self.prefix = prefix or getattr(settings, 'PAYROLL_ACH_FILE_PREFIX', 'ACH-PAYROLL')

    def file_name(self, run_date) -> str:
        return f"{self.prefix}-{run_date:%Y-%m-%d}.csv"

    def rows(self, payroll_run):
        for entry in payroll_run.employees.order_by('position'):
            yield (
                entry.employee_name,
                entry.bank_name,
                entry.account_number,
                entry.branch_code or '',
                f"{entry.net_pay:.2f}",
            )

    def render(self, payroll_run) -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator='\n')
        writer.writerow(HEADER)

        count = 0
        for row in self.rows(payroll_run):
            writer.writerow(row)
            count += 1

        logger.info(f"Bank file {payroll_run.ach_file_name}: {count} rows")
        return buffer.getvalue().encode('utf-8')

    @staticmethod
    def encode(content: bytes) -> str:
        """Data URI with the base64 encoded file."""
        return f"data:{CONTENT_TYPE};base64,{base64.b64encode(content).decode('ascii')}"

    @staticmethod
    def decode(data_uri: str) -> bytes:
        _, _, payload = data_uri.partition(';base64,')
        return base64.b64decode(payload)
