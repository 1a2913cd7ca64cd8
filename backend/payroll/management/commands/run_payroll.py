from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from payroll.services.bank_file import BankFileGenerator
from payroll.services.processor import run_payroll


class Command(BaseCommand):
    help = "Run payroll for all eligible employees and generate the bank transfer file"

    def add_arguments(self, parser):
        parser.add_argument(
            "--actor",
            help="Name recorded in the audit log (defaults to PAYROLL_DEFAULT_ACTOR)",
        )
        parser.add_argument(
            "--output",
            help="Write the transfer file (CSV) to this path",
        )

    def handle(self, *args, **options):
        result = run_payroll(actor=options.get("actor"))

        if not result.success:
            raise CommandError(result.message)

        self.stdout.write(self.style.SUCCESS(result.message))
        self.stdout.write(
            f"Run {result.payroll_run_id}: {result.employee_count} employees, "
            f"total {result.total_amount:.2f}"
        )
        if result.skipped_employee_ids:
            self.stdout.write(f"Skipped: {', '.join(result.skipped_employee_ids)}")

        output = options.get("output")
        if output:
            Path(output).write_bytes(BankFileGenerator.decode(result.file_content))
            self.stdout.write(f"Transfer file written to {output}")
