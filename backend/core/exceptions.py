"""
Shared exceptions for HRS payroll engine.
"""


class ImmutableRecordError(Exception):
    """Raised when a record that is append-only is updated or deleted."""
