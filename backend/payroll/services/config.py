"""
Payroll Config Provider
Reads the statutory configuration in force and freezes it for a run.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence, Tuple
import logging

from payroll.exceptions import InvalidPayrollConfig

logger = logging.getLogger('payroll')


@dataclass(frozen=True)
class TaxBracket:
    """PAYE band defined by its upper bound (None for the final band) and rate."""
    upper_bound: Optional[Decimal]
    rate: Decimal


@dataclass(frozen=True)
class StatutoryConfig:
    """Snapshot of the statutory configuration used for one payroll run."""
    tax_bands: Tuple[TaxBracket, ...]
    napsa_rate: Decimal
    napsa_ceiling: Decimal
    nhima_rate: Decimal
    overtime_multiplier: Decimal
    working_hours: Decimal
    employer_napsa_rate: Optional[Decimal] = None
    employer_nhima_rate: Optional[Decimal] = None
    allowances_pretax: bool = False
    napsa_pretax: bool = False

    def __post_init__(self):
        validate_tax_bands(self.tax_bands)
        for name in ('napsa_rate', 'nhima_rate', 'employer_napsa_rate', 'employer_nhima_rate'):
            value = getattr(self, name)
            if value is not None and not (0 <= value <= 1):
                raise InvalidPayrollConfig(f"{name} must be between 0 and 1, got {value}")
        if self.napsa_ceiling < 0:
            raise InvalidPayrollConfig(f"napsa_ceiling must not be negative, got {self.napsa_ceiling}")
        if self.overtime_multiplier < 0:
            raise InvalidPayrollConfig(
                f"overtime_multiplier must not be negative, got {self.overtime_multiplier}"
            )

    @property
    def effective_employer_napsa_rate(self) -> Decimal:
        if self.employer_napsa_rate is None:
            return self.napsa_rate
        return self.employer_napsa_rate

    @property
    def effective_employer_nhima_rate(self) -> Decimal:
        if self.employer_nhima_rate is None:
            return self.nhima_rate
        return self.employer_nhima_rate

    @classmethod
    def from_model(cls, config) -> 'StatutoryConfig':
        return cls(
            tax_bands=tuple(
                TaxBracket(upper_bound=band.upper_bound, rate=band.rate)
                for band in config.tax_bands.all()
            ),
            napsa_rate=config.napsa_rate,
            napsa_ceiling=config.napsa_ceiling,
            nhima_rate=config.nhima_rate,
            overtime_multiplier=config.overtime_multiplier,
            working_hours=config.working_hours,
            employer_napsa_rate=config.employer_napsa_rate,
            employer_nhima_rate=config.employer_nhima_rate,
            allowances_pretax=config.allowances_pretax,
            napsa_pretax=config.napsa_pretax,
        )


def validate_tax_bands(bands: Sequence[TaxBracket]) -> None:
    """
    Check that bands are contiguous and ascending.

    Bands start at zero, every band but the last has an upper bound strictly
    greater than the one before it, and the last band is unbounded.

    Raises:
        InvalidPayrollConfig: describing the first problem found
    """
    if not bands:
        raise InvalidPayrollConfig("At least one tax band is required")

    previous = Decimal('0')
    for index, band in enumerate(bands):
        if not (0 <= band.rate <= 1):
            raise InvalidPayrollConfig(f"Tax band {index + 1} rate must be between 0 and 1, got {band.rate}")

        is_last = index == len(bands) - 1
        if band.upper_bound is None:
            if not is_last:
                raise InvalidPayrollConfig(f"Only the final tax band may be unbounded (band {index + 1})")
            continue

        if is_last:
            raise InvalidPayrollConfig("The final tax band must be unbounded")
        if band.upper_bound <= previous:
            raise InvalidPayrollConfig(
                f"Tax band upper bounds must increase: band {index + 1} ({band.upper_bound}) "
                f"is not above {previous}"
            )
        previous = band.upper_bound


class ConfigProvider:
    """Supplies the statutory configuration for a run. Read only."""

    def get_config(self, on_date=None) -> Optional[StatutoryConfig]:
        from payroll.models import PayrollConfig

        config = PayrollConfig.get_active(on_date)
        if config is None:
            logger.warning(f"No active payroll configuration for {on_date or 'today'}")
            return None

        return StatutoryConfig.from_model(config)
