"""
Novated Lease - Reference Tables

Year-keyed Australian reference data used by the novated lease engine:
- Resident income tax brackets per financial year
- Medicare levy rate per financial year
- ATO minimum residual percentages by lease year
- FBT statutory formula configuration
- Luxury car tax (LCT) rate and thresholds per financial year
- Engine assumptions (rounding, default rates, warning ratios, rate search)

Tables are loaded from JSON once per process, validated into frozen
pydantic models and injected into the engine. Tests build their own
ReferenceTables instead of touching the packaged files.
"""

import json
import logging
import re
from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(__file__).resolve().parents[2] / "data" / "au"

FINANCIAL_YEAR_PATTERN = re.compile(r"^FY\d{4}-\d{2}$")


class ReferenceDataError(Exception):
    """Raised when a reference table file is missing or malformed."""


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


# ==================== TABLE SCHEMAS ====================

class TaxBracket(FrozenModel):
    """One resident income tax bracket"""
    threshold: float = Field(..., ge=0)
    upper_threshold: Optional[float] = None  # None for the top bracket
    base_tax: float = Field(..., ge=0)
    marginal_rate: float = Field(..., ge=0, le=1)


class TaxBracketTable(FrozenModel):
    financial_year: str
    source: str = ""
    brackets: Tuple[TaxBracket, ...]

    @field_validator("financial_year")
    @classmethod
    def _check_year_label(cls, value: str) -> str:
        if not FINANCIAL_YEAR_PATTERN.match(value):
            raise ValueError(f"financial year must look like FY2024-25, got {value!r}")
        return value

    @field_validator("brackets")
    @classmethod
    def _check_sorted(cls, value: Tuple[TaxBracket, ...]) -> Tuple[TaxBracket, ...]:
        if not value:
            raise ValueError("at least one tax bracket is required")
        thresholds = [bracket.threshold for bracket in value]
        if thresholds != sorted(thresholds):
            raise ValueError("tax brackets must be sorted by threshold")
        if value[-1].upper_threshold is not None:
            raise ValueError("the top tax bracket must have no upper threshold")
        return value


class MedicareLevyTable(FrozenModel):
    financial_year: str
    source: str = ""
    levy_rate: float = Field(..., ge=0, le=1)


class ResidualTable(FrozenModel):
    source: str = ""
    residual_percent_by_lease_year: Dict[int, float]

    @field_validator("residual_percent_by_lease_year")
    @classmethod
    def _check_percentages(cls, value: Dict[int, float]) -> Dict[int, float]:
        for lease_year, pct in value.items():
            if not 0 <= pct < 1:
                raise ValueError(f"residual percentage for year {lease_year} must be in [0, 1)")
        return value


class FbtConfig(FrozenModel):
    source: str = ""
    method: str = "statutory_formula"
    statutory_rate: float = Field(..., ge=0, le=1)
    default_fbt_year_days: int = 365
    phev_general_exemption_ended_on: date

    @field_validator("default_fbt_year_days")
    @classmethod
    def _check_year_days(cls, value: int) -> int:
        if value not in (365, 366):
            raise ValueError("default FBT year days must be 365 or 366")
        return value


class LctThresholds(FrozenModel):
    """LCT thresholds (GST inclusive) for one financial year"""
    fuel_efficient: float = Field(..., gt=0)
    other: float = Field(..., gt=0)
    note: Optional[str] = None


class LctTable(FrozenModel):
    source: str = ""
    rate: float = Field(..., ge=0, le=1)
    thresholds_by_financial_year: Dict[str, LctThresholds]


class EngineAssumptions(FrozenModel):
    """Constants the engine applies when the scenario is silent"""
    source: str = ""
    rounding_precision_dp: int = Field(default=2, ge=0, le=6)
    default_quote_interest_rate_pct: float = Field(default=9.5, ge=0)
    default_finance_payments_per_year: int = 12
    high_deduction_warning_ratio_of_salary: float = Field(default=0.5, gt=0)
    quote_model_variance_tolerance_ratio: float = Field(default=0.05, ge=0)
    quote_model_variance_moderate_ratio: float = Field(default=0.15, ge=0)

    # Bisection bounds are annual rates as fractions (0.30 = 30%)
    rate_search_lower_bound: float = 0.0
    rate_search_upper_bound: float = 0.30
    rate_search_max_iterations: int = Field(default=100, ge=1)
    rate_search_tolerance: float = Field(default=0.01, gt=0)


# ==================== REGISTRY ====================

class ReferenceTables(FrozenModel):
    """
    Immutable registry of every table the engine reads.

    Lookups by financial year return None for unsupported years so the
    validator can report them as issues.
    """
    tax_brackets_by_year: Dict[str, TaxBracketTable]
    medicare_levy_by_year: Dict[str, MedicareLevyTable]
    residuals: ResidualTable
    fbt: FbtConfig
    lct: LctTable
    assumptions: EngineAssumptions = Field(default_factory=EngineAssumptions)

    def supported_years(self) -> List[str]:
        """Years with both a tax bracket table and a Medicare levy table."""
        return sorted(set(self.tax_brackets_by_year) & set(self.medicare_levy_by_year))

    def tax_brackets_for(self, financial_year: str) -> Optional[TaxBracketTable]:
        return self.tax_brackets_by_year.get(financial_year)

    def medicare_levy_for(self, financial_year: str) -> Optional[MedicareLevyTable]:
        return self.medicare_levy_by_year.get(financial_year)

    def lct_thresholds_for(self, financial_year: str) -> Optional[LctThresholds]:
        return self.lct.thresholds_by_financial_year.get(financial_year)

    def residual_percent_for(self, lease_years: int) -> Optional[float]:
        return self.residuals.residual_percent_by_lease_year.get(lease_years)

    def year_summary(self, financial_year: str) -> Optional[dict]:
        """Everything the engine uses for one financial year, as plain data."""
        tax_table = self.tax_brackets_for(financial_year)
        levy_table = self.medicare_levy_for(financial_year)
        if tax_table is None or levy_table is None:
            return None
        lct_thresholds = self.lct_thresholds_for(financial_year)
        return {
            "financial_year": financial_year,
            "tax_brackets": tax_table.model_dump(),
            "medicare_levy": levy_table.model_dump(),
            "lct": {
                "rate": self.lct.rate,
                "thresholds": lct_thresholds.model_dump() if lct_thresholds else None,
            },
            "residuals": self.residuals.model_dump(),
            "fbt": self.fbt.model_dump(mode="json"),
        }


# ==================== LOADING ====================

def _read_json(path: Path) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ReferenceDataError(f"Reference table not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ReferenceDataError(f"Reference table is not valid JSON: {path} ({e})") from e


def _load_year_tables(directory: Path, model):
    tables = {}
    for path in sorted(directory.glob("FY*.json")):
        table = model.model_validate(_read_json(path))
        if table.financial_year != path.stem:
            raise ReferenceDataError(
                f"{path.name} declares financial year {table.financial_year}"
            )
        tables[table.financial_year] = table
    return tables


def load_reference_tables(data_dir: Optional[Path] = None) -> ReferenceTables:
    """
    Load and validate every reference table under data_dir.

    Raises:
        ReferenceDataError: a file is missing, unreadable or fails schema checks
    """
    base = Path(data_dir) if data_dir else DEFAULT_DATA_DIR
    logger.debug(f"Loading novated lease reference tables from {base}")

    try:
        tables = ReferenceTables(
            tax_brackets_by_year=_load_year_tables(base / "tax" / "brackets", TaxBracketTable),
            medicare_levy_by_year=_load_year_tables(base / "medicare-levy", MedicareLevyTable),
            residuals=ResidualTable.model_validate(
                _read_json(base / "residuals" / "ato-car-lease-residuals.json")
            ),
            fbt=FbtConfig.model_validate(_read_json(base / "fbt" / "config.json")),
            lct=LctTable.model_validate(_read_json(base / "lct" / "thresholds.json")),
            assumptions=EngineAssumptions.model_validate(
                _read_json(base / "novated-lease" / "assumptions.json")
            ),
        )
    except ValidationError as e:
        raise ReferenceDataError(f"Reference tables under {base} failed validation: {e}") from e

    logger.info(f"Loaded reference tables for {', '.join(tables.supported_years())}")
    return tables


@lru_cache(maxsize=1)
def get_reference_tables() -> ReferenceTables:
    """
    Get the process-wide reference tables.
    Loaded once from REFERENCE_DATA_DIR (or the packaged data) and cached.
    """
    from novated_core.config import get_settings

    override = get_settings().REFERENCE_DATA_DIR
    return load_reference_tables(Path(override) if override else None)
