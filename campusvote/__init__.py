"""Campus election voting core: ballot guard, vote ledger and results API."""

__version__ = "0.1.0"
