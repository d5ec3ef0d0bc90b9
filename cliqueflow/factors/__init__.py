"""Factor implementations for CliqueFlow."""

from .base import Factor
from .table import DenseFactor, LogTableFactor, TableFactor

__all__ = ["DenseFactor", "Factor", "LogTableFactor", "TableFactor"]
