"""Cache layer for LabFormula."""

from labformula.cache.formula_cache import FormulaCache, clear_formula_cache, formula_cache

__all__ = ["FormulaCache", "clear_formula_cache", "formula_cache"]
