"""
LabFormula - formula validation engine for lab data tables.

Parses user-authored comparison formulas, evaluates them per column
against tabular lab data and produces highlighted cells.
"""

__version__ = "0.1.0"
__app_name__ = "LabFormula"
