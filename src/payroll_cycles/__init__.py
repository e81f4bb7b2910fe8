"""Payroll cycle calculation and finalization engine."""

__version__ = "1.0.0"
