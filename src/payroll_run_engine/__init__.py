"""Payroll run engine: drafts, payslips, exceptions and approvals."""

__version__ = "0.1.0"
