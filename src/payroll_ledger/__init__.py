"""Payroll ledger: monthly payroll records with historical snapshots."""

__version__ = "0.1.0"
