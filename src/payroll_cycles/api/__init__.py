"""HTTP API for payroll cycles."""
