"""Business services for payroll cycles."""
