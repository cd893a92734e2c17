"""healthwatch — HTTP health watchdog that runs a remediation command on failure."""

__version__ = "0.1.0"
