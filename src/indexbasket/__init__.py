"""Index basket engine: proportional swap planning, share pricing and fee accrual."""

__version__ = "0.1.0"
