"""Portfolio module for basket holdings, share pricing and fees."""
