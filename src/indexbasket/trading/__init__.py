"""Trading adapters and swap routing."""
