"""Core domain models: configuration, errors, results and logging."""
