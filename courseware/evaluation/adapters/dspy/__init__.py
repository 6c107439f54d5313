"""DSPy programs for judged code review."""
