"""Coverage trace bookkeeping and a state machine for coverage test runs."""

__version__ = "0.1.0"
__all__ = ["traces", "statemachine", "instrumented"]