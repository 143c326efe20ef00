"""FlowTask: a to-do list core with mock and record-store backends."""

__version__ = "0.1.0"
