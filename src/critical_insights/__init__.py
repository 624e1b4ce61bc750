"""Critical insights: fault-tolerant coordination of LLM analysis tasks."""

__version__ = "0.1.0"
