"""
Workflow State Machine Engine

A finite-state-machine workflow engine: validated workflow definitions,
guarded action execution and a full audit trail for every running instance.
"""

__version__ = "1.0.0"
