"""
Timesheet Kernel - submission lifecycle and approval workflow engine.

A relational, single-writer-per-row workflow core with:
- One submission per employee per calendar month
- Idempotent submission creation
- Role-guarded status transitions with optimistic re-checks
- Manager re-assignment propagation
- Fire-and-forget notification records
"""

__version__ = "0.1.0"
