"""
Budget Kernel

Persistence and pure domain core for a personal budget ledger:
- Budgets, append-only ledger entries, weighted auto-balance sources
- Row-locked payroll store operations
- Largest-remainder allocation in integer minor units
- Injectable clock and cancellation token
"""

__version__ = "0.1.0"
