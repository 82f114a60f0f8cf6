"""
Pocket Ledger - balance consistency engine for categorized donations and expenses.

Records inflows (donations) and outflows (expenses) as transaction headers
owning one or more categorized line items, and keeps every pocket's cached
balance equal to a full re-aggregation of its items:

- Atomic header + item-set writes (with compensation on partial failure)
- Wholesale item-set replacement on update
- Approval workflow for expenses
- Synchronous balance recalculation under a pocket row lock
"""

__version__ = "0.1.0"
