"""
Expense Kernel

Approval routing for expense reimbursement claims:
- Policy-driven approver resolution over a manager hierarchy
- Claim lifecycle (Draft -> Processing -> Approved/Rejected)
- Transactional submission with pending approval records
"""

__version__ = "0.1.0"
