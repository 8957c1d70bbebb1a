"""
Expenses module.

- Expense CRUD with tax fields (deductible flag, business-use percentage, tax category)
- Returns/refunds linked to an original expense
- Receipt upload to the private receipts bucket, owner-only download
"""
