"""
Invoices module.

- Invoice CRUD with JSON line items and server-computed totals
- Mark paid (method/date/reference), share links with a random token
- Owner and public (share token) PDF rendering
"""
