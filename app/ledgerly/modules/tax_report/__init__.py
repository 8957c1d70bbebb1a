"""
Tax report: income, deductions and a simplified self-employment tax estimate
over a date range, as HTML and PDF.
"""
