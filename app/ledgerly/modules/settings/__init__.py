"""
Business settings: the "from" details prefilled on invoices, email defaults and the logo.
"""
