"""
Mileage module: business trips with a per-mile rate and computed deduction.
"""
