"""
Household settings: business-use percentages and monthly amounts for home-office deductions.
"""
