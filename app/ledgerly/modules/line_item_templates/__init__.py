"""
Line-item templates: reusable invoice rows (name, description, rate, quantity).
Managed on a single page with create/update/delete intents.
"""
