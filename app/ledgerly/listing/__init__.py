"""
List-view helpers shared by every table page.

Each helper turns query-string parameters (page, limit, q/search, sort,
order, status, category, date_from, date_to, date_preset) into plain
dataclasses, and applies them to a SQLAlchemy query for one owned model.
"""
