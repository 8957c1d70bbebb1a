"""
Saved views module.

Named filter/sort configurations, stored per user per table. List pages post
`intent=save_view` / `intent=delete_view` and this module handles both.
"""
