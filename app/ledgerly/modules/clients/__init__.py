"""
Clients module.

- Clients CRUD with lifecycle status (lead → prospect → active → on_hold/inactive → archived)
- List view with search, status filter, sorting, pagination and saved views
"""
