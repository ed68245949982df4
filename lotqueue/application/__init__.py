"""
Application layer package.

Use cases orchestrate domain rules over a unit of work.
No framework or infrastructure imports allowed.
"""
