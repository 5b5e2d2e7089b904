"""WebAgent autonomous agent demo.

A browser UI where a hosted Gemini model splits a goal into tasks and then
picks one tool per step (search, browse, finish, fail) until every task is
resolved.
"""

__version__ = "0.1.0"
