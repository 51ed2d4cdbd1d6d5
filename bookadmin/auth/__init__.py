"""
Authentication helpers for the dashboard.

Design goals:
- The backend owns identity; we only hold its bearer token.
- Cookie-based session (HttpOnly, signed) for the same-origin dashboard.
- Guard failures navigate (redirect), they never render an error.
"""
