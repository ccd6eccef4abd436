"""
Constants used across the padel statistics system.
"""

# Match roster
PLAYERS_PER_MATCH = 4
PLAYERS_PER_TEAM = 2

# Account validation (mirrors the registration form)
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6

# Rate limits for unauthenticated auth endpoints
LOGIN_RATE_LIMIT = "10/minute"
REGISTER_RATE_LIMIT = "5/minute"
