# activation_hub/core/__init__.py
"""
Core application modules.
Contains essential infrastructure components:
- bootstrap: Default admin creation on first startup
- db: Database configuration and connection management
- ratelimit: Fixed-window request admission with pluggable counter stores
- security: Password hashing, JWT tokens, API key comparison
"""
