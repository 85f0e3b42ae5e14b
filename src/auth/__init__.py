"""Authentication: registration, login, tokens and role checks."""
