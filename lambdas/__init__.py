"""Login-flow Lambda hooks for opt-in multi-factor authentication."""
