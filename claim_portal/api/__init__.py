"""HTTP blueprints: sign-in, password reset, health and error handlers."""
