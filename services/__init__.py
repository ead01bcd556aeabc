"""Auth services: user directory, refresh token store and the session manager."""
