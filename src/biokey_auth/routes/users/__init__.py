"""User management package initialization."""

from biokey_auth.routes.users.routes import router
