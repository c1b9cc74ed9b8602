"""Routes package initialization."""

from biokey_auth.routes.auth import router as auth_router
from biokey_auth.routes.users import router as users_router
