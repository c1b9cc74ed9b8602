"""Authentication package initialization."""

from biokey_auth.routes.auth.dependencies import get_auth_service, get_current_user_dep, require_admin
from biokey_auth.routes.auth.routes import router
