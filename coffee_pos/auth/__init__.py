# Package exports - these allow cleaner imports like:
# from coffee_pos.auth import get_current_user, require_roles
from coffee_pos.auth.jwt_validator import JWTValidator
from coffee_pos.auth.dependencies import get_current_user, require_roles, require_manager_or_admin, require_admin
