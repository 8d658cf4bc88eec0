from functools import wraps

from ninja.security import HttpBearer
from ninja.errors import HttpError

from rest_framework.authtoken.models import Token

from dimexpand.models.access import AnalyticsAccess
from dimexpand.schemas.access_schema import AccessScope
from dimexpand.utils.constants import PERMISSION_SCOPE_NONE
from dimexpand.utils.custom_logger import CustomLogger

logger = CustomLogger("dimexpand")

UNAUTHORIZED = "unauthorized"


def build_access_scope(user) -> AccessScope:
    """the user's analytics access profile as an access scope; no profile means no access"""
    access = AnalyticsAccess.objects.filter(user=user).first()
    if access is None:
        return AccessScope(user_id=str(user.id), email=user.email or None)

    return AccessScope(
        user_id=str(user.id),
        email=user.email or None,
        permission_scope=access.permission_scope,
        accessible_practices=access.accessible_practices or [],
        accessible_providers=access.accessible_providers or [],
    )


def has_analytics_access(api_endpoint):
    """rejects callers whose access scope lets them see nothing"""

    @wraps(api_endpoint)
    async def wrapper(request, *args, **kwargs):
        access_scope = getattr(request, "access_scope", None)
        if access_scope is None or access_scope.permission_scope == PERMISSION_SCOPE_NONE:
            raise HttpError(403, "not allowed")
        return await api_endpoint(request, *args, **kwargs)

    return wrapper


class CustomAuthMiddleware(HttpBearer):
    """resolves the bearer token to a user and that user's analytics access scope"""

    def authenticate(self, request, token):
        tokenrecord = Token.objects.filter(key=token).select_related("user").first()
        if tokenrecord and tokenrecord.user and tokenrecord.user.is_active:
            request.user = tokenrecord.user
            request.access_scope = build_access_scope(tokenrecord.user)
            return request

        logger.warning("rejected request with an unknown token")
        raise HttpError(400, UNAUTHORIZED)
