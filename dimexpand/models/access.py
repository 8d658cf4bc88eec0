"""Analytics access profile: what rows of the analytics store a user may see"""

from enum import Enum
from django.db import models
from django.contrib.auth.models import User


class PermissionScope(str, Enum):
    """analytics visibility of a user"""

    ALL = "all"
    ORGANIZATION = "organization"
    OWN = "own"
    NONE = "none"

    @classmethod
    def choices(cls):
        """django model definition needs an iterable for `choices`"""
        return [(key.value, key.name) for key in cls]


class AnalyticsAccess(models.Model):
    """Resolved analytics permissions for a user; turned into an AccessScope per request"""

    id = models.BigAutoField(primary_key=True)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="analytics_access")
    permission_scope = models.CharField(
        max_length=20, choices=PermissionScope.choices(), default=PermissionScope.NONE.value
    )
    accessible_practices = models.JSONField(default=list)
    accessible_providers = models.JSONField(default=list)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user_id} ({self.permission_scope})"
