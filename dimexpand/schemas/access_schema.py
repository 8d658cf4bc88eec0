from typing import List, Optional

from ninja import Schema

from dimexpand.utils.constants import PERMISSION_SCOPE_ALL


class AccessScope(Schema):
    """Caller's permission context; passed through to discovery and the chart executor"""

    user_id: str
    permission_scope: str = "none"
    accessible_practices: List[int] = []
    accessible_providers: List[int] = []
    email: Optional[str] = None

    @property
    def sees_everything(self) -> bool:
        """True when nothing narrows what this caller can see"""
        return self.permission_scope == PERMISSION_SCOPE_ALL

    def cache_fingerprint(self) -> dict:
        """the parts of the scope that change query results"""
        return {
            "permission_scope": self.permission_scope,
            "accessible_practices": sorted(self.accessible_practices),
            "accessible_providers": sorted(self.accessible_providers),
        }
