"""
Per-role navigation and landing pages.
"""

from typing import Dict, List, Optional

from src.common.types import Role

from .access_guard import UNAUTHORIZED_PATH

HOME_LINK = {"href": "/", "label": "Home"}


def home_path_for(role: Optional[Role]) -> str:
    """Landing page after sign-in or sign-up."""
    if role is Role.CLIENT:
        return "/client"
    if role is Role.WORKER:
        return "/worker"
    if role is Role.ADMIN:
        return "/admin"
    return UNAUTHORIZED_PATH


def nav_links_for(role: Optional[Role]) -> List[Dict[str, str]]:
    """Navigation entries shown to a signed-in user. Unknown roles get Home only."""
    if role is Role.CLIENT:
        return [
            HOME_LINK,
            {"href": "/client", "label": "Dashboard"},
            {"href": "/post-job", "label": "Post Job"},
        ]
    if role is Role.WORKER:
        return [
            HOME_LINK,
            {"href": "/worker", "label": "Dashboard"},
            {"href": "/jobs", "label": "Find Jobs"},
        ]
    if role is Role.ADMIN:
        return [
            HOME_LINK,
            {"href": "/admin", "label": "Admin Panel"},
            {"href": "/jobs", "label": "All Jobs"},
        ]
    return [HOME_LINK]
