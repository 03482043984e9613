"""Resource classification: which directory a stored file belongs to."""
from enum import IntEnum
from typing import Dict


class ResourceType(IntEnum):
    """Caller-supplied resource class of an uploaded file."""
    UNKNOWN = 0
    GAME_ICON = 1
    GAMEITEM_ICON = 2
    LOADING = 3
    ACTIVITY_EVENT = 4
    DOCUMENTS_AGENCY = 5
    OFFICE_ICON = 6
    RECOMMEND_ICON = 7
    AGENT_CONTROL = 8
    CURRENCY = 9
    GAME_BRAND = 10
    MULTIPART = 11
    GAME_HALL = 12
    GAME_SKIN = 13
    GAME_SHARE = 14
    GAME_BRAND_HALL_ICON = 15


RESOURCE_TYPE_DIRS: Dict[ResourceType, str] = {
    ResourceType.GAME_ICON: "/icon",
    ResourceType.GAMEITEM_ICON: "/gameitemicon",
    ResourceType.LOADING: "/loading",
    ResourceType.ACTIVITY_EVENT: "/activity",
    ResourceType.DOCUMENTS_AGENCY: "/documents",
    ResourceType.OFFICE_ICON: "/office_icon",
    ResourceType.RECOMMEND_ICON: "/recommendicon",
    ResourceType.AGENT_CONTROL: "/agent_control",
    ResourceType.CURRENCY: "/currency",
    ResourceType.GAME_BRAND: "/gamebrand",
    ResourceType.MULTIPART: "/tmp",
    ResourceType.GAME_HALL: "/game_hall",
    ResourceType.GAME_SKIN: "/game_skin",
    ResourceType.GAME_SHARE: "/game_share",
    ResourceType.GAME_BRAND_HALL_ICON: "/brand_hall_icon",
}

# Published into the download directory instead of the CDN root
DOWNLOAD_RESOURCE_TYPES = frozenset({ResourceType.DOCUMENTS_AGENCY, ResourceType.AGENT_CONTROL})


def resource_dir(resource_type: ResourceType) -> str:
    """Relative directory of a resource type, without the leading slash."""
    return RESOURCE_TYPE_DIRS[resource_type].lstrip("/")
