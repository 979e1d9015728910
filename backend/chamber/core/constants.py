"""
Application constants for content types, statuses, locales and roles.
"""

# Post types
POST_TYPE_NEWS = "news"
POST_TYPE_EVENT = "event"
POST_TYPE_RESOURCE = "resource"
POST_TYPES = (POST_TYPE_NEWS, POST_TYPE_EVENT, POST_TYPE_RESOURCE)

# Locales
LOCALE_KO = "ko"
LOCALE_EN = "en"
LOCALE_ZH = "zh"
SUPPORTED_LOCALES = (LOCALE_KO, LOCALE_EN, LOCALE_ZH)

# Role codes
ROLE_GUEST = "guest"
ROLE_MEMBER = "member"
ROLE_EDITOR = "editor"
ROLE_OPERATOR = "operator"
ROLE_ADMIN = "admin"

# Tier codes
TIER_MEMBER = "MEMBER"
TIER_PRO = "PRO"
TIER_CORP = "CORP"
TIER_PARTNER = "PARTNER"
TIER_ADMIN = "ADMIN"

# Tiers that unlock premium content
PREMIUM_TIER_CODES = frozenset({TIER_PRO, TIER_CORP, TIER_PARTNER, TIER_ADMIN})

# Wildcard permission granting everything
PERMISSION_WILDCARD = "*"

# Permission that gates attendee rosters and registration status changes
PERMISSION_MANAGE_ATTENDEES = "event.attendee.manage"
PERMISSION_MANAGE_MEMBERS = "member.manage"

# Permission action per post operation; resources are created via "upload"
POST_CREATE_ACTION = {
    POST_TYPE_NEWS: "create",
    POST_TYPE_EVENT: "create",
    POST_TYPE_RESOURCE: "upload",
}

# Legacy import
SLUG_ID_SUFFIX_LENGTH = 8
EXCERPT_MAX_LENGTH = 200
