from osekai_scripts.models.badge import BadgeCatalog, BadgeOwner, parse_badge_name
from osekai_scripts.models.medal import MedalCatalogEntry
from osekai_scripts.models.progress import FinishRecord, ProgressState
from osekai_scripts.models.ranking import RankingUser
from osekai_scripts.models.rarity import MedalRarities, MedalRarityEntry, calculate_rarities
from osekai_scripts.models.user import (
    MODES,
    ApiUser,
    AvailableUser,
    ModeStats,
    OsuUser,
    OwnedMedal,
    RawBadge,
    RestrictedUser,
)

__all__ = [
    "MODES",
    "ApiUser",
    "AvailableUser",
    "BadgeCatalog",
    "BadgeOwner",
    "FinishRecord",
    "MedalCatalogEntry",
    "MedalRarities",
    "MedalRarityEntry",
    "ModeStats",
    "OsuUser",
    "OwnedMedal",
    "ProgressState",
    "RankingUser",
    "RawBadge",
    "RestrictedUser",
    "calculate_rarities",
    "parse_badge_name",
]
