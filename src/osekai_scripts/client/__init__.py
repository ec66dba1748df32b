from osekai_scripts.client.osu import OsuClient
from osekai_scripts.client.ratelimit import RateLimiter

__all__ = ["OsuClient", "RateLimiter"]
