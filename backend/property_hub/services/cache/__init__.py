from .service import CacheService, RedisCacheService

__all__ = ["CacheService", "RedisCacheService"]
