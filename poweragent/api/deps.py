"""API dependencies shared by the route modules."""

from typing import Annotated

from fastapi import Depends

from poweragent.services.workflow.cache import ValidationCache, get_validation_cache

# =============================================================================
# Cache Dependency
# =============================================================================

ValidationCacheDep = Annotated[ValidationCache, Depends(get_validation_cache)]
"""Type alias for validation cache dependency injection.

Usage:
    @router.post("/validate")
    async def validate(cache: ValidationCacheDep):
        cached = await cache.get(digest)
"""


__all__ = ["ValidationCacheDep", "get_validation_cache"]
