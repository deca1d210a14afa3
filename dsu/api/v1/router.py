"""API v1 router aggregator.

All v1 endpoint routers are included here under the /v1 prefix.

Order matters: the registry routes use /{schema_id} and
/{schema_id}/{version} path parameters, which would also match
/users/activation or /oauth/authorize. Fixed paths are included first.
"""

from fastapi import APIRouter

from dsu.api.v1 import auth, data, oauth, schemas, third_parties, users

_V1_PREFIX = "/v1"

router = APIRouter()

# =============================================================================
# Accounts and delegation
# =============================================================================

router.include_router(auth.router, prefix=f"{_V1_PREFIX}/auth", tags=["auth"])
router.include_router(users.router, prefix=f"{_V1_PREFIX}/users", tags=["users"])
router.include_router(
    third_parties.router,
    prefix=f"{_V1_PREFIX}/third_parties",
    tags=["third-parties"],
)
router.include_router(oauth.router, prefix=f"{_V1_PREFIX}/oauth", tags=["oauth"])

# =============================================================================
# Registry and data (path-parameter routes last)
# =============================================================================

router.include_router(data.router, prefix=_V1_PREFIX, tags=["data"])
router.include_router(schemas.router, prefix=_V1_PREFIX, tags=["schemas"])
