"""Seed default roles and baseline policies, then rebuild the policy cache.

Usage:
    python -m scripts.seed_authorization
Idempotent: existing roles and policies are left untouched. Creates the
schema first when it is missing.
"""

import asyncio
import logging

from authz.core.config import get_settings
from authz.core.lifespan import AuthorizationComponents, authorization_lifespan
from authz.domain.enums import HttpAction
from authz.domain.exceptions import ConflictError, NotFoundError
from authz.infrastructure.persistence.database import create_all
from authz.schemas import PolicyBulkCreate, PolicyCreate, RoleCreate
from authz.shared.context import acting_as
from authz.shared.telemetry.logging import setup_logging

logger = logging.getLogger("scripts.seed_authorization")

SEED_ACTOR = "seed"

DEFAULT_ROLES = [
    RoleCreate(
        code="ADMINISTRADOR",
        name="Administrador",
        description="System administrator with full access",
        is_system=True,
    ),
    RoleCreate(code="USUARIO", name="Usuario", description="Standard user"),
    RoleCreate(code="INVITADO", name="Invitado", description="Guest with limited access"),
]

DEFAULT_POLICIES = [
    ("ADMINISTRADOR", "/api/v1/*", HttpAction.GET),
    ("ADMINISTRADOR", "/api/v1/usuarios/*", HttpAction.PUT),
    ("ADMINISTRADOR", "/api/v1/usuarios/*", HttpAction.DELETE),
    ("ADMINISTRADOR", "/api/v1/autorizacion/roles", HttpAction.POST),
    ("ADMINISTRADOR", "/api/v1/autorizacion/roles/*", HttpAction.PUT),
    ("ADMINISTRADOR", "/api/v1/autorizacion/roles/*", HttpAction.DELETE),
    ("ADMINISTRADOR", "/api/v1/autorizacion/politicas", HttpAction.POST),
    ("USUARIO", "/api/v1/usuarios/*", HttpAction.GET),
    ("USUARIO", "/api/v1/usuarios/*", HttpAction.PUT),
    ("INVITADO", "/api/v1/usuarios/*", HttpAction.GET),
]


async def seed(components: AuthorizationComponents) -> None:
    """Create missing default roles and policies, then sync the cache."""
    for role in DEFAULT_ROLES:
        try:
            await components.role_admin.get_role_by_code(role.code)
        except NotFoundError:
            await components.role_admin.create_role(role)
            logger.info("Role created: %s", role.code)

    bulk = PolicyBulkCreate(
        policies=[
            PolicyCreate(role=role, resource=resource, action=action)
            for role, resource, action in DEFAULT_POLICIES
        ]
    )
    try:
        created = await components.policy_admin.create_policies(bulk)
        logger.info("Baseline policies created: %s", len(created))
    except ConflictError:
        logger.info("Baseline policies already present")

    stats = await components.policy_admin.sync_cache()
    logger.info("Policy cache synced: %s roles cached", stats.role_count_in_cache)


async def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    # Schema may not exist yet; the final sync loads the cache
    settings = settings.model_copy(update={"cache_warm_on_startup": False})
    async with authorization_lifespan(settings) as components:
        if components.db_engine is not None:
            await create_all(components.db_engine)
        with acting_as(SEED_ACTOR):
            await seed(components)


if __name__ == "__main__":
    asyncio.run(main())
