"""Authorization engine: the single permit/deny decision point.

Stateless. Decisions fail closed: any internal error denies, is logged, and is
reported to the audit sink. Callers only ever see a bool.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeAlias

from authz.application.dtos.decision import AuthorizationDecision
from authz.application.interfaces.repositories import IPolicyStore
from authz.application.interfaces.services import IAuditSink
from authz.application.services.policy_cache import PolicyCache
from authz.domain import wildcard
from authz.domain.enums import ApplicationType, DecisionReason
from authz.shared.telemetry.tracing import add_span_attributes, traced

logger = logging.getLogger(__name__)

RoleMatcher: TypeAlias = Callable[[tuple[str, ...], str, str, str], Awaitable[str | None]]


def _distinct(roles: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    """Drop empty and repeated role codes, keeping first-seen order."""
    return tuple(dict.fromkeys(r for r in roles if r))


class AuthorizationEngine:
    """Decides whether any of a principal's roles grants action on a resource."""

    def __init__(
        self,
        policy_cache: PolicyCache,
        store: IPolicyStore | None = None,
        audit_sink: IAuditSink | None = None,
    ) -> None:
        self.policy_cache = policy_cache
        self.store = store or policy_cache.store
        self.audit_sink = audit_sink

    @traced("authz.is_authorized")
    async def is_authorized(
        self,
        roles: list[str] | tuple[str, ...],
        resource: str,
        action: str,
        application: ApplicationType | str = ApplicationType.BACKEND,
        principal_id: str | None = None,
    ) -> bool:
        """Return True iff some role holds a policy covering resource/action/application.

        Resource is normalized and action upper-cased first. An empty role list
        denies. Uses the policy cache and never raises.
        """
        return await self._evaluate(
            roles, resource, action, application, principal_id, self._match_cached
        )

    @traced("authz.is_authorized_direct")
    async def is_authorized_direct(
        self,
        roles: list[str] | tuple[str, ...],
        resource: str,
        action: str,
        application: ApplicationType | str = ApplicationType.BACKEND,
        principal_id: str | None = None,
    ) -> bool:
        """Same question as is_authorized, answered straight from the store.

        One bulk lookup per role over the url, its own wildcard and every
        prefix wildcard. Used for diagnostics and cache verification.
        """
        return await self._evaluate(
            roles, resource, action, application, principal_id, self._match_direct
        )

    async def _match_cached(
        self, roles: tuple[str, ...], url: str, verb: str, application: str
    ) -> str | None:
        for role in roles:
            if await self.policy_cache.is_permitted(role, url, verb, application):
                return role
        return None

    async def _match_direct(
        self, roles: tuple[str, ...], url: str, verb: str, application: str
    ) -> str | None:
        variants = wildcard.lookup_variants(url)
        for role in roles:
            found = await self.store.find_by_role_resource_action(
                role, variants, verb, application
            )
            if any(wildcard.matches(p.resource, url) for p in found):
                return role
        return None

    async def _evaluate(
        self,
        roles: list[str] | tuple[str, ...],
        resource: str,
        action: str,
        application: ApplicationType | str,
        principal_id: str | None,
        matcher: RoleMatcher,
    ) -> bool:
        role_codes: tuple[str, ...] = ()
        url, verb = str(resource), str(action)
        app_value = str(getattr(application, "value", application))
        try:
            role_codes = _distinct(roles)
            url = wildcard.normalize(resource)
            verb = action.upper()
            matched = await matcher(role_codes, url, verb, app_value)
        except Exception as e:
            logger.exception(
                "Authorization check failed closed: %s %s (%s)", verb, url, app_value
            )
            await self._report(
                AuthorizationDecision(
                    roles=role_codes,
                    resource=url,
                    action=verb,
                    application=app_value,
                    allowed=False,
                    reason=DecisionReason.ERROR,
                    principal_id=principal_id,
                    error=type(e).__name__,
                )
            )
            return False

        if matched is not None:
            reason = DecisionReason.PERMITTED
        elif not role_codes:
            reason = DecisionReason.NO_ROLES
        else:
            reason = DecisionReason.NO_MATCHING_POLICY
        allowed = matched is not None
        add_span_attributes(allowed=allowed, reason=reason.value)
        logger.debug(
            "Authorization %s: roles=%s %s %s (%s)",
            "granted" if allowed else "denied",
            role_codes,
            verb,
            url,
            app_value,
        )
        await self._report(
            AuthorizationDecision(
                roles=role_codes,
                resource=url,
                action=verb,
                application=app_value,
                allowed=allowed,
                reason=reason,
                matched_role=matched,
                principal_id=principal_id,
            )
        )
        return allowed

    async def _report(self, decision: AuthorizationDecision) -> None:
        """Forward to the audit sink; sink failures never change the decision."""
        if self.audit_sink is None:
            return
        try:
            await self.audit_sink.record_decision(decision)
        except Exception:
            logger.warning("Audit sink failed to record decision", exc_info=True)
