"""Permission evaluation for core resources and the FastAPI guard built on it."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from dspace_api.core.domain import repo as repo_module
from dspace_api.infra.auth import AuthenticatedUser, get_current_user

LOGGER = logging.getLogger(__name__)

COMMUNITY = "COMMUNITY"
BITSTREAM = "BITSTREAM"
CAPABILITY_DOMAINS = frozenset({COMMUNITY, BITSTREAM})

# Holding the key grants every action in the value
IMPLIED_ACTIONS = {
	"READ": ("READ", "WRITE", "ADMIN"),
	"WRITE": ("WRITE", "ADMIN"),
	"ADMIN": ("ADMIN",),
}


class PermissionEvaluator:
	"""Answers ``(subject, resource, capability) -> bool`` from resource policies."""

	def __init__(self, repository: repo_module.ResourcePolicyRepository | None = None) -> None:
		self.repo = repository or repo_module.ResourcePolicyRepository()

	async def has_permission(
		self,
		user: AuthenticatedUser,
		resource_id: UUID,
		capability_domain: str,
		action: str,
	) -> bool:
		if capability_domain not in CAPABILITY_DOMAINS or action not in IMPLIED_ACTIONS:
			return False
		if user.is_admin:
			return True
		return await self.repo.has_policy(
			resource_id=resource_id,
			resource_type=capability_domain,
			actions=IMPLIED_ACTIONS[action],
			eperson_id=user.id,
			groups=user.roles,
		)


_permissions = PermissionEvaluator()


def require_permission(capability_domain: str, action: str, *, param: str = "uuid"):
	"""Return a dependency enforcing ``action`` on the resource named by a path parameter.

	Usage:
		@router.post("/{uuid:dso_id}/logo", dependencies=[Depends(require_permission("COMMUNITY", "WRITE"))])
	"""

	async def _enforce(
		request: Request,
		user: AuthenticatedUser = Depends(get_current_user),
	) -> AuthenticatedUser:
		raw: Optional[object] = request.path_params.get(param)
		try:
			resource_id = raw if isinstance(raw, UUID) else UUID(str(raw))
		except ValueError:
			raise HTTPException(status.HTTP_404_NOT_FOUND, detail="not_found")
		allowed = await _permissions.has_permission(user, resource_id, capability_domain, action)
		if not allowed:
			LOGGER.info(
				"permission_denied",
				extra={"resource_id": str(resource_id), "domain": capability_domain, "action": action},
			)
			raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")
		return user

	return _enforce
