"""
Audit Service - structured audit logging for admin actions and denials.

Audit entries are written to the standard logger as JSON lines.

Audit failures must never block admin operations or turn a denial into
an allow, so every call is fire-and-forget.
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from app.auth.evaluator import DenialReason, Principal

logger = logging.getLogger(__name__)


class AuditService:
    """
    Service for logging admin actions in a structured, auditable format.

    All logging is fire-and-forget - failures do not propagate to caller.
    """

    def _emit(self, entry: dict[str, Any]) -> None:
        entry["timestamp"] = datetime.now(timezone.utc).isoformat()
        logger.info(
            "AUDIT: %s",
            json.dumps(entry, ensure_ascii=False, default=str),
            extra={"audit_entry": entry},
        )

    async def log_admin_action(
        self,
        *,
        actor_id: str | None,
        action: str,
        target_type: str,
        target_id: str,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """
        Log an admin action.

        Args:
            actor_id: uid of the admin performing the action (None if unknown)
            action: Action identifier (e.g., "admin.users.role.update")
            target_type: Type of target entity (e.g., "admin_user", "session")
            target_id: ID of the target entity
            payload: Optional dict with action details
        """
        try:
            self._emit(
                {
                    "actor_id": actor_id,
                    "action": action,
                    "target_type": target_type,
                    "target_id": str(target_id),
                    "payload": payload or {},
                }
            )
        except Exception as e:
            logger.error(
                "Audit logging failed for action %s: %s",
                action,
                str(e),
                exc_info=True,
            )

    async def log_permission_denied(
        self,
        *,
        principal: Principal | None,
        required_permissions: Iterable[str],
        reason: DenialReason,
        request_method: str,
        request_path: str,
    ) -> None:
        """Log a denied permission check with the reason it was denied."""
        required = list(required_permissions)
        try:
            self._emit(
                {
                    "actor_id": getattr(principal, "uid", None),
                    "action": "permission_denied",
                    "target_type": "admin_permission",
                    "target_id": ",".join(required),
                    "payload": {
                        "reason": reason.value,
                        "role": getattr(principal, "role", None),
                        "required_permissions": required,
                        "request_method": request_method,
                        "request_path": request_path,
                    },
                }
            )
        except Exception as e:
            logger.error(
                "Audit logging failed for permission denial %s: %s",
                required,
                str(e),
                exc_info=True,
            )
