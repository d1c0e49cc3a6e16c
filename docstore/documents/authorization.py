"""
Document authorization — pure allow/deny decisions for document operations.

Every decision is an AccessDecision carrying one of three outcomes:

    ALLOWED         — proceed
    NOT_FOUND       — record absent, removed, or private and not the caller's
    NOT_AUTHORIZED  — record exists and is not private, caller lacks rights

Private records that the caller does not own answer NOT_FOUND, so their
existence is never disclosed. Non-private records may answer NOT_AUTHORIZED.

Rules:
    view    admin | (not private and roles ∩ document.roles) | (private and owner)
    search  the view rule, tried once per requested role, first match includes
    update  admin | owner
    delete  admin | (private and owner)
    inspect admin only; removed rows included (audit path)
    purge   admin only; record must already be removed

Removed records are NOT_FOUND for view/search/update/delete, admins included.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from docstore.documents.models import Document, DocumentInformation, normalize_token
from docstore.engine.context import CallerContext


class AccessOutcome(str, Enum):
    ALLOWED = "allowed"
    NOT_FOUND = "not_found"
    NOT_AUTHORIZED = "not_authorized"


class DocumentOperation(str, Enum):
    VIEW = "view"
    UPDATE = "update"
    DELETE = "delete"
    INSPECT = "inspect"
    PURGE = "purge"


@dataclass(frozen=True)
class AccessDecision:
    outcome: AccessOutcome
    document: Optional[Document] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is AccessOutcome.ALLOWED


_NOT_FOUND = AccessDecision(AccessOutcome.NOT_FOUND)
_NOT_AUTHORIZED = AccessDecision(AccessOutcome.NOT_AUTHORIZED)


class DocumentAuthorizationEngine:
    """Stateless decision logic; safe to share between tasks."""

    @staticmethod
    def _allows_role(caller: CallerContext, document: Document, role: str) -> bool:
        if caller.is_admin:
            return True
        if document.is_private:
            return document.is_owned_by(caller.user_id)
        return normalize_token(role) in document.roles

    def can_view(
        self,
        caller: CallerContext,
        document: Optional[Document],
        roles: Optional[Iterable[str]] = None,
    ) -> AccessDecision:
        """Single-record read. ``roles`` defaults to the caller's own roles."""
        if document is None or document.is_removed:
            return _NOT_FOUND
        if caller.is_admin:
            return AccessDecision(AccessOutcome.ALLOWED, document)
        if document.is_private:
            if document.is_owned_by(caller.user_id):
                return AccessDecision(AccessOutcome.ALLOWED, document)
            return _NOT_FOUND
        wanted = {normalize_token(r) for r in (caller.roles if roles is None else roles)}
        if wanted.intersection(document.roles):
            return AccessDecision(AccessOutcome.ALLOWED, document)
        return _NOT_AUTHORIZED

    def visible_in_search(
        self,
        caller: CallerContext,
        document: Document,
        for_roles: Iterable[str],
    ) -> bool:
        """
        Search filter for one candidate row. The view rule is tried for each
        requested role in turn; the first role that satisfies it includes the
        row. With no requested roles nothing is included.
        """
        if document.is_removed:
            return False
        for role in for_roles:
            if self._allows_role(caller, document, role):
                return True
        return False

    def can_update(self, caller: CallerContext, document: Optional[Document]) -> AccessDecision:
        if document is None or document.is_removed:
            return _NOT_FOUND
        if caller.is_admin or document.is_owned_by(caller.user_id):
            return AccessDecision(AccessOutcome.ALLOWED, document)
        if document.is_private:
            return _NOT_FOUND
        return _NOT_AUTHORIZED

    def can_delete(self, caller: CallerContext, document: Optional[Document]) -> AccessDecision:
        if document is None or document.is_removed:
            return _NOT_FOUND
        if document.is_private and document.is_owned_by(caller.user_id):
            return AccessDecision(AccessOutcome.ALLOWED, document)
        if caller.is_admin:
            return AccessDecision(AccessOutcome.ALLOWED, document)
        if document.is_private:
            return _NOT_FOUND
        return _NOT_AUTHORIZED

    def can_inspect(self, caller: CallerContext, document: Optional[Document]) -> AccessDecision:
        if document is None or not caller.is_admin:
            return _NOT_FOUND
        return AccessDecision(AccessOutcome.ALLOWED, document)

    def can_purge(self, caller: CallerContext, document: Optional[Document]) -> AccessDecision:
        if document is None:
            return _NOT_FOUND
        if not caller.is_admin:
            return _NOT_FOUND if document.is_private or document.is_removed else _NOT_AUTHORIZED
        if not document.is_removed:
            return _NOT_AUTHORIZED
        return AccessDecision(AccessOutcome.ALLOWED, document)

    def decide(
        self,
        operation: DocumentOperation,
        caller: CallerContext,
        document: Optional[Document],
    ) -> AccessDecision:
        """Dispatch by operation name."""
        checks = {
            DocumentOperation.VIEW: self.can_view,
            DocumentOperation.UPDATE: self.can_update,
            DocumentOperation.DELETE: self.can_delete,
            DocumentOperation.INSPECT: self.can_inspect,
            DocumentOperation.PURGE: self.can_purge,
        }
        return checks[operation](caller, document)

    @staticmethod
    def project(document: Document) -> DocumentInformation:
        """Fields visible to an authorized caller."""
        return DocumentInformation.from_document(document)
