"""
DocStore Documents — metadata models, authorization rules and the lifecycle
service tying object storage to the metadata repository.
"""

from docstore.documents.authorization import AccessDecision, AccessOutcome, DocumentAuthorizationEngine
from docstore.documents.models import Document, DocumentForm, DocumentInformation, DocumentResult, DocumentState
from docstore.documents.repository import DocumentRepository, DocumentUnitOfWork, InMemoryDocumentRepository
from docstore.documents.service import DocumentLifecycleService

__all__ = [
    "AccessDecision",
    "AccessOutcome",
    "DocumentAuthorizationEngine",
    "Document",
    "DocumentForm",
    "DocumentInformation",
    "DocumentResult",
    "DocumentState",
    "DocumentRepository",
    "DocumentUnitOfWork",
    "InMemoryDocumentRepository",
    "DocumentLifecycleService",
]
