"""
DocStore Document Service — upload, lookup, search, update and soft delete.

Handles:
- Upload: validation, shard-path allocation, blob write, metadata row
- Single-record reads and blob downloads gated by the view rule
- Role-filtered search over the metadata rows
- Update of remarks / enabled flag / roles / tags
- Soft delete, plus the admin audit (inspect) and purge paths

Ordering on upload: the blob write completes before the metadata row is
committed, so a row never references a blob that does not exist. A failed
commit leaves the blob in place; identifiers are never reused, so a retried
upload never collides with it.

Storage layout:
    <documents.base_path>/<process_name>/<shard path>/<uuid><extension>

The row's ``location`` is the part after ``<base_path>/<process_name>/``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import BinaryIO, Iterable, List, Optional, Tuple
from uuid import UUID, uuid4

from docstore.documents.authorization import AccessOutcome, DocumentAuthorizationEngine
from docstore.documents.extensions import classify, dcmi_type_for, extension_of, is_accepted
from docstore.documents.models import (
    MAX_DCMI_TYPE_LENGTH,
    MAX_FILE_NAME_LENGTH,
    MAX_PROCESS_NAME_LENGTH,
    Document,
    DocumentForm,
    DocumentInformation,
    DocumentResult,
    normalize_token,
    normalize_tokens,
)
from docstore.documents.repository import DocumentRepository
from docstore.engine.config import DocumentsConfig
from docstore.engine.context import CallerContext, require_caller_context
from docstore.engine.errors import (
    DocStoreNotFoundError,
    DocStoreRecordError,
    DocStoreStorageError,
    DocStoreValidationError,
)
from docstore.engine.logging import log, log_document_operation, log_security_event
from docstore.storage.gateway import BlobData
from docstore.storage.paths import SEPARATOR, normalize_path
from docstore.storage.service import BinaryStorageService

logger = logging.getLogger("docstore.documents.service")

DOCUMENT_DELETED = "Document deleted"
DOCUMENT_NOT_FOUND = "Document not found"
DOCUMENT_NOT_SAVED = "Document could not be saved"
DOCUMENT_SAVED = "Document saved"
DOCUMENT_UPDATED = "Document updated"
DOCUMENT_UNCHANGED = "Document not changed"
DOCUMENT_PURGED = "Document purged"
DOCUMENT_NOT_PURGED = "Document could not be purged"
NOT_AUTHORIZED_DELETE = "You are not authorized to delete documents"
NOT_AUTHORIZED_UPDATE = "You are not authorized to update documents"
NOT_AUTHORIZED_VIEW = "You are not authorized to view this document"
NOT_AUTHORIZED_PURGE = "You are not authorized to purge documents"
PURGE_REQUIRES_REMOVED = "Only removed documents can be purged"


def _read_all(stream: BlobData) -> bytes:
    if isinstance(stream, (bytes, bytearray, memoryview)):
        return bytes(stream)
    return stream.read()


class DocumentLifecycleService:
    """
    Document operations for one storage account and one metadata store.

    Every operation takes the caller explicitly; passing None uses the caller
    set on the current task (docstore.engine.context). Authorization outcomes
    are returned as (success, message) results, never raised.
    """

    def __init__(
        self,
        storage: BinaryStorageService,
        repository: DocumentRepository,
        settings: Optional[DocumentsConfig] = None,
        authorization: Optional[DocumentAuthorizationEngine] = None,
    ):
        self._storage = storage
        self._repository = repository
        self._settings = settings or DocumentsConfig()
        self._authorization = authorization or DocumentAuthorizationEngine()

    @property
    def settings(self) -> DocumentsConfig:
        return self._settings

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    @staticmethod
    def _caller(caller: Optional[CallerContext]) -> CallerContext:
        return caller if caller is not None else require_caller_context()

    def valid_roles(self, roles: Iterable[str]) -> List[str]:
        """Normalized roles from ``roles`` that appear in the configured table."""
        allowed = self._settings.valid_roles
        result: List[str] = []
        for role in roles or []:
            token = normalize_token(role)
            if token in allowed and token not in result:
                result.append(token)
        return result

    def _process_root(self, process_name: str) -> str:
        return f"{self._settings.base_path}{SEPARATOR}{process_name}"

    def _full_path(self, document: Document) -> str:
        return normalize_path(document.storage_path(self._settings.base_path))

    @staticmethod
    def _denied(caller: CallerContext, public_id: UUID, operation: str, outcome: AccessOutcome) -> None:
        log(log_security_event(
            event="document_access_denied",
            public_id=public_id,
            operation=operation,
            outcome=outcome.value,
            user_id=caller.user_id,
            user_roles=sorted(caller.roles),
            is_admin=caller.is_admin,
            execution_id=caller.execution_id,
        ))

    @staticmethod
    def _validate_form(form: DocumentForm) -> str:
        """Check the upload form; returns the file extension."""
        if form is None:
            raise DocStoreValidationError("Document form is required", field="form")
        if not form.file_name or not form.file_name.strip():
            raise DocStoreValidationError("File name is required", field="file_name")
        if not form.process_name or not form.process_name.strip():
            raise DocStoreValidationError("Process name is required", field="process_name")
        if len(form.file_name) > MAX_FILE_NAME_LENGTH:
            raise DocStoreValidationError(
                f"File name must be at most {MAX_FILE_NAME_LENGTH} characters", field="file_name"
            )
        if len(form.process_name.strip()) > MAX_PROCESS_NAME_LENGTH:
            raise DocStoreValidationError(
                f"Process name must be at most {MAX_PROCESS_NAME_LENGTH} characters", field="process_name"
            )
        if form.dcmi_type and len(form.dcmi_type) > MAX_DCMI_TYPE_LENGTH:
            raise DocStoreValidationError(
                f"DCMI type must be at most {MAX_DCMI_TYPE_LENGTH} characters", field="dcmi_type"
            )
        extension = extension_of(form.file_name)
        if not is_accepted(form.file_name):
            raise DocStoreValidationError(
                f"File type '{extension or form.file_name}' is not accepted",
                field="file_name",
            )
        return extension

    # -------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------

    async def save_document(
        self,
        caller: Optional[CallerContext],
        stream: BlobData,
        form: DocumentForm,
    ) -> DocumentResult:
        """
        Upload a new document and record its metadata row.

        Returns:
            DocumentResult. success is False with a validation message for a
            rejected form, or with "Document could not be saved" when storage
            or the metadata commit fails.
        """
        caller = self._caller(caller)
        try:
            extension = self._validate_form(form)
            if stream is None:
                raise DocStoreValidationError("Document content is required", field="stream")
        except DocStoreValidationError as e:
            return DocumentResult(False, e.message)

        process_name = form.process_name.strip()
        file_guid = uuid4()
        category = classify(extension)
        dcmi_type = form.dcmi_type or dcmi_type_for(category).value
        new_file_name = f"{file_guid}{extension.lower()}"
        process_root = normalize_path(self._process_root(process_name))

        try:
            save_path = await self._storage.create_save_path(process_root, file_guid)
            storage_path = f"{save_path}{SEPARATOR}{new_file_name}"
            location = storage_path[len(process_root) + 1:]

            data = _read_all(stream)
            metadata = {
                "OriginalFileName": form.file_name,
                "UserId": str(caller.user_id),
                "DcmiType": dcmi_type,
                "ContentType": category,
            }
            upload = await self._storage.create_document(
                data, storage_path, {k: v for k, v in metadata.items() if v}
            )
        except DocStoreValidationError as e:
            return DocumentResult(False, e.message)
        except DocStoreStorageError as e:
            logger.error(f"Upload of '{form.file_name}' for user {caller.user_id} failed: {e}")
            log(log_document_operation(
                "create", file_guid, caller.user_id, success=False,
                execution_id=caller.execution_id, error=str(e),
            ))
            return DocumentResult(False, DOCUMENT_NOT_SAVED)

        document = Document(
            location=location,
            process_name=process_name,
            original_name=form.file_name,
            extension=extension,
            extension_group=category,
            dcmi_type=dcmi_type,
            content_hash=upload.content_hash,
            size=len(data),
            remarks=form.remarks,
            roles=self.valid_roles(form.roles),
            tags=normalize_tokens(form.tags),
            created_by=caller.user_id,
            created=datetime.now(timezone.utc),
            is_private=form.is_private,
            is_enabled=form.is_enabled,
        )

        work = self._repository.unit_of_work()
        work.save_document(document)
        try:
            written = await work.complete(caller)
        except DocStoreRecordError as e:
            # The blob stays; it is unreferenced but harmless
            logger.error(f"Metadata commit for {storage_path} failed, blob kept: {e}")
            log(log_document_operation(
                "create", document.public_id, caller.user_id, success=False,
                execution_id=caller.execution_id, location=location, error=str(e),
            ))
            return DocumentResult(False, DOCUMENT_NOT_SAVED)

        logger.debug(f"Saved document {document.public_id} at {location}")
        log(log_document_operation(
            "create", document.public_id, caller.user_id, success=written > 0,
            execution_id=caller.execution_id, location=location,
        ))
        return DocumentResult(
            written > 0,
            DOCUMENT_SAVED if written > 0 else DOCUMENT_NOT_SAVED,
            DocumentInformation.from_document(document),
        )

    # -------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------

    async def _viewable(
        self,
        caller: CallerContext,
        public_id: UUID,
    ) -> Tuple[DocumentResult, Optional[Document]]:
        document = await self._repository.find_document(public_id)
        decision = self._authorization.can_view(caller, document)
        if decision.outcome is AccessOutcome.NOT_FOUND:
            return DocumentResult(False, DOCUMENT_NOT_FOUND), None
        if decision.outcome is AccessOutcome.NOT_AUTHORIZED:
            self._denied(caller, public_id, "view", decision.outcome)
            return DocumentResult(False, NOT_AUTHORIZED_VIEW), None
        return DocumentResult(True, "", self._authorization.project(document)), document

    async def get_document_information(
        self,
        caller: Optional[CallerContext],
        public_id: UUID,
    ) -> DocumentResult:
        result, _ = await self._viewable(self._caller(caller), public_id)
        return result

    async def open_document(
        self,
        caller: Optional[CallerContext],
        public_id: UUID,
    ) -> Tuple[DocumentResult, Optional[BinaryIO]]:
        """Document information plus a readable stream of its content."""
        result, document = await self._viewable(self._caller(caller), public_id)
        if document is None:
            return result, None
        try:
            stream = await self._storage.open_document(self._full_path(document))
        except DocStoreNotFoundError:
            logger.warning(f"Document {public_id} has a row but no blob at {document.location}")
            return DocumentResult(False, DOCUMENT_NOT_FOUND), None
        return result, stream

    async def find_documents(
        self,
        caller: Optional[CallerContext],
        search: str,
        for_roles: Iterable[str],
        process_name: Optional[str] = None,
        show_inactive_documents: bool = False,
    ) -> List[DocumentInformation]:
        """
        Documents visible to ``caller`` for any of ``for_roles``, newest first.

        Raises:
            DocStoreValidationError: ``search`` or ``for_roles`` is None
        """
        caller = self._caller(caller)
        if search is None:
            raise DocStoreValidationError("Search term must not be None", field="search")
        if for_roles is None:
            raise DocStoreValidationError("Roles must not be None", field="for_roles")
        roles = list(for_roles)

        documents = await self._repository.query_documents(
            search=search,
            process_name=process_name,
            include_inactive=show_inactive_documents,
        )
        return [
            self._authorization.project(d)
            for d in documents
            if self._authorization.visible_in_search(caller, d, roles)
        ]

    # -------------------------------------------------------------------
    # Update / delete
    # -------------------------------------------------------------------

    async def update_document(
        self,
        caller: Optional[CallerContext],
        public_id: UUID,
        form: DocumentForm,
    ) -> DocumentResult:
        """
        Update remarks, enabled flag and roles (and tags when the form has
        them). success is False when nothing changed.
        """
        caller = self._caller(caller)
        work = self._repository.unit_of_work()
        document = await work.find_document(public_id)
        decision = self._authorization.can_update(caller, document)
        if decision.outcome is AccessOutcome.NOT_FOUND:
            return DocumentResult(False, DOCUMENT_NOT_FOUND)
        if decision.outcome is AccessOutcome.NOT_AUTHORIZED:
            self._denied(caller, public_id, "update", decision.outcome)
            return DocumentResult(False, NOT_AUTHORIZED_UPDATE)

        changed = []
        roles = self.valid_roles(form.roles)
        updates = {"remarks": form.remarks, "is_enabled": form.is_enabled, "roles": roles}
        if form.tags is not None:
            updates["tags"] = normalize_tokens(form.tags)
        for field, value in updates.items():
            if getattr(document, field) != value:
                setattr(document, field, value)
                changed.append(field)

        try:
            written = await work.complete(caller)
        except DocStoreRecordError as e:
            logger.error(f"Update of document {public_id} failed: {e}")
            log(log_document_operation(
                "update", public_id, caller.user_id, success=False,
                execution_id=caller.execution_id, error=str(e),
            ))
            return DocumentResult(False, DOCUMENT_UNCHANGED, self._authorization.project(document))
        if public_id in work.skipped:
            # removed by another operation after it was read
            return DocumentResult(False, DOCUMENT_NOT_FOUND)

        if written:
            log(log_document_operation(
                "update", public_id, caller.user_id, success=True,
                execution_id=caller.execution_id, fields_changed=changed,
            ))
        return DocumentResult(
            written > 0,
            DOCUMENT_UPDATED if written > 0 else DOCUMENT_UNCHANGED,
            self._authorization.project(document),
        )

    async def delete_document(
        self,
        caller: Optional[CallerContext],
        public_id: UUID,
    ) -> Tuple[bool, str]:
        """
        Soft delete: the row is disabled, flagged removed and timestamped.
        The blob is kept (see purge_document).
        """
        caller = self._caller(caller)
        work = self._repository.unit_of_work()
        document = await work.find_document(public_id)
        decision = self._authorization.can_delete(caller, document)
        if decision.outcome is AccessOutcome.NOT_FOUND:
            return False, DOCUMENT_NOT_FOUND
        if decision.outcome is AccessOutcome.NOT_AUTHORIZED:
            self._denied(caller, public_id, "delete", decision.outcome)
            return False, NOT_AUTHORIZED_DELETE

        document.is_enabled = False
        document.is_removed = True
        document.removed = datetime.now(timezone.utc)
        try:
            written = await work.complete(caller)
        except DocStoreRecordError as e:
            logger.error(f"Delete of document {public_id} failed: {e}")
            log(log_document_operation(
                "delete", public_id, caller.user_id, success=False,
                execution_id=caller.execution_id, error=str(e),
            ))
            return False, DOCUMENT_NOT_FOUND
        if public_id in work.skipped:
            return False, DOCUMENT_NOT_FOUND

        logger.info(f"Document {public_id} deleted")
        log(log_document_operation(
            "delete", public_id, caller.user_id, success=written > 0,
            execution_id=caller.execution_id, location=document.location,
        ))
        return written > 0, DOCUMENT_DELETED

    # -------------------------------------------------------------------
    # Admin audit paths
    # -------------------------------------------------------------------

    async def inspect_document(
        self,
        caller: Optional[CallerContext],
        public_id: UUID,
    ) -> DocumentResult:
        """Admin view of any row, removed ones included."""
        caller = self._caller(caller)
        document = await self._repository.find_document(public_id, include_removed=True)
        decision = self._authorization.can_inspect(caller, document)
        if not decision.allowed:
            if document is not None:
                self._denied(caller, public_id, "inspect", decision.outcome)
            return DocumentResult(False, DOCUMENT_NOT_FOUND)
        return DocumentResult(True, document.state.value, self._authorization.project(document))

    async def purge_document(
        self,
        caller: Optional[CallerContext],
        public_id: UUID,
    ) -> Tuple[bool, str]:
        """
        Physically delete the blob of a removed document. The row stays as
        the audit record.
        """
        caller = self._caller(caller)
        document = await self._repository.find_document(public_id, include_removed=True)
        decision = self._authorization.can_purge(caller, document)
        if decision.outcome is AccessOutcome.NOT_FOUND:
            return False, DOCUMENT_NOT_FOUND
        if decision.outcome is AccessOutcome.NOT_AUTHORIZED:
            self._denied(caller, public_id, "purge", decision.outcome)
            return False, PURGE_REQUIRES_REMOVED if caller.is_admin else NOT_AUTHORIZED_PURGE

        try:
            deleted = await self._storage.delete(self._full_path(document))
        except DocStoreStorageError as e:
            logger.error(f"Purge of document {public_id} failed: {e}")
            log(log_document_operation(
                "purge", public_id, caller.user_id, success=False,
                execution_id=caller.execution_id, error=str(e),
            ))
            return False, DOCUMENT_NOT_PURGED

        log(log_document_operation(
            "purge", public_id, caller.user_id, success=deleted,
            execution_id=caller.execution_id, location=document.location,
        ))
        return deleted, DOCUMENT_PURGED if deleted else DOCUMENT_NOT_FOUND
