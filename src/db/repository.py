"""Database repository for extracted document text.

The extraction core never touches storage; callers hand a successful result
to a ``DocumentTextStore``.
"""

from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models import DocumentVersion


class DocumentNotFoundError(Exception):
    """Raised when no version record exists for the requested document."""

    def __init__(self, document_id: str, version_id: str | None = None):
        self.document_id = document_id
        self.version_id = version_id
        target = f"version {version_id} of document {document_id}" if version_id else f"document {document_id}"
        super().__init__(f"No version record found for {target}")


class DocumentTextStore(Protocol):
    """Anything that can resolve a document version and persist its text."""

    async def get_version(self, document_id: str, version_id: str | None = None) -> DocumentVersion | None: ...

    async def update_document_text(
        self,
        document_id: str,
        extracted_text: str,
        *,
        version_id: str | None = None,
        extraction_method: str | None = None,
    ) -> None: ...


class DocumentTextRepository:
    """Stores extracted text on ``document_versions`` rows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_version(
        self, document_id: str, version_id: str | None = None
    ) -> DocumentVersion | None:
        """Get a specific version, or the latest one when ``version_id`` is None."""
        query = select(DocumentVersion).where(DocumentVersion.document_id == document_id)
        if version_id:
            query = query.where(DocumentVersion.id == version_id)
        else:
            query = query.order_by(DocumentVersion.version_number.desc()).limit(1)

        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_text(self, document_id: str, version_id: str | None = None) -> str | None:
        """Previously extracted text, if any."""
        version = await self.get_version(document_id, version_id)
        return version.text_content if version else None

    async def update_document_text(
        self,
        document_id: str,
        extracted_text: str,
        *,
        version_id: str | None = None,
        extraction_method: str | None = None,
    ) -> None:
        """Write extracted text to the target version. Caller commits."""
        version = await self.get_version(document_id, version_id)
        if version is None:
            raise DocumentNotFoundError(document_id, version_id)

        version.text_content = extracted_text
        version.extraction_method = extraction_method
        version.extracted_at = datetime.now(UTC)
        await self.db.flush()
