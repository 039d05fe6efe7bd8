"""FastAPI dependency injection.

Provides common dependencies for API routes.
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import Settings, get_settings
from src.db.database import get_db
from src.db.repository import DocumentTextRepository, DocumentTextStore
from src.extraction.pipeline import ExtractionPipeline, get_pipeline

# Type aliases for cleaner signatures
DB = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Pipeline = Annotated[ExtractionPipeline, Depends(get_pipeline)]


async def get_text_repo(db: DB) -> DocumentTextStore:
    """Get document text repository."""
    return DocumentTextRepository(db)


TextRepo = Annotated[DocumentTextStore, Depends(get_text_repo)]
