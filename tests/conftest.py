import pytest

from src.core.config import get_settings

from .builders import CONTRACT_SENTENCE, make_pdf


@pytest.fixture
def contract_pdf() -> bytes:
    return make_pdf([CONTRACT_SENTENCE])


@pytest.fixture
def encrypted_pdf() -> bytes:
    return make_pdf([CONTRACT_SENTENCE], trailer_extra=b" /Encrypt 99 0 R")


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Settings are lru_cached; isolate env changes between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
