from __future__ import annotations

import pytest

from config import LLMSettings, Settings, SourceSettings, StorageSettings


@pytest.fixture
def settings() -> Settings:
    return Settings(
        sources=SourceSettings(max_retries=0, retry_delay=0.0),
        storage=StorageSettings(backend="memory"),
        llm=LLMSettings(provider="groq", groq_api_key=None),
    )
