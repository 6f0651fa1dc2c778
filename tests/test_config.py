"""Tests for credential loading."""
import pytest

from tablerag.config import load_credentials
from tablerag.errors import ConfigurationError

FULL_ENV = {
    "OPENAI_API_KEY": "sk-test",
    "QDRANT_URL": "https://qdrant.test:6333",
    "QDRANT_API_KEY": "qd-key",
}


def test_qdrant_credentials():
    credentials = load_credentials(FULL_ENV, backend="qdrant")

    assert credentials.openai_api_key == "sk-test"
    assert credentials.qdrant_url == "https://qdrant.test:6333"
    assert credentials.qdrant_api_key == "qd-key"
    assert credentials.backend == "qdrant"


def test_missing_variables_are_all_named():
    with pytest.raises(ConfigurationError) as exc_info:
        load_credentials({"QDRANT_URL": "  "}, backend="qdrant")

    message = str(exc_info.value)
    for name in ("OPENAI_API_KEY", "QDRANT_URL", "QDRANT_API_KEY"):
        assert name in message


def test_faiss_backend_needs_only_openai_key():
    credentials = load_credentials({"OPENAI_API_KEY": "sk-test"}, backend="faiss")

    assert credentials.backend == "faiss"
    assert credentials.qdrant_url is None


def test_backend_from_environment():
    credentials = load_credentials({"OPENAI_API_KEY": "sk", "VECTOR_BACKEND": "faiss"})

    assert credentials.backend == "faiss"


def test_unknown_backend():
    with pytest.raises(ConfigurationError, match="VECTOR_BACKEND"):
        load_credentials(FULL_ENV, backend="pinecone")


def test_repr_hides_secrets():
    text = repr(load_credentials(FULL_ENV, backend="qdrant"))

    assert "sk-test" not in text
    assert "qd-key" not in text
