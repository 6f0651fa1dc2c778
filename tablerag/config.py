"""Application configuration with sensible defaults."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from tablerag.errors import ConfigurationError

load_dotenv()

# Paths
BASE_DIR = Path(__file__).parent.parent
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))

# OpenAI-compatible provider
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "512"))

# Vector store
VECTOR_BACKEND = os.getenv("VECTOR_BACKEND", "qdrant")  # qdrant | faiss
COLLECTION_NAME = os.getenv("COLLECTION_NAME", "csv-files")

# Network
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60.0"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "console")  # console | json

SUPPORTED_BACKENDS = ("qdrant", "faiss")


@dataclass(frozen=True)
class Credentials:
    """Secrets and endpoints needed to build the service clients."""

    openai_api_key: str
    qdrant_url: Optional[str] = None
    qdrant_api_key: Optional[str] = None
    backend: str = "qdrant"

    def __repr__(self) -> str:
        return f"Credentials(backend={self.backend!r}, qdrant_url={self.qdrant_url!r})"


def load_credentials(
    environ: Optional[Mapping[str, str]] = None,
    backend: Optional[str] = None,
) -> Credentials:
    """Read credentials from the environment.

    Args:
        environ: Mapping to read from (defaults to os.environ)
        backend: Vector backend override (defaults to VECTOR_BACKEND)

    Returns:
        Credentials for the selected backend

    Raises:
        ConfigurationError: If the backend is unknown or any required
            variable is missing or blank
    """
    env = os.environ if environ is None else environ
    backend = backend or env.get("VECTOR_BACKEND") or VECTOR_BACKEND

    if backend not in SUPPORTED_BACKENDS:
        raise ConfigurationError(
            f"Unknown VECTOR_BACKEND {backend!r}; "
            f"expected one of {', '.join(SUPPORTED_BACKENDS)}"
        )

    required = ["OPENAI_API_KEY"]
    if backend == "qdrant":
        required += ["QDRANT_URL", "QDRANT_API_KEY"]

    missing = [name for name in required if not (env.get(name) or "").strip()]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    return Credentials(
        openai_api_key=env["OPENAI_API_KEY"].strip(),
        qdrant_url=(env.get("QDRANT_URL") or "").strip() or None,
        qdrant_api_key=(env.get("QDRANT_API_KEY") or "").strip() or None,
        backend=backend,
    )
