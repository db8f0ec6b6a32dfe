"""Abstract interfaces for StudyHub's external collaborators.

Each interface is an ABC that concrete adapters under ``src/providers/``
implement.  Services depend only on these contracts, so tests can inject
``MagicMock(spec=...)`` fakes without patching modules.
"""

from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.persistence_gateway import IPersistenceGateway

__all__ = [
    "ILLMProvider",
    "IPersistenceGateway",
]
