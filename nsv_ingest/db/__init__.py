from .repository import InMemoryRepository, Repository, RepositoryError

__all__ = [
    "InMemoryRepository",
    "Repository",
    "RepositoryError",
]
