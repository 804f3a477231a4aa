from __future__ import annotations


class RepositoryError(Exception):
    """Base class for data-layer errors the API maps to client errors."""


class DuplicateEmailError(RepositoryError):
    def __init__(self, email: str) -> None:
        super().__init__(f"A user with email {email!r} already exists")
        self.email = email
