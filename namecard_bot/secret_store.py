"""Secret resolution for the name card bot.

Two backends:
1. Environment variables: local development (values may come from .env).
2. Google Secret Manager: hosted deployments, where secrets are not baked
   into the service environment.

The backend is chosen once at startup by build_secret_resolver() and
injected into AppContext; nothing else reads credentials directly.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod

from google.api_core.exceptions import NotFound
from google.cloud import secretmanager

from namecard_bot.config import SECRET_BACKEND, SECRET_MANAGER_PROJECT

logger = logging.getLogger(__name__)


class MissingSecretError(RuntimeError):
    """A required secret is unset or empty."""

    def __init__(self, name: str) -> None:
        super().__init__(f"{name} is required")
        self.name = name


class SecretResolver(ABC):
    @abstractmethod
    async def get(self, name: str) -> str | None: ...

    async def require(self, name: str) -> str:
        value = await self.get(name)
        if not value:
            raise MissingSecretError(name)
        return value


class EnvSecretResolver(SecretResolver):
    """Reads secrets from the process environment."""

    async def get(self, name: str) -> str | None:
        value = os.getenv(name)
        return value.strip() if value else None


class SecretManagerResolver(SecretResolver):
    """Reads the latest version of each secret from Google Secret Manager.

    Values are cached for the process lifetime; a missing secret resolves
    to None rather than raising so callers can fall back.
    """

    def __init__(self, project: str, client: secretmanager.SecretManagerServiceClient | None = None) -> None:
        self._project = project
        self._client = client or secretmanager.SecretManagerServiceClient()
        self._cache: dict[str, str | None] = {}

    def _version_name(self, name: str) -> str:
        return f"projects/{self._project}/secrets/{name}/versions/latest"

    def _access(self, name: str) -> str | None:
        try:
            response = self._client.access_secret_version(name=self._version_name(name))
        except NotFound:
            logger.warning("Secret %s not found in project %s", name, self._project)
            return None
        return response.payload.data.decode("utf-8").strip() or None

    async def get(self, name: str) -> str | None:
        if name in self._cache:
            return self._cache[name]
        loop = asyncio.get_running_loop()
        value = await loop.run_in_executor(None, self._access, name)
        self._cache[name] = value
        return value


def build_secret_resolver(
    backend: str = SECRET_BACKEND,
    project: str | None = SECRET_MANAGER_PROJECT,
) -> SecretResolver:
    """Select the secret backend for this process."""
    if backend == "env":
        return EnvSecretResolver()
    if backend == "secret-manager":
        if not project:
            raise ValueError(
                "SECRET_MANAGER_PROJECT (or GOOGLE_CLOUD_PROJECT) must be set for the secret-manager backend"
            )
        logger.info("Reading secrets from Secret Manager project %s", project)
        return SecretManagerResolver(project)
    raise ValueError(f"Unknown SECRET_BACKEND: {backend}")
