from __future__ import annotations

import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, cast
from urllib.parse import urlparse

from pymongo import AsyncMongoClient

from refkeeper.config import Config
from refkeeper.core.db import MongoDocumentStore
from refkeeper.core.store import DocumentStore


class Service:
    """Base class for services with direct document store access."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on application startup."""

    async def on_stop(self) -> None:
        """Cleanup service on application shutdown."""

    @property
    def core(self) -> Core:
        """Get the core application context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core application context."""
        self._core = core


class Services:
    """Service registry that automatically discovers and initializes services."""

    from refkeeper.core.modules.access.service import AccessService  # noqa: PLC0415
    from refkeeper.core.modules.cascade.service import CascadeService  # noqa: PLC0415
    from refkeeper.core.modules.comment.service import CommentService  # noqa: PLC0415
    from refkeeper.core.modules.counter.service import CounterService  # noqa: PLC0415
    from refkeeper.core.modules.notification.service import NotificationService  # noqa: PLC0415
    from refkeeper.core.modules.orphan.service import OrphanService  # noqa: PLC0415
    from refkeeper.core.modules.social.service import SocialService  # noqa: PLC0415
    from refkeeper.core.modules.user.service import UserService  # noqa: PLC0415

    user: UserService
    access: AccessService
    counter: CounterService
    notification: NotificationService
    comment: CommentService
    social: SocialService
    cascade: CascadeService
    orphan: OrphanService

    def __init__(self, store: DocumentStore) -> None:
        """Initialize all services automatically using service configuration."""
        self._services: list[Service] = []
        self._store = store

        # Service configuration: (attribute_name, module_path, class_name)
        # Leaf services first; cascade and orphan call into the others
        service_configs = [
            ("user", "refkeeper.core.modules.user.service", "UserService"),
            ("access", "refkeeper.core.modules.access.service", "AccessService"),
            ("counter", "refkeeper.core.modules.counter.service", "CounterService"),
            ("notification", "refkeeper.core.modules.notification.service", "NotificationService"),
            ("comment", "refkeeper.core.modules.comment.service", "CommentService"),
            ("social", "refkeeper.core.modules.social.service", "SocialService"),
            ("cascade", "refkeeper.core.modules.cascade.service", "CascadeService"),
            ("orphan", "refkeeper.core.modules.orphan.service", "OrphanService"),
        ]

        # Dynamically import and instantiate services
        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(store)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        """Start all services that have startup logic."""
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        """Stop all services that have cleanup logic."""
        for service in self._services:
            await service.on_stop()


class Core:
    """Container providing config, the document store, and all service instances."""

    config: Config
    store: DocumentStore
    services: Services

    def __init__(self, config: Config, store: DocumentStore | None = None) -> None:
        """Initialize core with config and a store (MongoDB unless one is given), and auto-register services."""
        self.config = config
        self.store = store if store is not None else self._connect_mongo(config)
        self.services = Services(self.store)
        self.services.set_core(self)

    @staticmethod
    def _connect_mongo(config: Config) -> MongoDocumentStore:
        client: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(config.database_url, tz_aware=True)
        database = client.get_database(urlparse(config.database_url).path[1:])
        return MongoDocumentStore(client, database, config.batch_size, config.use_transactions)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage application lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        """Start all services on application startup."""
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close the store connection on shutdown."""
        await self.services.stop_all()
        await self.store.close()
