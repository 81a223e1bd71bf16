from dependency_injector import containers, providers

from ledgerapi.config import Settings
from ledgerapi.providers.queue.sqs import BadgeEventPublisher
from ledgerapi.services.cache_service import CacheService


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class InfraModule(containers.DeclarativeContainer):
    """Process-wide clients shared by every request (cache, queue)."""

    config = providers.DependenciesContainer()

    cache_service = providers.Singleton(CacheService, settings=config.config)
    badge_publisher = providers.Singleton(BadgeEventPublisher, settings=config.config)


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "ledgerapi.deps",
        ],
    )

    config = providers.Container(ConfigModule)
    infra = providers.Container(InfraModule, config=config)
