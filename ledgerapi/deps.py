from dependency_injector.wiring import inject, Provide
from fastapi import Depends
from sqlalchemy.orm import Session

from ledgerapi.containers import Container
from ledgerapi.database.session import get_db
from ledgerapi.providers.queue.sqs import BadgeEventPublisher
from ledgerapi.services.cache_service import CacheService

# Services
from ledgerapi.services.ledger_service import LedgerService
from ledgerapi.services.reward_event_service import RewardEventService
from ledgerapi.services.order_service import OrderService
from ledgerapi.services.ad_service import AdService
from ledgerapi.services.economy_service import EconomyService


@inject
def get_cache_service(
    cache: CacheService = Depends(Provide[Container.infra.cache_service]),
) -> CacheService:
    return cache


@inject
def get_badge_publisher(
    publisher: BadgeEventPublisher = Depends(Provide[Container.infra.badge_publisher]),
) -> BadgeEventPublisher:
    return publisher


def get_ledger_service(
    db: Session = Depends(get_db),
    publisher: BadgeEventPublisher = Depends(get_badge_publisher),
) -> LedgerService:
    return LedgerService(db=db, publisher=publisher)


def get_reward_event_service(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    publisher: BadgeEventPublisher = Depends(get_badge_publisher),
) -> RewardEventService:
    return RewardEventService(db=db, cache=cache, publisher=publisher)


def get_order_service(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    publisher: BadgeEventPublisher = Depends(get_badge_publisher),
) -> OrderService:
    return OrderService(db=db, cache=cache, publisher=publisher)


def get_ad_service(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    publisher: BadgeEventPublisher = Depends(get_badge_publisher),
) -> AdService:
    return AdService(db=db, cache=cache, publisher=publisher)


def get_economy_service(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    publisher: BadgeEventPublisher = Depends(get_badge_publisher),
) -> EconomyService:
    return EconomyService(db=db, cache=cache, publisher=publisher)
