"""
Cache key generation utilities.
Key Format: <domain>:<entity>:<id>:<variant>

Invalidation uses the same builders with "*" as the variant so that every
cached variant of an entity is dropped at once.
"""

from typing import Any, List

REWARD_EVENTS_KEY = "rewards:events"
AD_PACKAGES_KEY = "ads:packages"
FEATURED_ADS_KEY = "ads:featured"
ECONOMY_CONFIG_KEY = "economy:config"


def products_feed_pattern() -> str:
    return "products:feed:*"


def product_detail_key(product_id: Any, variant: str = "*") -> str:
    return f"product:detail:{product_id}:{variant}"


def orders_key(user_id: Any, role: str = "*") -> str:
    """orders:<user>:<buyer|seller>"""
    return f"orders:{user_id}:{role}"


def purchase_invalidation_keys(product_id: Any, buyer_id: Any, seller_id: Any) -> List[str]:
    """구매 커밋 후 무효화해야 하는 키/패턴 목록"""
    return [
        products_feed_pattern(),
        product_detail_key(product_id),
        orders_key(buyer_id),
        orders_key(seller_id),
    ]
