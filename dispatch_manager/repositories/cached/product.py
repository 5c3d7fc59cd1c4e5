"""
Cached Product Repository

Price aggregates are boxed before caching and tagged as reports.
"""

from decimal import Decimal
from typing import List, Tuple
from uuid import UUID

from ...domain.cache.value_objects import CacheKey, CacheTags
from ...domain.cache.wrappers import AverageProductPriceWrapper, ProductPriceRangeWrapper
from ...models import Product
from ..interfaces import ProductListItem, ProductRepository
from .base import CachedRepository


class CachedProductRepository(CachedRepository, ProductRepository):
    """Cache-aside decorator for a ProductRepository."""

    model = Product
    entity_name = "product"
    collection_name = "products"
    type_tag = CacheTags.PRODUCTS
    list_tag = CacheTags.PRODUCT_LISTS

    inner: ProductRepository

    def entity_tag(self, id: UUID) -> str:
        return CacheTags.product(id)

    async def search_by_name(self, name: str) -> List[Product]:
        return await self._get_or_load(
            lambda: CacheKey.product_search(name),
            lambda: self.inner.search_by_name(name),
            self._collection_tags(),
            self.policy.search_seconds,
            expected_type=list,
        )

    async def get_active_products(self) -> List[Product]:
        return await self._get_or_load(
            CacheKey.active_products,
            self.inner.get_active_products,
            self._collection_tags(),
            self.policy.list_seconds,
            expected_type=list,
        )

    async def get_products_by_price_range(
        self, min_price: Decimal, max_price: Decimal
    ) -> List[Product]:
        return await self._get_or_load(
            lambda: CacheKey.products_by_price_range(min_price, max_price),
            lambda: self.inner.get_products_by_price_range(min_price, max_price),
            self._collection_tags(),
            self.policy.list_seconds,
            expected_type=list,
        )

    async def get_product_list(self) -> List[ProductListItem]:
        return await self._get_or_load(
            CacheKey.product_list,
            self.inner.get_product_list,
            self._collection_tags(),
            self.policy.list_seconds,
            expected_type=list,
        )

    async def get_average_product_price(self) -> Decimal:
        return await self._get_or_load(
            CacheKey.average_product_price,
            self.inner.get_average_product_price,
            [CacheTags.PRODUCTS, CacheTags.REPORTS],
            self.policy.analytics_seconds,
            expected_type=AverageProductPriceWrapper,
            box=AverageProductPriceWrapper,
            unbox=lambda wrapper: wrapper.average_price,
        )

    async def get_price_range(self) -> Tuple[Decimal, Decimal]:
        return await self._get_or_load(
            CacheKey.product_price_range,
            self.inner.get_price_range,
            [CacheTags.PRODUCTS, CacheTags.REPORTS],
            self.policy.analytics_seconds,
            expected_type=ProductPriceRangeWrapper,
            box=lambda price_range: ProductPriceRangeWrapper(*price_range),
            unbox=lambda wrapper: wrapper.unwrap(),
        )
