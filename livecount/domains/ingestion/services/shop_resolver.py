"""
Shop Resolver Service - get-or-create shop rows by domain
"""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from livecount.core.database.models import Shop
from livecount.core.logging.logger import get_logger
from livecount.shared.helpers import normalize_domain

logger = get_logger(__name__)

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(session: AsyncSession, table):
    """``INSERT`` construct supporting ``ON CONFLICT`` for the bound dialect"""
    dialect_name = session.get_bind().dialect.name
    try:
        return _INSERT_BY_DIALECT[dialect_name](table)
    except KeyError:
        raise NotImplementedError(
            f"ON CONFLICT upserts are not supported for dialect '{dialect_name}'"
        )


class ShopResolverService:
    """Resolves a shop domain to its stable id, creating the row on first sight"""

    async def resolve_shop_id(self, session: AsyncSession, shop_domain: str) -> str:
        """
        Atomic upsert-returning-id for a shop domain.

        Concurrent first requests for the same new domain both land on the
        unique domain constraint; the conflict branch rewrites the domain to
        itself so ``RETURNING`` yields the existing id instead of nothing.

        Args:
            session: Open database session
            shop_domain: Shop domain (e.g., 'mystore.myshopify.com')

        Returns:
            str: Shop ID
        """
        domain = normalize_domain(shop_domain)

        stmt = dialect_insert(session, Shop).values(domain=domain)
        stmt = stmt.on_conflict_do_update(
            index_elements=[Shop.domain],
            set_={"domain": stmt.excluded.domain},
        ).returning(Shop.id)

        result = await session.execute(stmt)
        shop_id = result.scalar_one()

        logger.debug("Resolved shop", shop=domain, shop_id=shop_id)
        return shop_id


# Global instance
shop_resolver = ShopResolverService()
