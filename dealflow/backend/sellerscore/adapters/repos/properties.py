# sellerscore/adapters/repos/properties.py
from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ...domain.address import address_key, extract_zipcode, owner_name_key, street_line
from ...domain.merge import AUTHORITY_STORE
from ...domain.types import ResolvedAddress, SignalPatch
from ...models import DistressIndicator, PropertyRecord

log = logging.getLogger(__name__)

SOURCE = "store"


def _street_zip_pattern(street: str, zipcode: str) -> str:
    # "addr:123 MAIN ST %33601"; address keys are [A-Z0-9_ ] so only "_" needs escaping
    return address_key(street).replace("_", "\\_") + " %" + zipcode


class SqlAlchemyPropertyStore:
    """
    Persistent-store collaborator: address resolution for id-only requests,
    distress flags, and owner portfolio counts.

    Takes a session factory and opens a short session per call; the fetcher
    runs this concurrently with the HTTP providers.
    """

    source = SOURCE
    requires_address = False

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def resolve_address(self, property_id: str) -> ResolvedAddress | None:
        async with self.session_maker() as session:
            row = await session.get(PropertyRecord, property_id)
        if row is None:
            return None

        line = (row.formatted_address or row.address_line or "").strip()
        if not line:
            return None
        if row.formatted_address:
            # already one line; state/zip are parsed back off the tail when needed
            return ResolvedAddress(address=line)
        return ResolvedAddress(address=line, city=row.city, state=row.state, zipcode=row.zipcode)

    async def get_distress_indicators(
        self,
        property_id: str | None,
        address: ResolvedAddress | None,
    ) -> DistressIndicator | None:
        """
        Rows are keyed by address_key() of the full one-line address
        ("123 Main St, Tampa, FL 33601"). A request that only carries the
        street and a zip still finds the row through a street + zip match.
        """
        conds = []
        if property_id:
            conds.append(DistressIndicator.property_id == property_id)
        if address is not None:
            line = address.one_line
            conds.append(DistressIndicator.address_key == address_key(line))
            street = street_line(address.address)
            zipcode = address.zipcode or extract_zipcode(line)
            if street and zipcode:
                conds.append(DistressIndicator.address_key.like(_street_zip_pattern(street, zipcode), escape="\\"))
        if not conds:
            return None

        q = (
            select(DistressIndicator)
            .where(or_(*conds))
            .order_by(DistressIndicator.updated_at.desc(), DistressIndicator.id.desc())
            .limit(1)
        )
        async with self.session_maker() as session:
            return (await session.execute(q)).scalars().first()

    async def count_owner_properties(self, owner_name: str) -> int | None:
        key = owner_name_key(owner_name)
        if not key:
            return None
        q = select(func.count()).select_from(PropertyRecord).where(PropertyRecord.owner_name_key == key)
        async with self.session_maker() as session:
            n = int((await session.execute(q)).scalar_one())
        return n or None

    async def fetch_signals(
        self,
        *,
        address: ResolvedAddress | None,
        property_id: str | None = None,
    ) -> list[SignalPatch]:
        row = await self.get_distress_indicators(property_id, address)
        if row is None:
            return []
        return [
            SignalPatch(
                SOURCE,
                AUTHORITY_STORE,
                {
                    "pre_foreclosure": row.pre_foreclosure,
                    "tax_delinquent": row.tax_delinquent,
                    "vacant_indicator": row.vacant,
                    "code_liens": row.code_liens,
                },
            )
        ]
