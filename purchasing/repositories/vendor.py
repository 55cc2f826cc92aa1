"""Vendor repository."""


from purchasing.domain.vendor import Vendor
from purchasing.repositories.base import BaseRepository


class VendorRepository(BaseRepository[Vendor]):
    model = Vendor

    async def get_by_name(self, name: str) -> Vendor | None:
        return await self.get_by(name=name)
