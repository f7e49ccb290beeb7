# app/bot/services/addresses.py
"""Адреса доставки пользователя."""

from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import ForbiddenError, InvalidInputError, ResourceNotFoundError
from app.schemas import AddressCreate
from infrastructure.database.models import Address
from infrastructure.database.repositories import AddressRepository


class AddressService:

    def __init__(self, session: AsyncSession):
        self.addresses = AddressRepository(session)

    async def list_for_user(self, user_id: int) -> List[Address]:
        return await self.addresses.list_for_user(user_id)

    async def save(self, user_id: int, request: AddressCreate) -> Address:
        line = request.address_line.strip()
        if not line:
            raise InvalidInputError("Address line is empty")

        return await self.addresses.create(Address(
            user_id=user_id,
            address_line=line,
            city=request.city.strip() or "Unknown",
            latitude=request.latitude,
            longitude=request.longitude,
        ))

    async def get_for_user(self, user_id: int, address_id: int) -> Address:
        address = await self.addresses.get_by_id(address_id)
        if address is None:
            raise ResourceNotFoundError(f"Address {address_id} not found")
        if address.user_id != user_id:
            raise ForbiddenError("Address belongs to another user")
        return address
