# app/api/routes/addresses.py
"""📍 Адреса текущего пользователя."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_current_user
from app.bot.services.addresses import AddressService
from app.schemas import AddressCreate, AddressDTO
from infrastructure.database.base import get_db_session

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.get("", response_model=List[AddressDTO])
async def list_addresses(
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    return await AddressService(session).list_for_user(user.id)


@router.post("", response_model=AddressDTO, status_code=status.HTTP_201_CREATED)
async def create_address(
    request: AddressCreate,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    return await AddressService(session).save(user.id, request)


@router.get("/{address_id}", response_model=AddressDTO)
async def get_address(
    address_id: int,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    return await AddressService(session).get_for_user(user.id, address_id)
