# app/api/routes/dashboard.py
"""
📊 /api/v1/dashboard (только admin)

Суммы продаж за текущий месяц, текущий день и за период.
"""

from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, require_admin
from app.bot.services.dashboard import SalesService
from app.schemas import SalesRange, SalesTotal
from infrastructure.database.base import get_db_session

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/sales/monthly", response_model=SalesTotal)
async def monthly_sales(
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    return SalesTotal(total_sales=await SalesService(session).total_for_current_month())


@router.get("/sales/daily", response_model=SalesTotal)
async def daily_sales(
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    return SalesTotal(total_sales=await SalesService(session).total_for_current_day())


@router.get("/sales/range", response_model=SalesRange)
async def sales_in_range(
    start_date: date,
    end_date: date,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    sales = SalesService(session)
    return SalesRange(
        total_sales=await sales.total_between(start_date, end_date),
        average_daily_sales=await sales.average_daily(start_date, end_date),
    )
