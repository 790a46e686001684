"""
Currency Routes
Currencies offered for company setup and expense entry
"""

from fastapi import APIRouter, Depends
from typing import List

from src.schemas.user import CurrencyResponse
from src.services.currency_service import CurrencyService
from src.services.dependencies import get_currency_service

router = APIRouter()


@router.get("", response_model=List[CurrencyResponse])
async def list_currencies(currency_service: CurrencyService = Depends(get_currency_service)):
    """All selectable currencies, sorted by code"""
    return await currency_service.list_currencies()
