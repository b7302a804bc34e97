import logging
from decimal import Decimal
from typing import Optional

from stoq.domain.models import TaxInfo, UserProfile

logger = logging.getLogger(__name__)


def default_tax_type(country: Optional[str]) -> str:
    return "GST/HST" if country == "Canada" else "Sales Tax"


async def get_tax_info(tax_rates, profile: Optional[UserProfile]) -> TaxInfo:
    """Ставка по адресу бизнеса: сначала по городу, потом по провинции/штату. Без адреса налог 0"""
    if not profile or not profile.business_country or not profile.business_state:
        return TaxInfo()

    country, state, city = profile.business_country, profile.business_state, profile.business_city
    try:
        rate = None
        if city:
            rate = await tax_rates.get_rate(country, state, city)
        if rate is None:
            rate = await tax_rates.get_rate(country, state)
        tax_type = await tax_rates.get_type(country, state) or default_tax_type(country)
    except Exception as e:
        logger.warning(f"Не удалось получить ставку налога для {country}/{state}: {e}")
        return TaxInfo(tax_type=default_tax_type(country))

    if rate is None:
        return TaxInfo(tax_type=tax_type)
    return TaxInfo(tax_rate=Decimal(rate) / 100, tax_type=tax_type)
