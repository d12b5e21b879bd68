"""PricingService: the pricing/cost table, persisted as JSON settings."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.config import OrderDeskConfig, load_orderdesk_config
from orderdesk.core.exceptions import ConfigurationError, NotFoundError, ValidationError
from orderdesk.infra.database.repositories.setting import SettingRepository
from orderdesk.lifecycle.types import BUILTIN_LINES, PricingTable, ProductLine, ShippingRule
from orderdesk.schemas import ProductLineInput, ShippingRuleInput, parse_payload

logger = logging.getLogger(__name__)

LINE_PREFIX = "pricing.line."
SHIPPING_KEY = "pricing.shipping"


class PricingService:
    """Stored product lines override the configured defaults line by line."""

    def __init__(self, session: AsyncSession, config: Optional[OrderDeskConfig] = None) -> None:
        self._settings = SettingRepository(session)
        self._config = config or load_orderdesk_config()

    async def get_table(self) -> PricingTable:
        defaults = PricingTable.from_config(self._config)
        lines = dict(defaults.lines)
        for key, value in (await self._settings.values_with_prefix(LINE_PREFIX)).items():
            try:
                line = ProductLine.from_dict(value)
            except (KeyError, TypeError, ValueError) as exc:
                raise ConfigurationError(
                    f"Stored product line {key!r} is malformed.",
                    details={"key": key, "value": value},
                    cause=exc,
                ) from exc
            lines[line.key] = line

        shipping = defaults.shipping
        raw = await self._settings.get_value(SHIPPING_KEY)
        if raw is not None:
            try:
                shipping = ShippingRule.from_dict(raw)
            except (KeyError, TypeError, ValueError) as exc:
                raise ConfigurationError(
                    "Stored shipping rule is malformed.",
                    details={"value": raw},
                    cause=exc,
                ) from exc
        return PricingTable(lines=lines, shipping=shipping)

    async def set_line(self, data: Union[ProductLineInput, Mapping[str, Any]]) -> ProductLine:
        """Add a product line or replace the price/cost of an existing one."""
        payload = parse_payload(ProductLineInput, data)
        line = ProductLine(**payload.model_dump())
        await self._settings.set_value(
            LINE_PREFIX + line.key, line.to_dict(), description=f"product line {line.name}"
        )
        logger.info(
            "PricingService: line %s set (price=%d cost=%d)",
            line.key, line.unit_price, line.unit_cost,
        )
        return line

    async def remove_line(self, key: str) -> None:
        if key in BUILTIN_LINES:
            raise ValidationError(
                f"Built-in product line {key!r} cannot be removed.",
                details={"key": key},
            )
        if not await self._settings.delete_key(LINE_PREFIX + key):
            raise NotFoundError(f"Product line {key!r} not found.", details={"key": key})
        logger.info("PricingService: line %s removed", key)

    async def set_shipping_rule(
        self, data: Union[ShippingRuleInput, Mapping[str, Any]]
    ) -> ShippingRule:
        payload = parse_payload(ShippingRuleInput, data)
        rule = ShippingRule(flat_fee=payload.flat_fee, free_threshold=payload.free_threshold)
        await self._settings.set_value(SHIPPING_KEY, rule.to_dict(), description="shipping rule")
        logger.info(
            "PricingService: shipping rule set (fee=%d, free from %d)",
            rule.flat_fee, rule.free_threshold,
        )
        return rule
