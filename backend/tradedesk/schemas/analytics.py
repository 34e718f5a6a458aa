from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field

from tradedesk.schemas.common import CamelModel


class MultiWidthMonthlyRequest(CamelModel):
    # loosely typed so the service can answer 400 with a specific message
    product_id: Any = Field(default=None, validation_alias=AliasChoices("productId", "product_id"))
    widths: Any = None
    year: Any = None
    start_date: Any = Field(default=None, validation_alias=AliasChoices("startDate", "start_date"))
    end_date: Any = Field(default=None, validation_alias=AliasChoices("endDate", "end_date"))
