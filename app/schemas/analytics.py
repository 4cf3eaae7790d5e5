"""Analytics response schemas. Money is serialized as decimal strings.

USD fields keep the ``USD`` acronym upper-cased on the wire
(``ggrUSD``, ``totalUSDAmount``), which ``to_camel`` would not produce.
"""

from pydantic import Field

from app.schemas.common import CamelModel


class GGRResponse(CamelModel):
    currency: str
    ggr: str
    ggr_usd: str = Field(alias="ggrUSD")


class DailyVolumeResponse(CamelModel):
    day: str
    currency: str
    total_amount: str
    total_usd_amount: str = Field(alias="totalUSDAmount")


class PercentileResponse(CamelModel):
    user_id: str
    percentile: float
    rank: int
    total_users: int
    total_usd_amount: str = Field(alias="totalUSDAmount")
