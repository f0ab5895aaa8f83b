"""Raw provider response shapes (GeckoTerminal JSON:API documents)."""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_POOL_TEXT_FIELDS = (
    "name",
    "address",
    "base_token_id",
    "quote_token_id",
    "twitter_handle",
    "telegram_handle",
    "discord_url",
    "image_url",
)
_TOKEN_TEXT_FIELDS = (
    "address",
    "name",
    "symbol",
    "image_url",
    "twitter_handle",
    "telegram_handle",
    "discord_url",
)


def _text_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _mapping_or_none(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None


def _urls_or_none(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [url for url in value if isinstance(url, str) and url]


class ResourceRef(BaseModel):
    """Reference to another JSON:API resource."""

    id: str
    type: str


class Relationship(BaseModel):
    """JSON:API relationship wrapper."""

    data: ResourceRef | None = None


class RawPoolAttributes(BaseModel):
    """Pool attributes as returned by the provider.

    Numeric values arrive as strings, numbers or null; they are kept untyped
    here and parsed leniently by the normalizer. Text and container fields of
    the wrong shape become None instead of invalidating the record.
    """

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    address: str | None = None
    base_token_id: str | None = None
    quote_token_id: str | None = None
    base_token_price_usd: Any = None
    reserve_in_usd: Any = None
    fdv_usd: Any = None
    market_cap_usd: Any = None
    volume_usd: dict[str, Any] | None = None
    transactions: dict[str, Any] | None = None
    pool_created_at: Any = None
    twitter_handle: str | None = None
    telegram_handle: str | None = None
    discord_url: str | None = None
    websites: list[str] | None = None
    image_url: str | None = None

    @field_validator(*_POOL_TEXT_FIELDS, mode="before")
    @classmethod
    def _lenient_text(cls, value: Any) -> str | None:
        return _text_or_none(value)

    @field_validator("volume_usd", "transactions", mode="before")
    @classmethod
    def _lenient_mapping(cls, value: Any) -> dict[str, Any] | None:
        return _mapping_or_none(value)

    @field_validator("websites", mode="before")
    @classmethod
    def _lenient_urls(cls, value: Any) -> list[str] | None:
        return _urls_or_none(value)


class RawPool(BaseModel):
    """Pool resource."""

    type: Literal["pool"] = "pool"
    id: str
    attributes: RawPoolAttributes = Field(default_factory=RawPoolAttributes)
    relationships: dict[str, Relationship] = Field(default_factory=dict)

    def related_id(self, name: str) -> str | None:
        """Return the id of a related resource, if present."""
        relation = self.relationships.get(name)
        if relation is None or relation.data is None:
            return None
        return relation.data.id


class RawTokenAttributes(BaseModel):
    """Token metadata attributes."""

    model_config = ConfigDict(extra="allow")

    address: str | None = None
    name: str | None = None
    symbol: str | None = None
    image_url: str | None = None
    twitter_handle: str | None = None
    telegram_handle: str | None = None
    discord_url: str | None = None
    websites: list[str] | None = None

    @field_validator(*_TOKEN_TEXT_FIELDS, mode="before")
    @classmethod
    def _lenient_text(cls, value: Any) -> str | None:
        return _text_or_none(value)

    @field_validator("websites", mode="before")
    @classmethod
    def _lenient_urls(cls, value: Any) -> list[str] | None:
        return _urls_or_none(value)


class RawToken(BaseModel):
    """Token resource from the `included` side table."""

    type: Literal["token"]
    id: str
    attributes: RawTokenAttributes = Field(default_factory=RawTokenAttributes)


class RawDexAttributes(BaseModel):
    """DEX attributes."""

    model_config = ConfigDict(extra="allow")

    name: str | None = None


class RawDex(BaseModel):
    """DEX resource from the `included` side table."""

    type: Literal["dex"]
    id: str
    attributes: RawDexAttributes = Field(default_factory=RawDexAttributes)


IncludedResource = Annotated[RawToken | RawDex, Field(discriminator="type")]


class PoolPage(BaseModel):
    """One page of new pool listings."""

    pools: list[RawPool] = Field(default_factory=list)
    included: list[IncludedResource] = Field(default_factory=list)
    dropped: int = Field(default=0, description="Records that failed validation")

    def tokens(self) -> dict[str, RawToken]:
        """Included token records keyed by resource id."""
        return {res.id: res for res in self.included if isinstance(res, RawToken)}


class PoolDocument(BaseModel):
    """Single pool lookup response."""

    pool: RawPool
    included: list[IncludedResource] = Field(default_factory=list)

    def base_token(self) -> RawToken | None:
        """Included base token matching the pool's relationship."""
        token_id = self.pool.related_id("base_token")
        for res in self.included:
            if isinstance(res, RawToken) and res.id == token_id:
                return res
        return None


class NetworkListing(BaseModel):
    """Merged pages of new pool listings for a network."""

    network: str
    pools: list[RawPool] = Field(default_factory=list)
    tokens: dict[str, RawToken] = Field(default_factory=dict)
    pages_requested: int = 0
    failed_pages: list[int] = Field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        """True when every requested page failed."""
        return self.pages_requested > 0 and len(self.failed_pages) == self.pages_requested
