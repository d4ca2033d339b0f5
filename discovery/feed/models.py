from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class BusinessCandidate(BaseModel):
    """A business joined with its aggregate stats, as the feed engine sees it."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    description: str | None = None
    category: str | None = None
    interest_id: str | None = None
    sub_interest_id: str | None = None
    location: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None
    website: str | None = None
    image_url: str | None = None
    uploaded_image: str | None = None
    verified: bool | None = None
    price_range: str | None = None
    badge: str | None = None
    slug: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    created_at: str | None = None
    updated_at: str | None = None
    total_reviews: int = 0
    average_rating: float = 0.0
    percentiles: dict[str, float | None] | None = None
    distance_km: float | None = None
    cursor_id: str | None = None
    cursor_created_at: str | None = None
    personalization_score: float | None = None
    diversity_rank: int | None = None

    @property
    def has_photo(self) -> bool:
        return bool(self.image_url or self.uploaded_image)


class BusinessCard(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    image: str | None = None
    category: str | None = None
    sub_interest_id: str | None = Field(default=None, alias="subInterestId")
    sub_interest_label: str | None = Field(default=None, alias="subInterestLabel")
    interest_id: str | None = Field(default=None, alias="interestId")
    location: str | None = None
    rating: float | None = None
    total_rating: float | None = Field(default=None, alias="totalRating")
    reviews: int = 0
    badge: str | None = None
    href: str
    verified: bool = False
    price_range: str = Field(default="$$", alias="priceRange")
    distance: float | None = None
    has_rating: bool = Field(default=False, alias="hasRating")
    percentiles: dict[str, float] | None = None


class BucketCounts(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    personal_matches: int = Field(default=0, alias="personalMatches")
    top_rated: int = Field(default=0, alias="topRated")
    explore: int = 0


class MixedFeedMeta(BaseModel):
    count: int
    limit: int
    strategy: str = "mixed"
    buckets: BucketCounts


class FeedCursor(BaseModel):
    cursor_id: str
    cursor_created_at: str | None = None


class StandardFeedMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    count: int
    limit: int
    has_more: bool = Field(alias="hasMore")
    next_cursor: FeedCursor | None = Field(default=None, alias="nextCursor")


class SpecialListMeta(BaseModel):
    count: int
    type: str
    category: str | None = None


class FeedResponse(BaseModel):
    data: list[BusinessCard]
    meta: MixedFeedMeta | StandardFeedMeta | SpecialListMeta

    def to_json(self) -> dict:
        return {
            "data": [card.model_dump(by_alias=True, exclude_none=True) for card in self.data],
            "meta": self.meta.model_dump(by_alias=True),
        }


class DealBreaker(BaseModel):
    id: str
    label: str
    icon: str


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
