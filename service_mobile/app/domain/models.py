"""
Request and response models for the mobile API.

Mobile-facing payloads use the camelCase field names the app consumes; the
radio configuration keeps its historical snake_case shape.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


# Settings

class MobileSettings(BaseModel):
    """Feature switches and display options pushed to the app."""

    showOnlyLastActivePoll: bool = False
    maxNewsCount: int = Field(default=50, ge=1, le=500)
    enablePolls: bool = True
    enableNews: bool = True
    playerLogoUrl: Optional[str] = None
    cardDisplayMode: Literal["grid", "list"] = "grid"
    maxFeaturedCards: int = Field(default=3, ge=0, le=50)
    enableCardAnimation: bool = True
    maintenanceMode: bool = False
    minimumAppVersion: str = "1.0.0"
    forceUpdate: bool = False


class MobileSettingsUpdate(BaseModel):
    """Partial settings update; omitted fields keep their stored value."""

    showOnlyLastActivePoll: Optional[bool] = None
    maxNewsCount: Optional[int] = Field(default=None, ge=1, le=500)
    enablePolls: Optional[bool] = None
    enableNews: Optional[bool] = None
    playerLogoUrl: Optional[str] = None
    cardDisplayMode: Optional[Literal["grid", "list"]] = None
    maxFeaturedCards: Optional[int] = Field(default=None, ge=0, le=50)
    enableCardAnimation: Optional[bool] = None
    maintenanceMode: Optional[bool] = None
    minimumAppVersion: Optional[str] = Field(default=None, pattern=r"^\d+(\.\d+)*$")
    forceUpdate: Optional[bool] = None


class VersionCheck(BaseModel):
    updateAvailable: bool
    forceUpdate: bool
    minimumVersion: str


# Cards

class MobileCard(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    imageUrl: Optional[str] = None
    redirectUrl: Optional[str] = None
    isFeatured: bool = False
    displayOrder: int = 0
    isActive: bool = True
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class CardInput(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    imageUrl: Optional[str] = Field(default=None, max_length=500)
    redirectUrl: Optional[str] = Field(default=None, max_length=500)
    isFeatured: bool = False
    displayOrder: Optional[int] = Field(default=None, ge=0)
    isActive: bool = True


class CardUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    imageUrl: Optional[str] = Field(default=None, max_length=500)
    redirectUrl: Optional[str] = Field(default=None, max_length=500)
    isFeatured: Optional[bool] = None
    displayOrder: Optional[int] = Field(default=None, ge=0)
    isActive: Optional[bool] = None


class CardOrder(BaseModel):
    id: int
    order: int = Field(ge=0)


class ReorderRequest(BaseModel):
    orders: List[CardOrder] = Field(min_length=1)


# Radio

ConnectionStatus = Literal["active", "testing", "failed"]


class MobileRadioConfig(BaseModel):
    stream_url: str
    metadata_url: Optional[str] = None
    station_name: str
    connection_status: ConnectionStatus
    last_tested: str


class RadioSettingsUpdate(BaseModel):
    stream_url: str
    metadata_url: Optional[str] = None
    station_name: str


class StreamTestRequest(BaseModel):
    url: str


# Polls

class MobilePollItem(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    imageUrl: Optional[str] = None
    voteCount: int = 0
    percentage: int = 0
    displayOrder: int = 0


class MobilePoll(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    pollType: Optional[str] = None
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    isActive: bool = True
    totalVotes: int = 0
    items: List[MobilePollItem] = Field(default_factory=list)


class DeviceInfo(BaseModel):
    deviceId: str = Field(min_length=1, max_length=255)
    platform: Optional[str] = None
    appVersion: Optional[str] = None
    userAgent: Optional[str] = None


class VoteRequest(BaseModel):
    itemId: int
    deviceInfo: DeviceInfo


class VoteCount(BaseModel):
    itemId: int
    voteCount: int
    percentage: int


class VoteResult(BaseModel):
    success: bool
    message: str
    updatedCounts: Optional[List[VoteCount]] = None


# News

class MobileNewsItem(BaseModel):
    id: int
    title: str
    slug: str
    summary: Optional[str] = None
    featuredImage: Optional[str] = None
    category: Optional[str] = None
    categoryId: Optional[int] = None
    isFeatured: bool = False
    isBreaking: bool = False
    publishedAt: Optional[str] = None
    views: int = 0


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    hasNext: bool
    hasPrev: bool


class PaginatedNews(BaseModel):
    items: List[MobileNewsItem] = Field(default_factory=list)
    pagination: Pagination


# Cache administration

class InvalidateRequest(BaseModel):
    patterns: List[str] = Field(min_length=1)
