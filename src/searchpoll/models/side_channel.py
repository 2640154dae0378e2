"""Side-channel models — Promotional content loaded independently of polling."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AdItem(BaseModel):
    """An inline advertisement shown between results."""

    model_config = {"populate_by_name": True}

    rank: int = 0
    headline: str = ""
    description: str = ""
    site: str = ""
    company_name: str = Field(default="", alias="companyName")
    logo_url: str = Field(default="", alias="logoUrl")
    background_image_url: str = Field(default="", alias="backgroundImageUrl")
    booking_button_text: str = Field(default="", alias="bookingButtonText")
    product_type: str = Field(default="", alias="productType")
    impression_url: str = Field(default="", alias="impressionUrl")
    track_url: str | None = Field(default=None, alias="trackUrl")
    deep_link: str = Field(default="", alias="deepLink")


class AdLeg(BaseModel):
    """One leg of the searched route, as the ad service expects it."""

    date: str = Field(description="Departure date, YYYY-MM-DD")
    origin_airport: str = Field(alias="originAirport")
    destination_airport: str = Field(alias="destinationAirport")

    model_config = {"populate_by_name": True}


class AdContext(BaseModel):
    """What the ad service needs to know about the current search."""

    model_config = {"populate_by_name": True}

    cabin_class: str = Field(default="economy", alias="cabinClass")
    legs: list[AdLeg] = Field(default_factory=list)
    passengers: list[str] = Field(default_factory=lambda: ["adult"])


class SideChannelData(BaseModel):
    """Ads plus whether they finished loading."""

    items: list[AdItem] = Field(default_factory=list)
    loaded: bool = False
