from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from venue_pricing.models.pricing import PricingOptions


# Request DTO
class PricingRequest(BaseModel):
    """Request for hourly price calculation"""
    model_config = ConfigDict(populate_by_name=True)

    sub_location_id: str = Field(..., min_length=1, alias="subLocationId", description="Target SubLocation ID")
    start_time: datetime = Field(..., alias="startTime", description="Booking start (ISO-8601, naive = local time of the SubLocation)")
    end_time: datetime = Field(..., alias="endTime", description="Booking end (ISO-8601)")

    event_id: Optional[str] = Field(None, alias="eventId", description="Pin pricing to one event")
    is_event_booking: bool = Field(False, alias="isEventBooking", description="Keep $0 event grace windows free")
    timezone: Optional[str] = Field(None, description="Timezone override (IANA name)")
    use_duration_context: bool = Field(False, alias="useDurationContext", description="Evaluate DURATION_BASED windows")
    reference_time: Optional[datetime] = Field(None, alias="referenceTime", description="Duration reference (defaults to startTime)")
    previous_smoothed_pressure: Optional[float] = Field(None, alias="previousSmoothedPressure", description="Surge EMA state")

    def to_options(self) -> PricingOptions:
        return PricingOptions(
            use_duration_context=self.use_duration_context,
            reference_time=self.reference_time,
            is_event_booking=self.is_event_booking,
            event_id=self.event_id,
            previous_smoothed_pressure=self.previous_smoothed_pressure,
            timezone=self.timezone,
        )
