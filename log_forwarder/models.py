"""
Pydantic models for CloudWatch Logs subscription payloads and delivery results
"""

from typing import List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator


DATA_MESSAGE = 'DATA_MESSAGE'
CONTROL_MESSAGE = 'CONTROL_MESSAGE'


class LogEvent(BaseModel):
    """Single log event as delivered by a CloudWatch Logs subscription"""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: Optional[str] = Field(default=None, description="Opaque event identifier (discarded)")
    timestamp: int = Field(..., description="Event time in epoch milliseconds")
    message: str = Field(..., description="Raw log line")


class CloudWatchLogsData(BaseModel):
    """Decoded awslogs.data payload"""
    model_config = ConfigDict(populate_by_name=True)

    message_type: Literal["DATA_MESSAGE", "CONTROL_MESSAGE"] = Field(..., alias='messageType')
    owner: Optional[str] = Field(default=None)
    log_group: str = Field(default='', alias='logGroup')
    log_stream: str = Field(default='', alias='logStream')
    subscription_filters: List[str] = Field(default_factory=list, alias='subscriptionFilters')
    log_events: List[LogEvent] = Field(default_factory=list, alias='logEvents')

    @property
    def is_control_message(self) -> bool:
        return self.message_type == CONTROL_MESSAGE


class SumoMetadataOverride(BaseModel):
    """
    Per-message metadata override carried in a JSON log line as `_sumo_metadata`.

    Each non-empty field replaces the corresponding part of the metadata key;
    `source` maps to the X-Sumo-Name header. Fields are validated one at a
    time so a badly typed field never discards its siblings.
    """
    model_config = ConfigDict(extra='ignore')

    category: Optional[str] = None
    host: Optional[str] = None
    source: Optional[str] = None

    @field_validator('category', 'host', 'source', mode='before')
    @classmethod
    def stringify_scalar(cls, v):
        # Falsy values leave the key part unchanged, true/false render lowercase
        if isinstance(v, bool):
            return 'true' if v else None
        if isinstance(v, (int, float)):
            if not v or v != v:
                return None
            if isinstance(v, float) and v.is_integer():
                return str(int(v))
            return str(v)
        if isinstance(v, str):
            return v
        return None


class DeliverySummary(BaseModel):
    """Aggregated outcome of delivering every metadata-key group of one batch"""
    messages_sent: int = 0
    message_errors: List[str] = Field(default_factory=list)

    @field_validator('messages_sent')
    @classmethod
    def validate_messages_sent(cls, v):
        if v < 0:
            raise ValueError('messages_sent cannot be negative')
        return v

    @property
    def succeeded(self) -> bool:
        return not self.message_errors

    @property
    def total(self) -> int:
        return self.messages_sent + len(self.message_errors)
