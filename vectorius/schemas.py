"""
Record shapes the language model must return
"""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^\d{1,2}:\d{2}$"

EventType = Literal["appointment", "school_event", "travel", "extracurricular", "study_block", "other"]


class ExtractedEvent(BaseModel):
    """Calendar event pulled out of a school e-mail"""
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    date: str = Field(pattern=DATE_PATTERN)
    start_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    end_time: Optional[str] = Field(default=None, pattern=TIME_PATTERN)
    type: Optional[EventType] = None
    all_day: bool = False
    description: Optional[str] = None


class ExtractedMilestone(BaseModel):
    """Study block leading up to an assignment due date"""
    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    date: str = Field(pattern=DATE_PATTERN)
    start_time: str = Field(pattern=TIME_PATTERN)
    duration_minutes: int = Field(gt=0)
    type: Literal["study_block"] = "study_block"


class ScheduleHint(BaseModel):
    """Existing calendar entry the study plan should try to avoid"""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
