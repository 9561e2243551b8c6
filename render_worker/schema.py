from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _WireModel(BaseModel):
    # snake_case in Python, camelCase on the wire
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class AnimationCode(_WireModel):
    html_content: str = Field(..., alias="htmlContent")


class Dimensions(_WireModel):
    width:  int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class JobRequest(_WireModel):
    job_id:         str           = Field(..., alias="jobId", min_length=1)
    animation_code: AnimationCode = Field(..., alias="animationCode")
    dimensions:     Dimensions
    uses_mapbox:    bool          = Field(False, alias="usesMapbox")
    webhook_url:    str           = Field(..., alias="webhookUrl", min_length=1)

    @field_validator("uses_mapbox", mode="before")
    @classmethod
    def _null_flag_is_false(cls, value):
        return False if value is None else value


class VideoOutput(_WireModel):
    video_url: str = Field(..., alias="videoUrl")


class JobResult(_WireModel):
    status: Literal["COMPLETED", "FAILED"]
    output: VideoOutput | None = None
    error:  str | None = None

    @classmethod
    def completed(cls, video_url: str) -> "JobResult":
        return cls(status="COMPLETED", output=VideoOutput(video_url=video_url))

    @classmethod
    def failed(cls, message: str) -> "JobResult":
        return cls(status="FAILED", error=message)

    def to_payload(self) -> dict:
        """JSON body sent to the webhook and returned to the HTTP caller."""
        return self.model_dump(by_alias=True, exclude_none=True)
