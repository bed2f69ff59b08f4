from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..tts.models import DEFAULT_EMOTION, MAX_TEXT_LENGTH, VOICE_IDS, Codec


class SynthesizeRequest(BaseModel):
    """Body of POST /api/tts (and the query of GET /api/tts).

    Omitted voiceType, sampleRate and codec fall back to the configured
    defaults.
    """

    model_config = ConfigDict(populate_by_name=True)

    text: str
    voice_type: int | None = Field(default=None, alias="voiceType")
    sample_rate: int | None = Field(default=None, alias="sampleRate")
    codec: str | None = None
    emotion: str = DEFAULT_EMOTION
    # Return audio bytes inline even when they come from the cache
    inline: bool = False

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Text cannot be empty")
        if len(v) > MAX_TEXT_LENGTH:
            raise ValueError(f"Text cannot exceed {MAX_TEXT_LENGTH} characters")
        return v

    @field_validator("voice_type")
    @classmethod
    def validate_voice_type(cls, v: int | None) -> int | None:
        if v is not None and v not in VOICE_IDS:
            raise ValueError(f"Invalid voice type: {v}")
        return v

    @field_validator("sample_rate")
    @classmethod
    def validate_sample_rate(cls, v: int | None) -> int | None:
        if v is not None and v <= 0:
            raise ValueError("sampleRate must be a positive integer")
        return v

    @field_validator("codec")
    @classmethod
    def validate_codec(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip().lower()
        allowed = {c.value for c in Codec}
        if v not in allowed:
            raise ValueError(f"codec must be one of {sorted(allowed)}")
        return v

    @field_validator("emotion")
    @classmethod
    def validate_emotion(cls, v: str) -> str:
        return v.strip() or DEFAULT_EMOTION
