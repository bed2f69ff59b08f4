"""TTS data models with validation."""

from dataclasses import dataclass, field
from enum import Enum

from .errors import TTSValidationError

MAX_TEXT_LENGTH = 150
DEFAULT_EMOTION = "neutral"


class Codec(str, Enum):
    """Audio codecs the upstream can produce.

    The value doubles as the cache file extension.
    """

    WAV = "wav"
    MP3 = "mp3"
    PCM = "pcm"

    @classmethod
    def parse(cls, value: "str | Codec") -> "Codec":
        """Convert a codec name (case-insensitive) to a Codec.

        Raises:
            TTSValidationError: If the codec is not supported
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(c.value for c in cls)
            raise TTSValidationError(
                f"Unsupported codec '{value}'. Supported codecs: {allowed}"
            ) from None


@dataclass(frozen=True)
class VoiceInfo:
    """Information about a supported voice.

    Args:
        voice_id: Numeric voice identifier understood by the upstream
        name: Human-readable name of the voice
        gender: Voice gender
        language: Spoken language
        remarks: Short description of the voice
    """

    voice_id: int
    name: str
    gender: str
    language: str
    remarks: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.voice_id,
            "name": self.name,
            "gender": self.gender,
            "language": self.language,
            "remarks": self.remarks,
        }


SUPPORTED_VOICES: tuple[VoiceInfo, ...] = (
    VoiceInfo(301030, "爱小溪", "女", "中文", "标准女生"),
    VoiceInfo(101040, "智川", "女", "中文", "四川女声"),
    VoiceInfo(101019, "智彤", "女", "中文", "粤语女声"),
)

VOICE_IDS = frozenset(v.voice_id for v in SUPPORTED_VOICES)


def get_voice(voice_id: int) -> VoiceInfo | None:
    """Look up a voice in the supported voice table."""
    for voice in SUPPORTED_VOICES:
        if voice.voice_id == voice_id:
            return voice
    return None


@dataclass(frozen=True)
class SynthesisParameters:
    """Everything that determines the synthesized audio.

    Instances are immutable and validated on construction. Text is
    trimmed, the codec normalized to a Codec member, and a blank emotion
    falls back to "neutral".

    Raises:
        TTSValidationError: If any field is invalid
    """

    text: str
    voice_id: int
    sample_rate: int
    codec: Codec
    emotion: str = DEFAULT_EMOTION

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise TTSValidationError("text must be a string")
        text = self.text.strip()
        if not text:
            raise TTSValidationError("Text cannot be empty")
        if len(text) > MAX_TEXT_LENGTH:
            raise TTSValidationError(
                f"Text cannot exceed {MAX_TEXT_LENGTH} characters, got {len(text)}"
            )
        object.__setattr__(self, "text", text)

        if isinstance(self.voice_id, bool) or not isinstance(self.voice_id, int):
            raise TTSValidationError(f"voice_id must be an integer, got {self.voice_id!r}")
        if self.voice_id not in VOICE_IDS:
            raise TTSValidationError(f"Unsupported voice_id: {self.voice_id}")

        if isinstance(self.sample_rate, bool) or not isinstance(self.sample_rate, int):
            raise TTSValidationError(
                f"sample_rate must be an integer, got {self.sample_rate!r}"
            )
        if self.sample_rate <= 0:
            raise TTSValidationError(
                f"sample_rate must be positive, got {self.sample_rate}"
            )

        object.__setattr__(self, "codec", Codec.parse(self.codec))

        emotion = (self.emotion or "").strip() or DEFAULT_EMOTION
        object.__setattr__(self, "emotion", emotion)


@dataclass
class SynthesisResult:
    """Outcome of resolving one synthesis request.

    Args:
        voice_id: Voice used for synthesis
        sample_rate: Sample rate of the audio
        codec: Audio codec
        emotion: Emotion category used
        cached: True if the audio came from the cache
        audio_bytes: Freshly synthesized audio (None on cache hit)
        servable_location: File name of the stored cache entry, if any
    """

    voice_id: int
    sample_rate: int
    codec: Codec
    emotion: str
    cached: bool
    audio_bytes: bytes | None = field(default=None, repr=False)
    servable_location: str | None = None

    @classmethod
    def from_params(
        cls,
        params: SynthesisParameters,
        cached: bool,
        audio_bytes: bytes | None = None,
        servable_location: str | None = None,
    ) -> "SynthesisResult":
        return cls(
            voice_id=params.voice_id,
            sample_rate=params.sample_rate,
            codec=params.codec,
            emotion=params.emotion,
            cached=cached,
            audio_bytes=audio_bytes,
            servable_location=servable_location,
        )
