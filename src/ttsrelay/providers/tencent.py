"""Tencent Cloud text-to-speech gateway implementation."""

import asyncio
import base64
import binascii
import logging
import os
import uuid
from typing import TYPE_CHECKING

from tencentcloud.common import credential
from tencentcloud.common.exception.tencent_cloud_sdk_exception import (
    TencentCloudSDKException,
)
from tencentcloud.tts.v20190823 import models, tts_client

from ..tts.errors import EmptyAudioError, UpstreamAuthError, UpstreamError
from ..tts.models import SynthesisParameters
from .base import SynthesisGateway

if TYPE_CHECKING:
    from ..config import ProviderConfig

logger = logging.getLogger(__name__)

AUTH_ERROR_PREFIXES = ("AuthFailure", "UnauthorizedOperation")
RATE_LIMIT_PREFIXES = ("RequestLimitExceeded", "LimitExceeded")


class TencentGateway(SynthesisGateway):
    """Tencent Cloud TTS gateway.

    Calls the TextToVoice action, which takes the numeric voice type,
    sample rate, codec and emotion category directly and returns the
    audio base64-encoded.
    """

    name = "tencent"

    def __init__(
        self,
        secret_id: str | None = None,
        secret_key: str | None = None,
        region: str = "ap-beijing",
    ) -> None:
        """Initialize Tencent Cloud gateway.

        Args:
            secret_id: API secret id. If not provided, reads from
                    TENCENTCLOUD_SECRET_ID environment variable.
            secret_key: API secret key. If not provided, reads from
                    TENCENTCLOUD_SECRET_KEY environment variable.
            region: Tencent Cloud region to call

        Raises:
            UpstreamAuthError: If credentials are not provided.
        """
        self._secret_id = secret_id or os.getenv("TENCENTCLOUD_SECRET_ID")
        self._secret_key = secret_key or os.getenv("TENCENTCLOUD_SECRET_KEY")
        if not self._secret_id or not self._secret_key:
            raise UpstreamAuthError(
                "Tencent Cloud credentials not found. Set TENCENTCLOUD_SECRET_ID and "
                "TENCENTCLOUD_SECRET_KEY environment variables."
            )

        self.region = region
        try:
            cred = credential.Credential(self._secret_id, self._secret_key)
            self._client = tts_client.TtsClient(cred, region)
        except TencentCloudSDKException as e:
            raise UpstreamAuthError(
                f"Failed to initialize Tencent Cloud client: {e}", original_error=e
            ) from e

        logger.debug(f"Tencent TTS gateway ready (region: {region})")

    @classmethod
    def from_config(cls, config: "ProviderConfig") -> "TencentGateway":
        return cls(region=config.region)

    def _build_request(self, params: SynthesisParameters) -> models.TextToVoiceRequest:
        request = models.TextToVoiceRequest()
        request.Text = params.text
        request.SessionId = uuid.uuid4().hex
        request.VoiceType = params.voice_id
        request.SampleRate = params.sample_rate
        request.Codec = params.codec.value
        request.EmotionCategory = params.emotion
        return request

    async def synthesize(self, params: SynthesisParameters) -> bytes:
        """Convert text to speech audio bytes.

        Args:
            params: Validated synthesis parameters

        Returns:
            Audio data as bytes in the requested codec

        Raises:
            UpstreamAuthError: If credentials are rejected
            UpstreamError: If the API call fails
            EmptyAudioError: If the API returns no audio
        """
        request = self._build_request(params)

        try:
            # Run synchronous SDK client in thread to avoid blocking event loop
            response = await asyncio.to_thread(self._client.TextToVoice, request)
        except TencentCloudSDKException as e:
            raise self._map_error(e) from e
        except Exception as e:
            raise UpstreamError(f"Tencent TTS request failed: {e}", original_error=e) from e

        if not response.Audio:
            raise EmptyAudioError("No audio data received from Tencent TTS")

        try:
            audio_bytes = base64.b64decode(response.Audio, validate=True)
        except (binascii.Error, ValueError) as e:
            raise UpstreamError(
                f"Tencent TTS returned undecodable audio: {e}", original_error=e
            ) from e

        if not audio_bytes:
            raise EmptyAudioError("No audio data received from Tencent TTS")

        return audio_bytes

    @staticmethod
    def _map_error(e: TencentCloudSDKException) -> UpstreamError:
        code = e.get_code() or ""
        message = f"{code}: {e.get_message()}"
        if code.startswith(AUTH_ERROR_PREFIXES):
            return UpstreamAuthError(f"Authentication failed: {message}", 401, e)
        if code.startswith(RATE_LIMIT_PREFIXES):
            return UpstreamError(f"Rate limit exceeded: {message}", 429, e)
        return UpstreamError(f"API call failed: {message}", original_error=e)
