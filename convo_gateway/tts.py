# convo_gateway/tts.py
"""
Text-to-Speech vendor configuration.

``resolve_tts_config`` is the only place that branches on the vendor name. It
returns one tagged ``TTSConfig`` value; callers pass it along as-is and never
look inside a particular vendor's params.
"""

import logging
from typing import List, Optional, Tuple

from .config import Settings
from .errors import Ok, Result, configuration_error
from .models import (
    ElevenLabsTTSConfig,
    ElevenLabsTTSParams,
    MicrosoftTTSConfig,
    MicrosoftTTSParams,
    TTSConfig,
    TTSVendor,
)

logger = logging.getLogger(__name__)

_MICROSOFT_KEYS: Tuple[str, ...] = (
    "MICROSOFT_TTS_KEY",
    "MICROSOFT_TTS_REGION",
    "MICROSOFT_TTS_VOICE_NAME",
    "MICROSOFT_TTS_RATE",
    "MICROSOFT_TTS_VOLUME",
)

_ELEVENLABS_KEYS: Tuple[str, ...] = (
    "ELEVENLABS_API_KEY",
    "ELEVENLABS_VOICE_ID",
    "ELEVENLABS_MODEL_ID",
)


def _missing(settings: Settings, keys: Tuple[str, ...]) -> List[str]:
    missing = []
    for key in keys:
        value = getattr(settings, key, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(key)
    return missing


def _microsoft(settings: Settings) -> Result[TTSConfig]:
    missing = _missing(settings, _MICROSOFT_KEYS)
    if missing:
        logger.error(f"Microsoft TTS configuration is incomplete, missing: {missing}")
        return configuration_error(
            "Microsoft TTS configuration is not set", field=missing[0], details={"missing": missing}
        )
    return Ok(
        MicrosoftTTSConfig(
            params=MicrosoftTTSParams(
                key=settings.MICROSOFT_TTS_KEY,
                region=settings.MICROSOFT_TTS_REGION,
                voice_name=settings.MICROSOFT_TTS_VOICE_NAME,
                rate=settings.MICROSOFT_TTS_RATE,
                volume=settings.MICROSOFT_TTS_VOLUME,
            )
        )
    )


def _elevenlabs(settings: Settings) -> Result[TTSConfig]:
    missing = _missing(settings, _ELEVENLABS_KEYS)
    if missing:
        logger.error(f"ElevenLabs TTS configuration is incomplete, missing: {missing}")
        return configuration_error(
            "ElevenLabs TTS configuration is not set", field=missing[0], details={"missing": missing}
        )
    return Ok(
        ElevenLabsTTSConfig(
            params=ElevenLabsTTSParams(
                api_key=settings.ELEVENLABS_API_KEY,
                voice_id=settings.ELEVENLABS_VOICE_ID,
                model_id=settings.ELEVENLABS_MODEL_ID,
            )
        )
    )


def resolve_tts_config(vendor: Optional[str], settings: Settings) -> Result[TTSConfig]:
    """Build the TTS config for ``vendor`` from ``settings``.

    Fails with a configuration error when the vendor is unset or unknown, or
    when any field the vendor needs is absent.
    """
    if not vendor or not vendor.strip():
        return configuration_error("TTS_VENDOR is not set", field="TTS_VENDOR")

    try:
        selected = TTSVendor(vendor.strip().lower())
    except ValueError:
        return configuration_error(f"Unsupported TTS vendor: {vendor}", field="TTS_VENDOR")

    if selected is TTSVendor.MICROSOFT:
        return _microsoft(settings)
    return _elevenlabs(settings)
