"""
Device fingerprinting.

The fingerprint is a weak hash of client-reported browser signals. It exists to
notice accidental use of one exam session from two devices, not to stop a
determined attacker: every input can be spoofed by the client.
"""
import logging
import secrets
import time
from typing import Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

FINGERPRINT_PREFIX = "fp_"


class DeviceSignals(BaseModel):
    user_agent: str = ""
    language: str = ""
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    color_depth: Optional[int] = None
    timezone_offset: Optional[int] = None
    cookies_enabled: bool = False
    do_not_track: bool = False
    hardware_concurrency: Optional[int] = None
    platform: str = ""

    @classmethod
    def from_headers(cls, headers) -> "DeviceSignals":
        """Best-effort signals for clients that did not report their own."""
        return cls(
            user_agent=headers.get("user-agent", ""),
            language=headers.get("accept-language", "").split(",")[0].strip(),
            platform=headers.get("sec-ch-ua-platform", "").strip('"'),
            do_not_track=headers.get("dnt") == "1",
        )


def _string_hash(value: str) -> int:
    h = 0
    for char in value:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF
    return h


def compute_fingerprint(signals: DeviceSignals) -> str:
    try:
        parts = [
            signals.user_agent,
            signals.language,
            f"{signals.screen_width}x{signals.screen_height}x{signals.color_depth}",
            str(signals.timezone_offset),
            str(int(signals.cookies_enabled)),
            str(int(signals.do_not_track)),
            str(signals.hardware_concurrency),
            signals.platform,
        ]
        return f"{FINGERPRINT_PREFIX}{_string_hash('|'.join(parts)):08x}"
    except Exception as e:
        # Not deterministic: a device that lands here will not match itself later.
        logger.warning(f"Fingerprint computation failed, using fallback token: {e}")
        return f"{FINGERPRINT_PREFIX}fallback_{int(time.time() * 1000):x}{secrets.token_hex(4)}"
