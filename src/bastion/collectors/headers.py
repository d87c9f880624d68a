"""Device context header parsing.

Clients send their collected posture and context as JSON in the
``X-Device-Posture`` and ``X-Access-Context`` headers. A header that
cannot be parsed is logged and treated as absent, so the assessment
runs with every field unknown instead of failing the request.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Optional

from bastion.exceptions import InvalidInputError
from bastion.scoring.signals import AccessContext, DevicePosture

logger = logging.getLogger(__name__)

DEVICE_POSTURE_HEADER = "X-Device-Posture"
ACCESS_CONTEXT_HEADER = "X-Access-Context"


@dataclass
class DeviceContext:
    """Parsed device posture and access context for one request."""

    device_posture: DevicePosture = field(default_factory=DevicePosture)
    access_context: AccessContext = field(default_factory=AccessContext)
    warnings: list[str] = field(default_factory=list)


def _load(header: Optional[str], label: str, warnings: list[str]) -> Optional[dict]:
    if not header:
        return None
    try:
        return json.loads(header)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse {label} header: {e}")
        warnings.append(f"{label} header is not valid JSON")
        return None


def parse_device_context(
    device_posture_header: Optional[str] = None,
    access_context_header: Optional[str] = None,
) -> DeviceContext:
    """
    Parse the device posture and access context headers.

    Args:
        device_posture_header: Raw ``X-Device-Posture`` value
        access_context_header: Raw ``X-Access-Context`` value

    Returns:
        DeviceContext; unparseable payloads become empty (all-unknown) objects
    """
    ctx = DeviceContext()

    data = _load(device_posture_header, "device posture", ctx.warnings)
    if data is not None:
        try:
            ctx.device_posture = DevicePosture.from_dict(data)
        except InvalidInputError as e:
            logger.warning(f"Discarding device posture header: {e}")
            ctx.warnings.append(f"device posture discarded: {e}")

    data = _load(access_context_header, "access context", ctx.warnings)
    if data is not None:
        try:
            ctx.access_context = AccessContext.from_dict(data)
        except InvalidInputError as e:
            logger.warning(f"Discarding access context header: {e}")
            ctx.warnings.append(f"access context discarded: {e}")

    return ctx
