"""
==============================================================================
Camera Device Enumeration
==============================================================================

Lists available video inputs, classifies them and picks a default.

Default Selection:
-----------------
1. Highest positive rank from the ranking function (first in list order)
2. Otherwise the last-listed device when several exist
   (often the most recently attached / rear camera on mobile platforms)
3. Otherwise the only device
4. Otherwise no device

The ranking function is pluggable so platforms without descriptive
labels can rank by order, index or any other signal.

==============================================================================
"""

from __future__ import annotations

import enum
import logging
import re
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from app.scanner.backends import CameraBackend


# Module logger
logger = logging.getLogger(__name__)


BACK_PATTERN = re.compile(r"back|rear|environment", re.IGNORECASE)
FRONT_PATTERN = re.compile(r"front|user|facetime|true ?depth", re.IGNORECASE)


class CameraRole(str, enum.Enum):
    """Facing direction inferred from a device label."""

    FRONT = "front"
    BACK = "back"
    UNKNOWN = "unknown"

    def __str__(self) -> str:
        """Return the enum value as string."""
        return self.value


def infer_role(label: str) -> CameraRole:
    """
    Infer camera facing from its label.

    Args:
        label: Device label (may be empty before permission is granted)

    Returns:
        CameraRole.BACK, CameraRole.FRONT or CameraRole.UNKNOWN
    """
    if not label:
        return CameraRole.UNKNOWN
    if BACK_PATTERN.search(label):
        return CameraRole.BACK
    if FRONT_PATTERN.search(label):
        return CameraRole.FRONT
    return CameraRole.UNKNOWN


class CameraDevice(BaseModel):
    """
    Video input device.

    Attributes:
        id: Opaque device identifier, stable for the current session
        label: Human-readable label (may be empty until permission granted)
        role: Facing direction inferred from the label
    """

    model_config = ConfigDict(frozen=True)

    id: str
    label: str = ""
    role: CameraRole = Field(default=CameraRole.UNKNOWN)

    @classmethod
    def from_label(cls, device_id: str, label: str = "") -> "CameraDevice":
        """Create a device with its role inferred from the label."""
        return cls(id=device_id, label=label or "", role=infer_role(label or ""))

    @property
    def display_name(self) -> str:
        """Label, or a short id-based name when the label is empty."""
        return self.label or f"Camera {self.id[:6]}"


# =============================================================================
# RANKING FUNCTIONS
# =============================================================================

RankFn = Callable[[CameraDevice], int]


def rank_by_role(device: CameraDevice) -> int:
    """Rank rear-facing devices above everything else."""
    return 1 if device.role is CameraRole.BACK else 0


def label_ranker(terms: Iterable[str]) -> RankFn:
    """
    Build a ranker matching any of the given terms in the label.

    Args:
        terms: Case-insensitive substrings marking a preferred camera

    Returns:
        Ranking function
    """
    lowered = [term.lower() for term in terms if term]

    def rank(device: CameraDevice) -> int:
        label = device.label.lower()
        return 1 if any(term in label for term in lowered) else 0

    return rank


def rank_by_order(devices: Sequence[CameraDevice]) -> RankFn:
    """Build a ranker preferring later-listed devices (label-less platforms)."""
    positions = {device.id: index + 1 for index, device in enumerate(devices)}

    def rank(device: CameraDevice) -> int:
        return positions.get(device.id, 0)

    return rank


def select_default(
    devices: Iterable[CameraDevice],
    rank: Optional[RankFn] = None
) -> Optional[str]:
    """
    Pick the default device id.

    Args:
        devices: Enumerated devices, in platform order
        rank: Ranking function (rank_by_role if None)

    Returns:
        Device id, or None when no usable device exists
    """
    candidates = [device for device in devices if device.id]
    if not candidates:
        return None

    rank = rank or rank_by_role
    best = max(candidates, key=rank)
    if rank(best) > 0:
        return best.id

    if len(candidates) > 1:
        return candidates[-1].id

    return candidates[0].id


# =============================================================================
# ENUMERATOR
# =============================================================================

class DeviceEnumerator:
    """
    Enumerates video inputs through a camera backend.

    Devices are queried fresh on every call; labels may only become
    available after a stream has been opened once.

    Example:
        >>> enumerator = DeviceEnumerator(backend)
        >>> devices = await enumerator.list_video_inputs()
        >>> enumerator.select_default(devices)
        '/dev/video2'
    """

    def __init__(self, backend: "CameraBackend", rank: Optional[RankFn] = None) -> None:
        self._backend = backend
        self._rank = rank

    async def list_video_inputs(self) -> List[CameraDevice]:
        """
        Query the platform device list.

        Returns:
            Video input devices (empty on enumeration failure)
        """
        try:
            devices = list(await self._backend.enumerate_devices())
        except Exception as e:
            logger.warning(f"Device enumeration failed: {e}")
            return []

        logger.debug(f"Enumerated {len(devices)} video input(s)")
        return devices

    def select_default(self, devices: Iterable[CameraDevice]) -> Optional[str]:
        """Pick the default device id using this enumerator's ranking."""
        return select_default(devices, self._rank)
