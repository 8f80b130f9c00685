"""Per-camera state shared by the command, status and connection layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

DEFAULT_CAMERA_COUNT = 3


class CameraConnectionState(Enum):
    UNPAIRED = "unpaired"
    PAIRED_DISCONNECTED = "paired_disconnected"
    CONNECTED = "connected"


@dataclass
class CameraState:
    """Everything the remote knows about one camera slot."""

    is_paired: bool = False
    is_connected: bool = False
    connection_state: CameraConnectionState = CameraConnectionState.UNPAIRED
    camera_name: str = ""
    camera_mac: bytes = bytes(6)
    device_id: int = 0
    model_name: str = ""

    is_sleeping: bool = False
    power_mode: int = 0
    last_sleep_state_change_ms: int = 0
    snapshot_pending: bool = False

    is_initialized: bool = False
    is_recording: bool = False
    camera_mode: int = 0
    camera_status: int = 0
    video_resolution: int = 0
    fps_idx: int = 0
    eis_mode: int = 0
    user_mode: int = 0
    camera_mode_next_flag: int = 0
    record_time: int = 0
    timelapse_interval: int = 0
    remain_capacity: int = 0
    remain_time: int = 0
    camera_bat_percentage: int = 0
    battery_percentage: int = 0
    last_status_timestamp: int = 0

    mode_name: str = ""
    mode_param: str = ""
    camera_supports_new_status_push: bool = False

    needs_full_redraw: bool = False


@dataclass(init=False)
class CameraSlots:
    """A fixed set of camera slots addressed by index 0..count-1."""

    slots: list[CameraState] = field(default_factory=list)
    display_needs_update: bool = False

    def __init__(self, count: int = DEFAULT_CAMERA_COUNT) -> None:
        if count < 1:
            raise ValueError(f"camera count must be positive, got {count}")
        self.slots = [CameraState() for _ in range(count)]
        self.display_needs_update = False

    def is_valid(self, index: int) -> bool:
        return 0 <= index < len(self.slots)

    def __getitem__(self, index: int) -> CameraState:
        if not self.is_valid(index):
            raise IndexError(f"invalid camera index: {index}")
        return self.slots[index]

    def __iter__(self) -> Iterator[CameraState]:
        return iter(self.slots)

    def __len__(self) -> int:
        return len(self.slots)

    def any_paired(self) -> bool:
        return any(cam.is_paired for cam in self.slots)