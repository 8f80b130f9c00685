"""Camera status pushes (1D02 and 1D06) and the state they update."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from .commands import CommandError, CommandSender
from .enums import (
    CameraStatus,
    CommandType,
    ConnectState,
    PushFreq,
    PushMode,
    camera_mode_to_string,
    camera_status_to_string,
    eis_mode_to_string,
    fps_idx_to_string,
    video_resolution_to_string,
)
from .slots import SlotError, send_snapshot_key
from .state import CameraSlots

log = logging.getLogger(__name__)

_SLEEP_POWER_MODE = 3
_MODE_TEXT_MAX = 20
_RECORDING_STATUSES = frozenset({CameraStatus.PHOTO_OR_RECORDING, CameraStatus.PRE_RECORDING})

# Fields copied from a status push into the camera state unchanged.
_PLAIN_FIELDS = (
    "camera_mode",
    "video_resolution",
    "fps_idx",
    "eis_mode",
    "user_mode",
    "camera_mode_next_flag",
    "record_time",
    "timelapse_interval",
    "remain_capacity",
    "remain_time",
)

NOT_INITIALIZED_MESSAGE = "Camera status has not been initialized."


@dataclass
class CameraStatusPush:
    """Body of a camera status push (CmdSet 0x1D, CmdID 0x02)."""

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
    power_mode: int = 0


@dataclass(frozen=True)
class NewCameraStatusPush:
    """Body of the newer camera status push (CmdSet 0x1D, CmdID 0x06)."""

    mode_name: bytes = b""
    mode_param: bytes = b""
    mode_name_length: int = 0
    mode_param_length: int = 0
    type_mode_name: int = 0
    type_mode_param: int = 0


@dataclass(frozen=True)
class StatusSubscriptionCommand:
    """Request for periodic status pushes (CmdSet 0x1D, CmdID 0x05)."""

    push_mode: int
    push_freq: int
    reserved: bytes = field(default=bytes(4))


def _mode_text(raw: bytes, length: int) -> str:
    chunk = bytes(raw)[:min(length, _MODE_TEXT_MAX)]
    return chunk.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def _default_clock() -> int:
    return int(time.monotonic() * 1000)


class StatusTracker:
    """Applies status pushes to the camera slots and tracks camera 0's latest status."""

    def __init__(self, cameras: CameraSlots, sender: CommandSender,
                 connect_state: Callable[[], ConnectState],
                 clock: Callable[[], int] = _default_clock,
                 on_wake: Optional[Callable[[int], None]] = None) -> None:
        self.cameras = cameras
        self.sender = sender
        self.connect_state = connect_state
        self.clock = clock
        self.on_wake = on_wake
        self.current = CameraStatusPush()
        self.initialized = False
        self.last_status_push_ms = 0

    def is_camera_recording(self) -> bool:
        """Whether camera 0 is recording or pre-recording, once its status is known."""
        return self.initialized and self.current.camera_status in _RECORDING_STATUSES

    def describe_camera_status(self) -> str:
        """A readable summary of camera 0's latest status."""
        if not self.initialized:
            return NOT_INITIALIZED_MESSAGE
        cur = self.current
        lines = [
            "[1D02] =========== Camera Status Push ===========",
            f"  Mode: {camera_mode_to_string(cur.camera_mode)}",
            f"  Status: {camera_status_to_string(cur.camera_status)}",
            f"  Resolution: {video_resolution_to_string(cur.video_resolution)}"
            f" (value: {cur.video_resolution})",
            f"  FPS: {fps_idx_to_string(cur.fps_idx)}",
            f"  EIS: {eis_mode_to_string(cur.eis_mode)}",
            f"  User mode: {cur.user_mode}",
            f"  Camera mode next flag: {cur.camera_mode_next_flag}",
            f"  Record time: {cur.record_time}",
            f"  Timelapse interval: {cur.timelapse_interval}",
            "=================================================",
        ]
        return "\n".join(lines)

    def subscribe(self, camera_index: int,
                  push_mode: int = PushMode.PERIODIC_WITH_STATE_CHANGE,
                  push_freq: int = PushFreq.HZ_2) -> None:
        """Ask the camera to push its status; requires a protocol connection."""
        state = self.connect_state()
        if state != ConnectState.PROTOCOL_CONNECTED:
            raise CommandError(
                f"protocol not connected, current connection state: {int(state)}")
        payload = StatusSubscriptionCommand(int(push_mode), int(push_freq))
        try:
            self.sender.send(camera_index, 0x1D, 0x05, CommandType.CMD_NO_RESPONSE,
                             payload, self.sender.next_seq(), 5000)
        except CommandError as exc:
            log.error("%s", exc)

    def _set_current(self, camera_index: int, name: str, value: int) -> None:
        if camera_index == 0:
            setattr(self.current, name, value)

    def update_camera_state(self, camera_index: int, status: CameraStatusPush) -> bool:
        """Apply a 1D02 status push to a slot; return whether anything changed."""
        if status is None:
            raise ValueError(f"camera {camera_index}: no status data")
        if not self.cameras.is_valid(camera_index):
            raise ValueError(f"invalid camera index {camera_index} in status update")

        cam = self.cameras[camera_index]
        self.last_status_push_ms = self.clock()
        cam.last_status_timestamp = self.last_status_push_ms
        changed = False

        for name in _PLAIN_FIELDS:
            value = getattr(status, name)
            if getattr(cam, name) != value:
                setattr(cam, name, value)
                log.info("Camera %d: %s updated to %s", camera_index, name, value)
                self._set_current(camera_index, name, value)
                changed = True

        if cam.camera_status != status.camera_status:
            old = cam.camera_status
            cam.camera_status = status.camera_status
            log.info("Camera %d status changed: %d (%s) -> %d (%s)", camera_index,
                     old, camera_status_to_string(old),
                     cam.camera_status, camera_status_to_string(cam.camera_status))
            was_recording = old in _RECORDING_STATUSES
            now_recording = cam.camera_status in _RECORDING_STATUSES
            if was_recording != now_recording:
                log.info("Camera %d recording state changed: %s -> %s", camera_index,
                         "RECORDING" if was_recording else "NOT RECORDING",
                         "RECORDING" if now_recording else "NOT RECORDING")
            cam.is_recording = now_recording
            self._set_current(camera_index, "camera_status", status.camera_status)
            changed = True

        if cam.camera_bat_percentage != status.camera_bat_percentage:
            cam.camera_bat_percentage = status.camera_bat_percentage
            cam.battery_percentage = status.camera_bat_percentage
            log.info("Camera %d: battery updated to %d%%", camera_index,
                     cam.camera_bat_percentage)
            self._set_current(camera_index, "camera_bat_percentage",
                              status.camera_bat_percentage)
            changed = True

        was_sleeping = cam.power_mode == _SLEEP_POWER_MODE
        if cam.power_mode != status.power_mode:
            cam.power_mode = status.power_mode
            prev_sleeping = cam.is_sleeping
            cam.is_sleeping = cam.power_mode == _SLEEP_POWER_MODE
            if prev_sleeping != cam.is_sleeping:
                cam.last_sleep_state_change_ms = self.clock()
                log.info("Camera %d: %s (power_mode=%d)", camera_index,
                         "entered SLEEP mode" if cam.is_sleeping else "woke up from SLEEP mode",
                         cam.power_mode)
            self._set_current(camera_index, "power_mode", status.power_mode)
            changed = True

        if was_sleeping and not cam.is_sleeping and cam.snapshot_pending:
            self._send_pending_snapshot(camera_index)

        just_initialized = False
        if not cam.is_initialized:
            cam.is_initialized = True
            changed = True
            just_initialized = True
            if camera_index == 0 and not self.initialized:
                self.initialized = True

        if changed:
            if camera_index == 0:
                log.info("%s", self.describe_camera_status())
            else:
                log.info("Camera %d status updated", camera_index)
            self.cameras.display_needs_update = True
            if just_initialized:
                cam.needs_full_redraw = True
        return changed

    def _send_pending_snapshot(self, camera_index: int) -> None:
        cam = self.cameras[camera_index]
        log.info("Camera %d: snapshot pending, sending SNAPSHOT key after wake-up", camera_index)
        try:
            send_snapshot_key(self.sender, camera_index)
        except SlotError as exc:
            log.error("Camera %d: failed to send snapshot key after wake-up: %s",
                      camera_index, exc)
        cam.snapshot_pending = False
        if self.on_wake is not None:
            self.on_wake(camera_index)

    def update_new_camera_state(self, camera_index: int, status: NewCameraStatusPush) -> None:
        """Apply a 1D06 status push: mode name and parameters shown for the slot."""
        if status is None:
            raise ValueError(f"camera {camera_index}: no status data")
        if not self.cameras.is_valid(camera_index):
            raise ValueError(f"invalid camera index {camera_index} in new status update")
        cam = self.cameras[camera_index]
        cam.mode_name = _mode_text(status.mode_name, status.mode_name_length)
        cam.mode_param = _mode_text(status.mode_param, status.mode_param_length)
        log.info("[1D06] Camera %d mode name: %s, parameters: '%s'",
                 camera_index, cam.mode_name, cam.mode_param)
        cam.camera_supports_new_status_push = True
        self.cameras.display_needs_update = True