"""Per-slot queries and key-report commands: snapshot and highlight tags."""

from __future__ import annotations

import logging

from .commands import CommandError, CommandSender, KeyReportCommand
from .enums import CommandType
from .state import CameraConnectionState, CameraSlots

log = logging.getLogger(__name__)

# Models that accept highlight tags: Action 4, Action 5 Pro and Action 6.
# The Osmo 360 (0xFF66) and unknown models do not.
HIGHLIGHT_DEVICE_IDS = frozenset({0xFF33, 0xFF44, 0xFF55})

KEY_CODE_QS = 0x02
KEY_CODE_SNAPSHOT = 0x03
KEY_MODE_REPORT = 0x01
KEY_VALUE_SHORT_PRESS = 0x00

_SLEEP_POWER_MODE = 3


class SlotError(Exception):
    """A slot is invalid or not in a state that allows the requested command."""


class HighlightNotSupportedError(SlotError):
    """The camera model in the slot does not support highlight tags."""


def supports_highlight(cameras: CameraSlots, slot_index: int) -> bool:
    """Whether the camera in the slot is a model that accepts highlight tags."""
    if not cameras.is_valid(slot_index):
        return False
    return cameras[slot_index].device_id in HIGHLIGHT_DEVICE_IDS


def is_paired(cameras: CameraSlots, slot_index: int) -> bool:
    return cameras.is_valid(slot_index) and cameras[slot_index].is_paired


def is_connected(cameras: CameraSlots, slot_index: int) -> bool:
    if not cameras.is_valid(slot_index):
        return False
    cam = cameras[slot_index]
    return cam.is_connected and cam.connection_state == CameraConnectionState.CONNECTED


def is_awake(cameras: CameraSlots, slot_index: int) -> bool:
    return cameras.is_valid(slot_index) and cameras[slot_index].power_mode != _SLEEP_POWER_MODE


def is_recording(cameras: CameraSlots, slot_index: int) -> bool:
    return cameras.is_valid(slot_index) and cameras[slot_index].is_recording


def send_key_report(sender: CommandSender, camera_index: int, key_code: int,
                    mode: int, key_value: int) -> None:
    """Send a Key Reporting (0x00/0x11) command without waiting for a reply."""
    cameras = sender.cameras
    if not cameras.is_valid(camera_index):
        raise SlotError(f"invalid camera index: {camera_index}")
    if not is_paired(cameras, camera_index):
        raise SlotError(f"camera {camera_index}: not paired, cannot send key report")
    if not is_connected(cameras, camera_index):
        raise SlotError(f"camera {camera_index}: not connected, cannot send key report")
    if not sender.transport.is_camera_connected(camera_index):
        raise SlotError(f"camera {camera_index}: BLE not connected, cannot send key report")

    payload = KeyReportCommand(key_code=key_code, mode=mode, key_value=key_value)
    log.info("Camera %d: sending key report (key_code=0x%02X, mode=0x%02X, key_value=0x%02X)",
             camera_index, key_code, mode, key_value)
    try:
        sender.send(camera_index, 0x00, 0x11, CommandType.CMD_NO_RESPONSE,
                    payload, sender.next_seq(), 0)
    except CommandError as exc:
        # Fire-and-forget: a failed send is logged, not reported to the caller.
        log.error("%s", exc)


def send_snapshot_key(sender: CommandSender, camera_index: int) -> None:
    """Press the SNAPSHOT key on the camera in the slot."""
    send_key_report(sender, camera_index, KEY_CODE_SNAPSHOT, KEY_MODE_REPORT,
                    KEY_VALUE_SHORT_PRESS)


def send_highlight(sender: CommandSender, slot_index: int) -> None:
    """Mark a highlight in the clip being recorded by a short QS key press."""
    cameras = sender.cameras
    if not cameras.is_valid(slot_index):
        raise SlotError(f"invalid slot index: {slot_index}")
    if not supports_highlight(cameras, slot_index):
        raise HighlightNotSupportedError(
            f"camera {slot_index}: highlight tags not supported "
            f"(device_id=0x{cameras[slot_index].device_id:04X})")
    send_key_report(sender, slot_index, KEY_CODE_QS, KEY_MODE_REPORT, KEY_VALUE_SHORT_PRESS)


def send_highlight_for_all_active(sender: CommandSender) -> int:
    """Tag every paired, connected, awake, recording camera that supports highlights.

    Returns how many cameras were tagged; raises SlotError if none was eligible.
    """
    cameras = sender.cameras
    sent = 0
    for index in range(len(cameras)):
        eligible = (is_paired(cameras, index)
                    and is_connected(cameras, index)
                    and is_awake(cameras, index)
                    and is_recording(cameras, index)
                    and supports_highlight(cameras, index))
        if not eligible:
            continue
        try:
            send_highlight(sender, index)
        except SlotError as exc:
            log.debug("%s", exc)
            continue
        sent += 1
    if sent == 0:
        raise SlotError("no eligible cameras for highlight tag")
    log.info("Highlight tag sent to %d camera(s)", sent)
    return sent