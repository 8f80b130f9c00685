"""Camera commands: building payloads, sending frames and collecting replies."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from .enums import CameraMode, CommandType
from .state import CameraSlots

log = logging.getLogger(__name__)

_NO_RESPONSE_TYPES = {CommandType.CMD_NO_RESPONSE, CommandType.ACK_NO_RESPONSE}
_RESPONSE_OR_NOT_TYPES = {CommandType.CMD_RESPONSE_OR_NOT, CommandType.ACK_RESPONSE_OR_NOT}
_WAIT_RESULT_TYPES = {CommandType.CMD_WAIT_RESULT, CommandType.ACK_WAIT_RESULT}

_DEFAULT_TIMEOUT_MS = 5000
_MAX_DUMP_BYTES = 256


class CommandError(Exception):
    """A command could not be sent or its required reply did not arrive."""


@dataclass(frozen=True)
class CommandResult:
    """Parsed reply and the length of its data segment (without CmdSet and CmdID)."""

    structure: Any = None
    length: int = 0


class Transport(ABC):
    """The link layer the commands are sent over."""

    @abstractmethod
    def is_camera_connected(self, camera_index: int) -> bool:
        """Whether the BLE link to this camera is up."""

    @abstractmethod
    def create_frame(self, cmd_set: int, cmd_id: int, cmd_type: int, payload: Any, seq: int) -> bytes:
        """Encode a protocol frame; raise ValueError if the payload cannot be encoded."""

    @abstractmethod
    def write(self, camera_index: int, seq: int, frame: bytes, with_response: bool) -> None:
        """Send a frame; raise OSError on failure."""

    @abstractmethod
    def wait_for_result(self, seq: int, timeout_ms: int) -> CommandResult:
        """Wait for the reply matching seq; raise TimeoutError if none arrives."""

    @abstractmethod
    def wait_for_command(self, cmd_set: int, cmd_id: int, timeout_ms: int) -> tuple[int, CommandResult]:
        """Wait for an incoming command frame; return its seq and parsed body, or raise TimeoutError."""


class SequenceGenerator:
    """Produces incrementing 16-bit sequence numbers."""

    def __init__(self, start: int = 0) -> None:
        self._current = start & 0xFFFF

    def next(self) -> int:
        self._current = (self._current + 1) & 0xFFFF
        return self._current


@dataclass(frozen=True)
class CameraModeSwitchCommand:
    device_id: int
    mode: int
    reserved: bytes = bytes((0x01, 0x47, 0x39, 0x36))


@dataclass(frozen=True)
class RecordControlCommand:
    device_id: int
    record_ctrl: int
    reserved: bytes = field(default=bytes(4))

    START = 0x00
    STOP = 0x01


@dataclass(frozen=True)
class KeyReportCommand:
    key_code: int
    mode: int
    key_value: int


@dataclass(frozen=True)
class PowerModeCommand:
    power_mode: int

    NORMAL = 0x00
    SLEEP = 0x03


def _hex_dump(frame: bytes) -> str:
    if len(frame) > _MAX_DUMP_BYTES:
        return f"TX: [Frame too large to display: {len(frame)} bytes]"
    return "TX: [" + ", ".join(f"{b:02X}" for b in frame) + "]"


def _is_wake_command(cmd_set: int, cmd_id: int, payload: Any) -> bool:
    return (
        cmd_set == 0x00
        and cmd_id == 0x1A
        and isinstance(payload, PowerModeCommand)
        and payload.power_mode == PowerModeCommand.NORMAL
    )


class CommandSender:
    """Sends commands to the camera slots over a transport."""

    def __init__(self, transport: Transport, cameras: CameraSlots, device_id: int) -> None:
        self.transport = transport
        self.cameras = cameras
        self.device_id = device_id
        self._seq = SequenceGenerator()

    def next_seq(self) -> int:
        return self._seq.next()

    def _can_accept(self, camera_index: int, cmd_set: int, cmd_id: int, payload: Any) -> bool:
        if not self.cameras[camera_index].is_sleeping:
            return True
        if _is_wake_command(cmd_set, cmd_id, payload):
            log.debug("Camera %d: allowing wake command while sleeping", camera_index)
            return True
        log.debug("Camera %d: blocking command 0x%02X/0x%02X, camera is sleeping",
                  camera_index, cmd_set, cmd_id)
        return False

    def send(self, camera_index: int, cmd_set: int, cmd_id: int, cmd_type: int,
             payload: Any, seq: int, timeout_ms: int) -> CommandResult:
        """Build, send and, depending on the type, wait for the reply to one command."""
        if not self.cameras.is_valid(camera_index):
            raise CommandError(f"invalid camera index: {camera_index}")
        if not self.transport.is_camera_connected(camera_index):
            raise CommandError(f"camera {camera_index}: BLE not connected")
        if not self._can_accept(camera_index, cmd_set, cmd_id, payload):
            raise CommandError(f"camera {camera_index}: command blocked, camera is sleeping")

        try:
            frame = self.transport.create_frame(cmd_set, cmd_id, cmd_type, payload, seq)
        except ValueError as exc:
            raise CommandError(f"failed to create protocol frame: {exc}") from exc
        log.debug(_hex_dump(frame))

        try:
            kind = CommandType(cmd_type)
        except ValueError:
            raise CommandError(f"camera {camera_index}: invalid cmd_type: {cmd_type}") from None

        with_response = kind not in _NO_RESPONSE_TYPES
        try:
            self.transport.write(camera_index, seq, frame, with_response)
        except OSError as exc:
            raise CommandError(f"camera {camera_index}: failed to send frame: {exc}") from exc

        if kind in _NO_RESPONSE_TYPES:
            return CommandResult()

        if kind in _RESPONSE_OR_NOT_TYPES:
            try:
                return self.transport.wait_for_result(seq, timeout_ms)
            except TimeoutError:
                log.warning("Camera %d: no result received (seq=0x%04X)", camera_index, seq)
                return CommandResult()

        try:
            result = self.transport.wait_for_result(seq, timeout_ms)
        except TimeoutError as exc:
            raise CommandError(
                f"camera {camera_index}: no result for seq=0x{seq:04X}") from exc
        if result.structure is None:
            raise CommandError(f"camera {camera_index}: empty result for seq=0x{seq:04X}")
        return result

    def _require_connected(self, camera_index: int) -> None:
        if not self.transport.is_camera_connected(camera_index):
            raise CommandError(f"camera {camera_index}: not connected")

    def _request(self, camera_index: int, cmd_set: int, cmd_id: int, cmd_type: CommandType,
                 payload: Any) -> Any:
        self._require_connected(camera_index)
        result = self.send(camera_index, cmd_set, cmd_id, cmd_type, payload,
                           self.next_seq(), _DEFAULT_TIMEOUT_MS)
        if result.structure is None:
            raise CommandError(
                f"camera {camera_index}: no response to 0x{cmd_set:02X}/0x{cmd_id:02X}")
        log.info("Camera %d: response ret_code=%s", camera_index,
                 getattr(result.structure, "ret_code", None))
        return result.structure

    def _push(self, camera_index: int, cmd_set: int, cmd_id: int, payload: Any) -> None:
        try:
            self.send(camera_index, cmd_set, cmd_id, CommandType.CMD_NO_RESPONSE,
                      payload, self.next_seq(), 0)
        except CommandError as exc:
            log.error("%s", exc)

    def switch_camera_mode(self, camera_index: int, mode: CameraMode | int) -> Any:
        payload = CameraModeSwitchCommand(self.device_id, int(mode))
        return self._request(camera_index, 0x1D, 0x04, CommandType.CMD_RESPONSE_OR_NOT, payload)

    def get_version(self, camera_index: int) -> Any:
        return self._request(camera_index, 0x00, 0x00, CommandType.CMD_WAIT_RESULT, None)

    def start_record(self, camera_index: int) -> Any:
        payload = RecordControlCommand(self.device_id, RecordControlCommand.START)
        return self._request(camera_index, 0x1D, 0x03, CommandType.CMD_RESPONSE_OR_NOT, payload)

    def start_record_async(self, camera_index: int) -> None:
        """Send start-recording without waiting; only a missing link is an error."""
        self._require_connected(camera_index)
        self._push(camera_index, 0x1D, 0x03,
                   RecordControlCommand(self.device_id, RecordControlCommand.START))

    def stop_record(self, camera_index: int) -> Any:
        payload = RecordControlCommand(self.device_id, RecordControlCommand.STOP)
        return self._request(camera_index, 0x1D, 0x03, CommandType.CMD_RESPONSE_OR_NOT, payload)

    def stop_record_async(self, camera_index: int) -> None:
        """Send stop-recording without waiting; only a missing link is an error."""
        self._require_connected(camera_index)
        self._push(camera_index, 0x1D, 0x03,
                   RecordControlCommand(self.device_id, RecordControlCommand.STOP))

    def key_report_qs(self, camera_index: int) -> Any:
        payload = KeyReportCommand(key_code=0x02, mode=0x01, key_value=0x00)
        return self._request(camera_index, 0x00, 0x11, CommandType.CMD_RESPONSE_OR_NOT, payload)

    def power_mode_sleep(self, camera_index: int) -> Any:
        payload = PowerModeCommand(PowerModeCommand.SLEEP)
        return self._request(camera_index, 0x00, 0x1A, CommandType.CMD_RESPONSE_OR_NOT, payload)

    def power_mode_wake(self, camera_index: int) -> Any:
        payload = PowerModeCommand(PowerModeCommand.NORMAL)
        return self._request(camera_index, 0x00, 0x1A, CommandType.CMD_RESPONSE_OR_NOT, payload)

    def push_gps_data(self, camera_index: int, frame: Any) -> None:
        """Push a filled GPS frame to the camera; no reply is expected."""
        if frame is None:
            raise ValueError("GPS frame is required")
        if not self.transport.is_camera_connected(camera_index):
            log.debug("Camera %d: not sending GPS, camera not connected", camera_index)
            return None
        self._push(camera_index, 0x00, 0x17, frame)
        return None