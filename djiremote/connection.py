"""BLE link management and the DJI protocol connection handshake."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from .commands import CommandError, CommandSender
from .enums import CommandType, ConnectState, PushFreq, PushMode
from .state import CameraSlots

log = logging.getLogger(__name__)

SCAN_TIMEOUT_MS = 30000
_POLL_INTERVAL_S = 0.1
_CONNECT_POLLS = 100          # 100 * 100 ms = 10 s
_RECONNECT_POLLS = 300        # 300 * 100 ms = 30 s
_SETTLE_AFTER_SCAN_S = 2.0
_SETTLE_AFTER_DIRECT_S = 0.5
_REQUEST_TIMEOUT_MS = 1000
_CAMERA_COMMAND_TIMEOUT_MS = 30000
_ACK_TIMEOUT_MS = 5000
_CAMERA_VERIFY_MODE = 2
_RESPONSE_RESERVED_LEN = 4


class ScanMode(Enum):
    PAIRING = "pairing"
    AUTOCONNECT_BOOT = "autoconnect_boot"
    SLOT_RECONNECT = "slot_reconnect"


class ConnectionError_(Exception):
    """A BLE or protocol connection step failed."""


class BleLink(ABC):
    """The BLE stack the connection manager drives."""

    @abstractmethod
    def init(self) -> None:
        """Bring up the BLE stack; raise OSError on failure."""

    @abstractmethod
    def start_scan(self, scan_mode: ScanMode, camera_index: int, timeout_ms: int) -> None:
        """Start scanning for a camera; raise OSError on failure."""

    @abstractmethod
    def connect_direct(self, camera_index: int) -> None:
        """Connect to an already discovered camera; raise OSError on failure."""

    @abstractmethod
    def is_camera_connected(self, camera_index: int) -> bool:
        """Whether the BLE link to this camera is up."""

    @abstractmethod
    def has_handles(self, camera_index: int) -> bool:
        """Whether the notify and write characteristics have been discovered."""

    @abstractmethod
    def register_notify(self, camera_index: int) -> None:
        """Enable notifications from the camera; raise OSError on failure."""

    @abstractmethod
    def disconnect(self, camera_index: int) -> None:
        """Drop the BLE link to the camera; raise OSError on failure."""

    @abstractmethod
    def start_advertising(self) -> None:
        """Start advertising; raise OSError on failure."""

    @abstractmethod
    def wake_camera(self, mac: bytes) -> None:
        """Broadcast a wake-up for the camera with this MAC; raise OSError on failure."""


@dataclass(frozen=True)
class ConnectionRequest:
    """Connection request frame (CmdSet 0x00, CmdID 0x19), sent by either side."""

    device_id: int
    mac_addr: bytes
    fw_version: int
    verify_mode: int
    verify_data: int

    @property
    def mac_addr_len(self) -> int:
        return len(self.mac_addr)


@dataclass(frozen=True)
class ConnectionResponse:
    """Connection response frame (CmdSet 0x00, CmdID 0x19)."""

    device_id: int
    ret_code: int
    reserved: bytes = field(default=bytes(_RESPONSE_RESERVED_LEN))


def _no_model_name(device_id: int) -> str:
    return ""


class ConnectionManager:
    """Tracks the connection state and runs the BLE and protocol connection steps."""

    def __init__(self, link: BleLink, sender: CommandSender, cameras: CameraSlots,
                 status: Any = None,
                 sleep: Callable[[float], None] = time.sleep,
                 model_name: Callable[[int], str] = _no_model_name,
                 save_pairings: Optional[Callable[[], None]] = None) -> None:
        self.link = link
        self.sender = sender
        self.cameras = cameras
        self.status = status
        self.sleep = sleep
        self.model_name = model_name
        self.save_pairings = save_pairings
        self.state = ConnectState.BLE_NOT_INIT
        self._connecting = [False] * len(cameras)

    # -- slot connecting flags -------------------------------------------------

    def slot_is_connecting(self, slot_index: int) -> bool:
        return self.cameras.is_valid(slot_index) and self._connecting[slot_index]

    def set_slot_connecting(self, slot_index: int, is_connecting: bool) -> None:
        if self.cameras.is_valid(slot_index):
            self._connecting[slot_index] = bool(is_connecting)

    # -- helpers -----------------------------------------------------------------

    def _poll(self, condition: Callable[[], bool], polls: int) -> bool:
        for _ in range(polls):
            if condition():
                return True
            self.sleep(_POLL_INTERVAL_S)
        return False

    def _clear_status_initialized(self) -> None:
        if self.status is not None:
            self.status.initialized = False

    # -- BLE steps ---------------------------------------------------------------

    def init_ble(self) -> None:
        """Bring up the BLE stack."""
        try:
            self.link.init()
        except OSError as exc:
            raise ConnectionError_(f"failed to initialize BLE: {exc}") from exc
        self.state = ConnectState.BLE_INIT_COMPLETE
        log.info("BLE init successfully")

    def handle_disconnect(self) -> bool:
        """React to a lost BLE link; return True if the link was re-established."""
        state = self.state
        if state == ConnectState.BLE_SEARCHING:
            return False
        if state == ConnectState.BLE_INIT_COMPLETE:
            log.info("Already in DISCONNECTED state.")
            return False
        if state == ConnectState.BLE_DISCONNECTING:
            log.info("Normal disconnection process.")
            self.state = ConnectState.BLE_INIT_COMPLETE
            self._clear_status_initialized()
            return False

        log.warning("Unexpected disconnection from state %s, attempting reconnection", state.name)
        try:
            self.ble_connect(0, ScanMode.SLOT_RECONNECT)
        except ConnectionError_ as exc:
            log.warning("Reconnection attempt failed: %s", exc)
        else:
            if self._poll(lambda: self.link.is_camera_connected(0), _RECONNECT_POLLS):
                log.info("Reconnection successful")
                return True

        log.error("Reconnection failed after 1 attempts")
        self.state = ConnectState.BLE_INIT_COMPLETE
        self._clear_status_initialized()
        try:
            self.link.disconnect(0)
        except OSError as exc:
            log.error("Failed to disconnect camera 0: %s", exc)
        return False

    def _finish_link(self, camera_index: int, *, reset_state: bool) -> None:
        """Wait for the link and its characteristics, then enable notifications."""

        def fail(message: str, cause: Optional[BaseException] = None) -> None:
            self.set_slot_connecting(camera_index, False)
            if reset_state:
                self.state = ConnectState.BLE_INIT_COMPLETE
            raise ConnectionError_(message) from cause

        if not self._poll(lambda: self.link.is_camera_connected(camera_index), _CONNECT_POLLS):
            fail(f"BLE connection timed out for camera {camera_index}")
        if not self._poll(lambda: self.link.has_handles(camera_index), _CONNECT_POLLS):
            fail(f"characteristic handles not found for camera {camera_index}")
        try:
            self.link.register_notify(camera_index)
        except OSError as exc:
            fail(f"failed to register notify for camera {camera_index}: {exc}", exc)
        self.state = ConnectState.BLE_CONNECTED

    def ble_connect(self, camera_index: int, scan_mode: ScanMode) -> None:
        """Scan for the camera, connect, discover characteristics and enable notifications."""
        self.set_slot_connecting(camera_index, True)
        if scan_mode != ScanMode.AUTOCONNECT_BOOT:
            self.state = ConnectState.BLE_SEARCHING

        log.info("Starting BLE scan for camera %d with mode %s", camera_index, scan_mode.name)
        try:
            self.link.start_scan(scan_mode, camera_index, SCAN_TIMEOUT_MS)
        except OSError as exc:
            self.set_slot_connecting(camera_index, False)
            self.state = ConnectState.BLE_INIT_COMPLETE
            raise ConnectionError_(
                f"failed to start scan for camera {camera_index}: {exc}") from exc

        self._finish_link(camera_index, reset_state=True)
        self.sleep(_SETTLE_AFTER_SCAN_S)
        log.info("BLE connect successfully")

    def ble_connect_direct(self, camera_index: int) -> None:
        """Connect to a camera found by an earlier scan, without scanning again."""
        if not self.cameras.is_valid(camera_index):
            raise ValueError(f"invalid camera index: {camera_index}")
        self.set_slot_connecting(camera_index, True)
        try:
            self.link.connect_direct(camera_index)
        except OSError as exc:
            self.set_slot_connecting(camera_index, False)
            raise ConnectionError_(
                f"failed to initiate direct connection for camera {camera_index}: {exc}"
            ) from exc

        self._finish_link(camera_index, reset_state=False)
        self.sleep(_SETTLE_AFTER_DIRECT_S)
        log.info("BLE direct connect successfully for camera %d", camera_index)

    def ble_disconnect(self) -> None:
        """Disconnect camera 0; the state returns to what it was if that fails."""
        old_state = self.state
        self.state = ConnectState.BLE_DISCONNECTING
        try:
            self.link.disconnect(0)
        except OSError as exc:
            self.state = old_state
            raise ConnectionError_(f"failed to disconnect camera 0: {exc}") from exc
        log.info("Camera disconnected successfully")

    # -- protocol handshake ------------------------------------------------------

    def _fail_protocol(self, camera_index: int, message: str) -> None:
        self.set_slot_connecting(camera_index, False)
        try:
            self.ble_disconnect()
        except ConnectionError_ as exc:
            log.error("%s", exc)
        raise ConnectionError_(message)

    def protocol_connect(self, camera_index: int, device_id: int, mac_addr: bytes,
                         fw_version: int, verify_mode: int, verify_data: int,
                         camera_reserved: int) -> int:
        """Run the connection handshake; return the camera's device id."""
        request = ConnectionRequest(device_id=device_id, mac_addr=bytes(mac_addr),
                                    fw_version=fw_version, verify_mode=verify_mode,
                                    verify_data=verify_data)
        try:
            result = self.sender.send(camera_index, 0x00, 0x19, CommandType.CMD_WAIT_RESULT,
                                      request, self.sender.next_seq(), _REQUEST_TIMEOUT_MS)
        except CommandError as exc:
            log.info("No response to connection request (%s), expecting a command frame", exc)
            result = None

        if result is None:
            # The camera may answer with its own command frame instead of a response.
            try:
                self.sender.transport.wait_for_command(0x00, 0x19, _REQUEST_TIMEOUT_MS)
            except TimeoutError:
                self._fail_protocol(camera_index,
                                    "timeout waiting for camera connection command")
        else:
            ret_code = getattr(result.structure, "ret_code", None)
            if ret_code != 0:
                self._fail_protocol(
                    camera_index,
                    f"connection handshake failed, ret_code: {ret_code}")

        try:
            received_seq, command = self.sender.transport.wait_for_command(
                0x00, 0x19, _CAMERA_COMMAND_TIMEOUT_MS)
        except TimeoutError:
            command = None
            received_seq = 0
        camera_request = None if command is None else command.structure
        if camera_request is None:
            self._fail_protocol(camera_index, "timeout waiting for camera connection command")

        camera_device_id = camera_request.device_id
        cam = self.cameras[camera_index]
        cam.device_id = camera_device_id
        cam.model_name = self.model_name(camera_device_id)
        log.info("Camera %d identified as: %s (device_id=0x%04X)",
                 camera_index, cam.model_name, camera_device_id)

        if camera_request.verify_mode != _CAMERA_VERIFY_MODE:
            self._fail_protocol(camera_index,
                                f"unexpected verify_mode from camera: {camera_request.verify_mode}")
        if camera_request.verify_data != 0:
            self._fail_protocol(camera_index, "camera rejected the connection")

        reserved = bytes([camera_reserved & 0xFF]) + bytes(_RESPONSE_RESERVED_LEN - 1)
        response = ConnectionResponse(device_id=device_id, ret_code=0, reserved=reserved)
        try:
            self.sender.send(camera_index, 0x00, 0x19, CommandType.ACK_NO_RESPONSE,
                             response, received_seq, _ACK_TIMEOUT_MS)
        except CommandError as exc:
            log.error("%s", exc)

        self.state = ConnectState.PROTOCOL_CONNECTED
        self.set_slot_connecting(camera_index, False)
        log.info("Connection successfully established with camera %d", camera_index)

        if self.status is not None:
            try:
                self.status.subscribe(camera_index, PushMode.PERIODIC_WITH_STATE_CHANGE,
                                      PushFreq.HZ_2)
            except CommandError as exc:
                log.error("Status subscription failed: %s", exc)

        if self.save_pairings is not None:
            try:
                self.save_pairings()
            except OSError as exc:
                log.warning("Failed to save camera %d pairing: %s", camera_index, exc)

        return camera_device_id

    # -- wake-up -----------------------------------------------------------------

    def ble_wakeup(self) -> None:
        """Start BLE advertising to rouse a sleeping camera."""
        try:
            self.link.start_advertising()
        except OSError as exc:
            raise ConnectionError_(f"failed to start BLE advertising: {exc}") from exc

    def start_wake_broadcast(self, camera_index: int) -> None:
        """Broadcast a wake-up for the paired camera in the slot."""
        if not self.cameras.is_valid(camera_index):
            raise ValueError(f"invalid camera index: {camera_index}")
        cam = self.cameras[camera_index]
        if not cam.is_paired:
            raise ConnectionError_(f"camera {camera_index}: not paired, cannot wake")
        mac = bytes(cam.camera_mac)
        if not any(mac):
            raise ConnectionError_(f"camera {camera_index}: MAC address not available")
        log.info("Starting wake broadcast for camera %d (MAC: %s)",
                 camera_index, ":".join(f"{b:02X}" for b in mac))
        try:
            self.link.wake_camera(mac)
        except OSError as exc:
            raise ConnectionError_(
                f"failed to start wake broadcast for camera {camera_index}: {exc}") from exc