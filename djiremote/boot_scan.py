"""The single boot-time scan that looks for every paired camera at once."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Protocol

from .connection import BleLink, ConnectionError_, ConnectionManager, ScanMode
from .enums import ConnectState
from .state import CameraConnectionState

log = logging.getLogger(__name__)

BOOT_SCAN_TIMEOUT_MS = 30000
_ALL_SLOTS = -1


class _ScanningLink(Protocol):
    def is_scanning(self) -> bool: ...

    def stop_scan(self) -> None: ...


def _default_clock() -> int:
    return int(time.monotonic() * 1000)


class BootScanner:
    """Runs the boot scan for all paired slots and tracks which cameras were found.

    The manager's link must also offer ``is_scanning()`` and ``stop_scan()``.
    The link reads the targets (name and MAC) from the shared camera slots.
    """

    def __init__(self, manager: ConnectionManager,
                 clock: Callable[[], int] = _default_clock,
                 on_complete: Optional[Callable[[], None]] = None) -> None:
        self.manager = manager
        self.clock = clock
        self.on_complete = on_complete
        count = len(manager.cameras)
        self._active = False
        self._start_ms = 0
        self._boot_connect_in_progress = False
        self._pending = [False] * count
        self._found = [False] * count
        self._not_found = [False] * count

    # -- read-only views -------------------------------------------------------

    @property
    def active(self) -> bool:
        """Whether the boot scan is running."""
        return self._active

    @property
    def boot_connect_in_progress(self) -> bool:
        """Whether cameras found by the boot scan are still being connected."""
        return self._boot_connect_in_progress

    @property
    def _link(self) -> BleLink:
        return self.manager.link

    @property
    def _scanner(self) -> _ScanningLink:
        return self.manager.link  # type: ignore[return-value]

    def _valid(self, slot_index: int) -> bool:
        return self.manager.cameras.is_valid(slot_index)

    # -- state -----------------------------------------------------------------

    def _reset(self) -> None:
        self._active = False
        self._start_ms = 0
        self._boot_connect_in_progress = False
        for index in range(len(self._pending)):
            self._pending[index] = False
            self._found[index] = False
            self._not_found[index] = False
            self.manager.set_slot_connecting(index, False)

    def _reset_slot_connection(self, index: int) -> None:
        cam = self.manager.cameras[index]
        cam.connection_state = CameraConnectionState.PAIRED_DISCONNECTED
        cam.is_connected = False
        if cam.snapshot_pending:
            log.debug("Boot scan: camera %d snapshot_pending cleared", index)
        cam.snapshot_pending = False

    def start(self) -> None:
        """Start one scan that looks for all paired cameras."""
        manager = self.manager
        cameras = manager.cameras
        if not cameras.any_paired():
            manager.state = ConnectState.BLE_INIT_COMPLETE
            raise ConnectionError_("no paired slots, skipping boot scan")

        for index, cam in enumerate(cameras):
            if cam.is_paired:
                self._reset_slot_connection(index)

        self._reset()

        for index in range(len(cameras)):
            if self._link.is_camera_connected(index):
                log.info("Boot scan: disconnecting stale connection for slot %d", index)
                try:
                    self._link.disconnect(index)
                except OSError as exc:
                    log.error("Boot scan: failed to disconnect slot %d: %s", index, exc)

        for index, cam in enumerate(cameras):
            if cam.is_paired:
                self._pending[index] = True
        pending_count = sum(self._pending)

        manager.state = ConnectState.BLE_SEARCHING
        try:
            self._link.start_scan(ScanMode.AUTOCONNECT_BOOT, _ALL_SLOTS, BOOT_SCAN_TIMEOUT_MS)
        except OSError as exc:
            self._reset()
            manager.state = ConnectState.BLE_INIT_COMPLETE
            raise ConnectionError_(f"failed to start boot scan: {exc}") from exc

        self._start_ms = self.clock()
        self._active = True
        log.info("Boot scan started for %d paired slot(s), timeout=%d ms",
                 pending_count, BOOT_SCAN_TIMEOUT_MS)
        cameras.display_needs_update = True

    def mark_slot_found(self, slot_index: int) -> None:
        """Record that a paired camera was seen during the boot scan."""
        if not self._valid(slot_index):
            log.warning("Invalid slot index %d in mark_slot_found", slot_index)
            return
        if self._active and self._pending[slot_index]:
            self._found[slot_index] = True
            self._pending[slot_index] = False
            log.info("Boot scan: slot %d marked as found", slot_index)
            self.manager.cameras[slot_index].needs_full_redraw = True
            self.manager.cameras.display_needs_update = True

    def update(self) -> bool:
        """Stop the scan on timeout or when all are found; return True once it completed."""
        if not self._active:
            return False

        elapsed = (self.clock() - self._start_ms) & 0xFFFFFFFF
        all_found = not any(self._pending)
        timeout_expired = elapsed >= BOOT_SCAN_TIMEOUT_MS
        scan_running = self._scanner.is_scanning()

        if (all_found or timeout_expired) and scan_running:
            log.info("Boot scan stopping: all_found=%s, timeout=%s, elapsed=%d ms",
                     all_found, timeout_expired, elapsed)
            self._scanner.stop_scan()

        if scan_running and not (not all_found and timeout_expired):
            return False

        self._active = False
        self.manager.state = ConnectState.BLE_INIT_COMPLETE

        found_count = 0
        not_found_count = 0
        for index in range(len(self._pending)):
            if self._found[index]:
                found_count += 1
            elif self._pending[index]:
                not_found_count += 1
                self._not_found[index] = True
                log.warning("Boot scan: slot %d not found", index)
        log.info("Boot scan completed: %d found, %d not found", found_count, not_found_count)

        for index, cam in enumerate(self.manager.cameras):
            if cam.is_paired and not self._found[index]:
                self._reset_slot_connection(index)
                cam.needs_full_redraw = True

        if found_count > 0:
            self._boot_connect_in_progress = True
        if self.on_complete is not None:
            self.on_complete()
        return True

    def stop_and_connect_found(self) -> None:
        """End the scan early and hand the cameras found so far to the connector."""
        if not self._active:
            log.info("Boot scan not active, nothing to stop")
            return
        self._scanner.stop_scan()
        self._active = False
        self.manager.state = ConnectState.BLE_INIT_COMPLETE

        found_count = sum(
            1 for index, cam in enumerate(self.manager.cameras)
            if cam.is_paired and self._found[index] and not cam.is_connected
        )
        if found_count > 0:
            self._boot_connect_in_progress = True
            log.info("Boot connect phase starting for %d cameras (user abort)", found_count)
        if self.on_complete is not None:
            self.on_complete()
        self.manager.cameras.display_needs_update = True

    # -- per-slot flags ----------------------------------------------------------

    def is_slot_found(self, slot_index: int) -> bool:
        return self._valid(slot_index) and self._found[slot_index]

    def was_slot_not_found(self, slot_index: int) -> bool:
        return self._valid(slot_index) and self._not_found[slot_index]

    def clear_slot_not_found(self, slot_index: int) -> None:
        if self._valid(slot_index):
            self._not_found[slot_index] = False

    def mark_slot_not_found(self, slot_index: int) -> None:
        if self._valid(slot_index):
            self._not_found[slot_index] = True

    def clear_boot_connect_flag(self) -> None:
        self._boot_connect_in_progress = False
        log.info("Boot connect phase completed")