import pytest

from djiremote.boot_scan import BOOT_SCAN_TIMEOUT_MS, BootScanner
from djiremote.connection import BleLink, ConnectionError_, ConnectionManager, ScanMode
from djiremote.enums import ConnectState
from djiremote.state import CameraConnectionState, CameraSlots


class FakeLink(BleLink):
    def __init__(self):
        self.connected = set()
        self.scanning = False
        self.scans = []
        self.disconnected = []
        self.stop_calls = 0
        self.fail_scan = False

    def init(self):
        pass

    def start_scan(self, scan_mode, camera_index, timeout_ms):
        if self.fail_scan:
            raise OSError("scan failed")
        self.scans.append((scan_mode, camera_index, timeout_ms))
        self.scanning = True

    def connect_direct(self, camera_index):
        pass

    def is_camera_connected(self, camera_index):
        return camera_index in self.connected

    def has_handles(self, camera_index):
        return True

    def register_notify(self, camera_index):
        pass

    def disconnect(self, camera_index):
        self.disconnected.append(camera_index)
        self.connected.discard(camera_index)

    def start_advertising(self):
        pass

    def wake_camera(self, mac):
        pass

    def is_scanning(self):
        return self.scanning

    def stop_scan(self):
        self.stop_calls += 1
        self.scanning = False


class Clock:
    def __init__(self):
        self.now = 1000

    def __call__(self):
        return self.now


def make(paired=(0, 1)):
    cameras = CameraSlots()
    for index in paired:
        cameras[index].is_paired = True
    link = FakeLink()
    manager = ConnectionManager(link, None, cameras, sleep=lambda s: None)
    clock = Clock()
    completions = []
    scanner = BootScanner(manager, clock, lambda: completions.append(True))
    return scanner, manager, link, cameras, clock, completions


def test_start_without_paired_slots_fails():
    scanner, manager, link, *_ = make(paired=())
    with pytest.raises(ConnectionError_):
        scanner.start()
    assert manager.state == ConnectState.BLE_INIT_COMPLETE
    assert link.scans == []
    assert scanner.active is False


def test_start_begins_boot_scan():
    scanner, manager, link, cameras, *_ = make()
    scanner.start()
    assert scanner.active is True
    assert manager.state == ConnectState.BLE_SEARCHING
    assert link.scans == [(ScanMode.AUTOCONNECT_BOOT, -1, BOOT_SCAN_TIMEOUT_MS)]
    assert BOOT_SCAN_TIMEOUT_MS == 30000
    assert cameras.display_needs_update is True


def test_start_resets_paired_slots_and_disconnects_stale_links():
    scanner, manager, link, cameras, *_ = make()
    cameras[0].is_connected = True
    cameras[0].connection_state = CameraConnectionState.CONNECTED
    cameras[0].snapshot_pending = True
    link.connected = {0, 2}
    manager.set_slot_connecting(1, True)
    scanner.start()
    assert cameras[0].connection_state == CameraConnectionState.PAIRED_DISCONNECTED
    assert cameras[0].is_connected is False
    assert cameras[0].snapshot_pending is False
    assert sorted(link.disconnected) == [0, 2]
    assert manager.slot_is_connecting(1) is False


def test_start_scan_failure_resets_state():
    scanner, manager, link, *_ = make()
    link.fail_scan = True
    with pytest.raises(ConnectionError_):
        scanner.start()
    assert scanner.active is False
    assert manager.state == ConnectState.BLE_INIT_COMPLETE


def test_mark_slot_found_only_for_pending_slots():
    scanner, _, _, cameras, *_ = make(paired=(0,))
    scanner.mark_slot_found(0)
    assert scanner.is_slot_found(0) is False
    scanner.start()
    scanner.mark_slot_found(0)
    scanner.mark_slot_found(1)
    scanner.mark_slot_found(7)
    assert scanner.is_slot_found(0) is True
    assert scanner.is_slot_found(1) is False
    assert scanner.is_slot_found(7) is False
    assert cameras[0].needs_full_redraw is True


def test_update_when_inactive_returns_false():
    scanner, *_ = make()
    assert scanner.update() is False


def test_update_before_timeout_keeps_scanning():
    scanner, manager, link, _, clock, completions = make()
    scanner.start()
    clock.now += 100
    assert scanner.update() is False
    assert scanner.active is True
    assert link.stop_calls == 0
    assert completions == []


def test_all_found_stops_scan_then_completes():
    scanner, manager, link, cameras, clock, completions = make()
    scanner.start()
    scanner.mark_slot_found(0)
    scanner.mark_slot_found(1)
    assert scanner.update() is False
    assert link.stop_calls == 1
    assert scanner.update() is True
    assert scanner.active is False
    assert manager.state == ConnectState.BLE_INIT_COMPLETE
    assert completions == [True]
    assert scanner.boot_connect_in_progress is True
    assert scanner.was_slot_not_found(0) is False


def test_timeout_marks_missing_slots_not_found():
    scanner, manager, link, cameras, clock, completions = make()
    scanner.start()
    scanner.mark_slot_found(0)
    clock.now += BOOT_SCAN_TIMEOUT_MS
    assert scanner.update() is True
    assert link.stop_calls == 1
    assert scanner.was_slot_not_found(1) is True
    assert scanner.was_slot_not_found(0) is False
    assert scanner.was_slot_not_found(2) is False
    assert cameras[1].connection_state == CameraConnectionState.PAIRED_DISCONNECTED
    assert cameras[1].needs_full_redraw is True
    assert scanner.boot_connect_in_progress is True
    assert completions == [True]


def test_timeout_with_nothing_found_leaves_boot_connect_off():
    scanner, _, _, _, clock, completions = make()
    scanner.start()
    clock.now += BOOT_SCAN_TIMEOUT_MS + 1
    assert scanner.update() is True
    assert scanner.boot_connect_in_progress is False
    assert completions == [True]


def test_scan_ended_by_link_completes():
    scanner, _, link, _, _, completions = make()
    scanner.start()
    link.scanning = False
    assert scanner.update() is True
    assert scanner.was_slot_not_found(0) is True
    assert completions == [True]


def test_stop_and_connect_found():
    scanner, manager, link, cameras, _, completions = make()
    scanner.stop_and_connect_found()
    assert completions == []
    scanner.start()
    scanner.mark_slot_found(1)
    cameras.display_needs_update = False
    scanner.stop_and_connect_found()
    assert link.stop_calls == 1
    assert scanner.active is False
    assert manager.state == ConnectState.BLE_INIT_COMPLETE
    assert scanner.boot_connect_in_progress is True
    assert completions == [True]
    assert cameras.display_needs_update is True


def test_stop_without_found_cameras_leaves_flag_off():
    scanner, _, _, _, _, completions = make()
    scanner.start()
    scanner.stop_and_connect_found()
    assert scanner.boot_connect_in_progress is False
    assert completions == [True]


def test_not_found_flags_and_boot_connect_flag():
    scanner, _, _, _, clock, _ = make()
    scanner.mark_slot_not_found(2)
    assert scanner.was_slot_not_found(2) is True
    scanner.clear_slot_not_found(2)
    assert scanner.was_slot_not_found(2) is False
    scanner.mark_slot_not_found(-1)
    assert scanner.was_slot_not_found(-1) is False
    scanner.start()
    scanner.mark_slot_found(0)
    clock.now += BOOT_SCAN_TIMEOUT_MS
    scanner.update()
    assert scanner.boot_connect_in_progress is True
    scanner.clear_boot_connect_flag()
    assert scanner.boot_connect_in_progress is False