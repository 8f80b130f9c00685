import pytest

from djiremote.commands import CommandError, CommandResult, CommandSender, Transport
from djiremote.enums import ConnectState
from djiremote.state import CameraConnectionState, CameraSlots
from djiremote.status import (
    NOT_INITIALIZED_MESSAGE,
    CameraStatusPush,
    NewCameraStatusPush,
    StatusSubscriptionCommand,
    StatusTracker,
)


class FakeTransport(Transport):
    def __init__(self, connected=True):
        self.connected = connected
        self.frames = []

    def is_camera_connected(self, camera_index):
        return self.connected

    def create_frame(self, cmd_set, cmd_id, cmd_type, payload, seq):
        self.frames.append((cmd_set, cmd_id, int(cmd_type), payload))
        return bytes([cmd_set, cmd_id])

    def write(self, camera_index, seq, frame, with_response):
        pass

    def wait_for_result(self, seq, timeout_ms):
        raise TimeoutError

    def wait_for_command(self, cmd_set, cmd_id, timeout_ms):
        raise TimeoutError


class Clock:
    def __init__(self, now=1000):
        self.now = now

    def __call__(self):
        return self.now


def make(state=ConnectState.PROTOCOL_CONNECTED, connected=True, on_wake=None):
    cameras = CameraSlots()
    transport = FakeTransport(connected)
    sender = CommandSender(transport, cameras, 0x1234)
    clock = Clock()
    tracker = StatusTracker(cameras, sender, lambda: state, clock, on_wake)
    return tracker, cameras, transport, clock


def test_first_update_initializes_slot():
    tracker, cameras, _, clock = make()
    assert tracker.update_camera_state(0, CameraStatusPush()) is True
    assert cameras[0].is_initialized
    assert cameras[0].needs_full_redraw
    assert cameras.display_needs_update
    assert tracker.initialized
    assert cameras[0].last_status_timestamp == clock.now
    assert tracker.last_status_push_ms == clock.now


def test_repeated_identical_push_reports_no_change():
    tracker, _, _, _ = make()
    push = CameraStatusPush(camera_mode=1, camera_status=1)
    tracker.update_camera_state(0, push)
    assert tracker.update_camera_state(0, push) is False


@pytest.mark.parametrize("status, recording", [(3, True), (5, True), (1, False), (2, False)])
def test_recording_follows_camera_status(status, recording):
    tracker, cameras, _, _ = make()
    tracker.update_camera_state(0, CameraStatusPush(camera_status=status))
    assert cameras[0].is_recording is recording
    assert tracker.is_camera_recording() is recording


def test_other_camera_does_not_touch_camera_zero_status():
    tracker, cameras, _, _ = make()
    tracker.update_camera_state(1, CameraStatusPush(camera_status=3))
    assert cameras[1].is_recording
    assert not tracker.initialized
    assert tracker.is_camera_recording() is False
    assert tracker.current.camera_status == 0


def test_fields_copied_and_battery_alias():
    tracker, cameras, _, _ = make()
    push = CameraStatusPush(camera_mode=5, video_resolution=16, fps_idx=6,
                            remain_capacity=64000, camera_bat_percentage=77)
    tracker.update_camera_state(0, push)
    cam = cameras[0]
    assert cam.camera_mode == 5
    assert cam.video_resolution == 16
    assert cam.remain_capacity == 64000
    assert cam.camera_bat_percentage == 77
    assert cam.battery_percentage == 77
    assert tracker.current.fps_idx == 6


def test_entering_sleep_records_transition_time():
    tracker, cameras, _, clock = make()
    clock.now = 4242
    tracker.update_camera_state(0, CameraStatusPush(power_mode=3))
    assert cameras[0].is_sleeping
    assert cameras[0].last_sleep_state_change_ms == 4242
    assert tracker.current.power_mode == 3


def _ready_slot(cameras, index):
    cam = cameras[index]
    cam.is_paired = True
    cam.is_connected = True
    cam.connection_state = CameraConnectionState.CONNECTED


def test_wake_sends_pending_snapshot_and_notifies():
    woke = []
    tracker, cameras, transport, _ = make(on_wake=woke.append)
    _ready_slot(cameras, 1)
    tracker.update_camera_state(1, CameraStatusPush(power_mode=3))
    cameras[1].snapshot_pending = True
    tracker.update_camera_state(1, CameraStatusPush(power_mode=0))
    assert not cameras[1].is_sleeping
    assert cameras[1].snapshot_pending is False
    assert woke == [1]
    cmd_set, cmd_id, _, payload = transport.frames[-1]
    assert (cmd_set, cmd_id) == (0x00, 0x11)
    assert payload.key_code == 0x03


def test_wake_snapshot_failure_still_clears_pending():
    tracker, cameras, transport, _ = make()
    tracker.update_camera_state(0, CameraStatusPush(power_mode=3))
    cameras[0].snapshot_pending = True
    tracker.update_camera_state(0, CameraStatusPush(power_mode=0))
    assert cameras[0].snapshot_pending is False
    assert transport.frames == []


def test_invalid_arguments_raise():
    tracker, _, _, _ = make()
    with pytest.raises(ValueError):
        tracker.update_camera_state(7, CameraStatusPush())
    with pytest.raises(ValueError):
        tracker.update_camera_state(0, None)
    with pytest.raises(ValueError):
        tracker.update_new_camera_state(-1, NewCameraStatusPush())


def test_subscribe_requires_protocol_connection():
    tracker, _, transport, _ = make(state=ConnectState.BLE_CONNECTED)
    with pytest.raises(CommandError):
        tracker.subscribe(0, 3, 20)
    assert transport.frames == []


def test_subscribe_sends_subscription_frame():
    tracker, _, transport, _ = make()
    tracker.subscribe(2, 3, 20)
    cmd_set, cmd_id, cmd_type, payload = transport.frames[-1]
    assert (cmd_set, cmd_id, cmd_type) == (0x1D, 0x05, 0x00)
    assert payload == StatusSubscriptionCommand(3, 20)
    assert payload.reserved == bytes(4)


def test_subscribe_swallows_send_failure():
    tracker, _, transport, _ = make(connected=False)
    tracker.subscribe(0, 3, 20)
    assert transport.frames == []


def test_new_status_push_stores_mode_text():
    tracker, cameras, _, _ = make()
    push = NewCameraStatusPush(mode_name=b"Video", mode_name_length=5,
                               mode_param=b"4K 60fps extra", mode_param_length=8)
    tracker.update_new_camera_state(0, push)
    assert cameras[0].mode_name == "Video"
    assert cameras[0].mode_param == "4K 60fps"
    assert cameras[0].camera_supports_new_status_push
    assert cameras.display_needs_update


def test_new_status_push_truncates_long_text():
    tracker, cameras, _, _ = make()
    name = b"A" * 30
    tracker.update_new_camera_state(0, NewCameraStatusPush(mode_name=name, mode_name_length=30))
    assert cameras[0].mode_name == "A" * 20


def test_describe_before_and_after_initialization():
    tracker, _, _, _ = make()
    assert tracker.describe_camera_status() == NOT_INITIALIZED_MESSAGE
    tracker.update_camera_state(0, CameraStatusPush(camera_mode=1, camera_status=3))
    text = tracker.describe_camera_status()
    assert "  Mode: Video" in text
    assert "  Status: Photo or recording" in text
    assert "Record time: 0" in text