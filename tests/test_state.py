import pytest

from djiremote.state import CameraConnectionState, CameraSlots, CameraState


def test_default_has_three_slots():
    cameras = CameraSlots()
    assert len(cameras) == 3
    assert [cameras.is_valid(i) for i in range(-1, 4)] == [False, True, True, True, False]


@pytest.mark.parametrize("index", [3, -1])
def test_getitem_rejects_out_of_range_and_negative(index):
    cameras = CameraSlots()
    with pytest.raises(IndexError):
        cameras[index]
    assert cameras[2] is list(cameras)[2]
    assert cameras[0] is list(cameras)[0]


def test_invalid_count():
    with pytest.raises(ValueError):
        CameraSlots(0)


def test_slots_are_independent():
    cameras = CameraSlots()
    cameras[1].is_paired = True
    cameras[1].device_id = 0xFF33
    assert cameras[0].is_paired is False
    assert cameras[2].device_id == 0
    assert cameras[1].device_id == 0xFF33


def test_iteration_matches_indexing():
    cameras = CameraSlots(2)
    items = list(cameras)
    assert items[0] is cameras[0]
    assert items[1] is cameras[1]
    assert len(items) == len(cameras)


def test_any_paired():
    cameras = CameraSlots()
    assert cameras.any_paired() is False
    cameras[2].is_paired = True
    assert cameras.any_paired() is True


def test_camera_state_defaults():
    cam = CameraState()
    assert cam.connection_state is CameraConnectionState.UNPAIRED
    assert cam.camera_mac == bytes(6)
    assert cam.is_sleeping is False
    assert cam.mode_name == ""


def test_display_flag_starts_clear():
    cameras = CameraSlots()
    assert cameras.display_needs_update is False
    cameras.display_needs_update = True
    assert cameras.display_needs_update is True