"""Protocol enumerations and their human-readable names."""

from __future__ import annotations

from enum import IntEnum


class CommandType(IntEnum):
    """Frame type byte: command or acknowledgement, and how replies are handled."""

    CMD_NO_RESPONSE = 0x00
    CMD_RESPONSE_OR_NOT = 0x01
    CMD_WAIT_RESULT = 0x02
    ACK_NO_RESPONSE = 0x20
    ACK_RESPONSE_OR_NOT = 0x21
    ACK_WAIT_RESULT = 0x22


class CameraMode(IntEnum):
    SLOW_MOTION = 0x00
    NORMAL = 0x01
    TIMELAPSE = 0x02
    PHOTO = 0x05
    HYPERLAPSE = 0x0A
    LIVE_STREAMING = 0x1A
    UVC_STREAMING = 0x23
    SUPERNIGHT = 0x28
    SUBJECT_TRACKING = 0x34


class CameraStatus(IntEnum):
    SCREEN_OFF = 0x00
    LIVE_STREAMING = 0x01
    PLAYBACK = 0x02
    PHOTO_OR_RECORDING = 0x03
    PRE_RECORDING = 0x05


class VideoResolution(IntEnum):
    RES_1080P = 10
    RES_4K_16_9 = 16
    RES_2K_16_9 = 45
    RES_1080P_9_16 = 66
    RES_2K_9_16 = 67
    RES_2K_4_3 = 95
    RES_4K_4_3 = 103
    RES_4K_9_16 = 109
    L = 4
    M = 3
    S = 2


class FpsIndex(IntEnum):
    FPS_24 = 1
    FPS_25 = 2
    FPS_30 = 3
    FPS_48 = 4
    FPS_50 = 5
    FPS_60 = 6
    FPS_100 = 10
    FPS_120 = 7
    FPS_200 = 19
    FPS_240 = 8


class EisMode(IntEnum):
    OFF = 0
    RS = 1
    RS_PLUS = 3
    HB = 4
    HS = 2


class PushMode(IntEnum):
    OFF = 0
    SINGLE = 1
    PERIODIC = 2
    PERIODIC_WITH_STATE_CHANGE = 3


class PushFreq(IntEnum):
    HZ_2 = 20


class ConnectState(IntEnum):
    """Overall BLE / protocol connection state."""

    BLE_NOT_INIT = -1
    BLE_INIT_COMPLETE = 0
    BLE_SEARCHING = 1
    BLE_CONNECTED = 2
    PROTOCOL_CONNECTED = 3
    BLE_DISCONNECTING = 4


_CAMERA_MODE_NAMES = {
    CameraMode.SLOW_MOTION: "Slow Motion",
    CameraMode.NORMAL: "Video",
    CameraMode.TIMELAPSE: "Timelapse",
    CameraMode.PHOTO: "Photo",
    CameraMode.HYPERLAPSE: "Hyperlapse",
    CameraMode.LIVE_STREAMING: "Live Streaming",
    CameraMode.UVC_STREAMING: "UVC Live Streaming",
    CameraMode.SUPERNIGHT: "SuperNight",
    CameraMode.SUBJECT_TRACKING: "Subject Tracking",
}

_CAMERA_STATUS_NAMES = {
    CameraStatus.SCREEN_OFF: "Screen off",
    CameraStatus.LIVE_STREAMING: "Live streaming (including screen-on without recording)",
    CameraStatus.PLAYBACK: "Playback",
    CameraStatus.PHOTO_OR_RECORDING: "Photo or recording",
    CameraStatus.PRE_RECORDING: "Pre-recording",
}

_RESOLUTION_NAMES = {
    VideoResolution.RES_1080P: "1920x1080P",
    VideoResolution.RES_4K_16_9: "4096x2160P 4K 16:9",
    VideoResolution.RES_2K_16_9: "2720x1530P 2.7K 16:9",
    VideoResolution.RES_1080P_9_16: "1920x1080P 9:16",
    VideoResolution.RES_2K_9_16: "2720x1530P 9:16",
    VideoResolution.RES_2K_4_3: "2720x2040P 2.7K 4:3",
    VideoResolution.RES_4K_4_3: "4096x3072P 4K 4:3",
    VideoResolution.RES_4K_9_16: "4096x2160P 4K 9:16",
    VideoResolution.L: "Ultra Wide 30MP (Osmo360)",
    VideoResolution.M: "Wide 20MP (Osmo360)",
    VideoResolution.S: "Standard 12MP (Osmo360)",
}

_FPS_NAMES = {
    FpsIndex.FPS_24: "24fps",
    FpsIndex.FPS_25: "25fps",
    FpsIndex.FPS_30: "30fps",
    FpsIndex.FPS_48: "48fps",
    FpsIndex.FPS_50: "50fps",
    FpsIndex.FPS_60: "60fps",
    FpsIndex.FPS_100: "100fps",
    FpsIndex.FPS_120: "120fps",
    FpsIndex.FPS_200: "200fps",
    FpsIndex.FPS_240: "240fps",
}

_EIS_NAMES = {
    EisMode.OFF: "Off",
    EisMode.RS: "RS",
    EisMode.RS_PLUS: "RS+",
    EisMode.HB: "HB",
    EisMode.HS: "HS",
}


def camera_mode_to_string(mode: int) -> str:
    """Name of a camera mode value; unknown values point at the 1D06 push."""
    return _CAMERA_MODE_NAMES.get(int(mode), "Other Mode, see 1D06 Cmd")


def camera_status_to_string(status: int) -> str:
    """Name of a camera status value."""
    return _CAMERA_STATUS_NAMES.get(int(status), "Unknown status")


def video_resolution_to_string(res: int) -> str:
    """Name of a video resolution value, or "-" when unknown."""
    return _RESOLUTION_NAMES.get(int(res), "-")


def fps_idx_to_string(fps: int) -> str:
    """Name of a frame-rate index, or "-" when unknown."""
    return _FPS_NAMES.get(int(fps), "-")


def eis_mode_to_string(mode: int) -> str:
    """Name of an image-stabilisation mode."""
    return _EIS_NAMES.get(int(mode), "Unknown EIS mode")