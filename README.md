# djiremote

Control logic for a multi-camera BLE remote for DJI action cameras (Action 4,
Action 5 Pro, Action 6, Osmo 360). It has no dependencies outside the standard
library.

## Modules

- `djiremote.enums` has the protocol enumerations (`CommandType`, `CameraMode`,
  `CameraStatus`, `VideoResolution`, `FpsIndex`, `EisMode`, `PushMode`,
  `PushFreq`, `ConnectState`). It also has functions that give their display
  names, such as `camera_mode_to_string` and `video_resolution_to_string`.
- `djiremote.state` defines `CameraState`, which holds everything known about one
  camera. It also defines `CameraSlots`, a fixed set of slots addressed by index.
  The default is three slots.
- `djiremote.commands` defines `CommandSender`. It builds command payloads, sends
  them over a `Transport` and collects replies. It covers mode switch, version
  query, start and stop recording (waiting or fire-and-forget), QS key report,
  sleep and wake, and GPS push. Commands to a sleeping camera are blocked, except
  the wake command.
- `djiremote.slots` has slot checks: `is_paired`, `is_connected`, `is_awake`,
  `is_recording` and `supports_highlight`. It also has key-report commands:
  `send_key_report`, `send_snapshot_key`, `send_highlight` and
  `send_highlight_for_all_active`.
- `djiremote.status` defines `StatusTracker`. It applies camera status pushes
  (`CameraStatusPush`, 1D02, and `NewCameraStatusPush`, 1D06) to the slots. It
  sends a snapshot key when a camera with a pending snapshot wakes up. It also
  subscribes to status pushes.
- `djiremote.connection` defines `ConnectionManager`. It handles BLE connect
  (by scan or direct), disconnect and reconnect after an unexpected drop. It runs
  the protocol connection handshake and sends wake broadcasts.
- `djiremote.boot_scan` defines `BootScanner`. It runs one scan for all paired
  slots and records which cameras were found and which were not.
- `djiremote.light` works out the status LED's colour and blinking from the
  connection state (`led_state_for`, `LedController`).

## Example

```python
from djiremote.enums import CameraMode, camera_mode_to_string
from djiremote.state import CameraSlots
from djiremote.commands import CommandSender

cameras = CameraSlots(3)
sender = CommandSender(my_transport, cameras, device_id=0x12345678)

response = sender.switch_camera_mode(0, CameraMode.PHOTO)
print(camera_mode_to_string(CameraMode.PHOTO))  # "Photo"

sender.start_record_async(0)
```

In this example, `my_transport` is your own `Transport` implementation.

Errors are raised as follows:

- A failed send, or a required reply that never arrives, raises `CommandError`.
- A slot operation that is not allowed raises `SlotError`.
- A highlight on a camera model without highlight support raises
  `HighlightNotSupportedError`.
- A failed connection step raises `ConnectionError_`.

## Status LED

```python
from djiremote.enums import ConnectState
from djiremote.light import LedController

led = LedController()
led.update(ConnectState.PROTOCOL_CONNECTED, recording=True)
color = led.tick()  # alternates between green and off while recording
```

## What the package does not do

The package is logic only:

- **No BLE stack and no frame encoder or parser.** You provide these by
  implementing `Transport` (frame creation, writes, waiting for results and
  incoming commands) and `BleLink` (init, scanning, direct connect, handles,
  notifications, disconnect, advertising, wake). `BootScanner` also needs the
  link to offer `is_scanning()` and `stop_scan()`.
- **No storage of pairings.** `ConnectionManager` calls the `save_pairings`
  callback you pass in.
- **No camera model names.** They come from the `model_name` callback you pass in.
- **No screen, no LED driver and no command-line program.** `LedController.tick()`
  only returns the colour to show.

## Running the tests

```
pip install -e ".[test]"
pytest
```