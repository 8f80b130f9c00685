"""Status LED: colour and blinking chosen from the connection state."""

from __future__ import annotations

from dataclasses import dataclass

from .enums import ConnectState

_DIM = 13  # about 5% of full brightness


@dataclass(frozen=True)
class LedColor:
    red: int = 0
    green: int = 0
    blue: int = 0


OFF = LedColor()


def led_state_for(connect_state: ConnectState, recording: bool) -> tuple[LedColor, bool]:
    """Return the (colour, blinking) pair that represents a connection state."""
    if connect_state == ConnectState.BLE_NOT_INIT:
        return LedColor(_DIM, 0, 0), False
    if connect_state == ConnectState.BLE_INIT_COMPLETE:
        return LedColor(_DIM, _DIM, 0), False
    if connect_state == ConnectState.BLE_SEARCHING:
        return LedColor(0, 0, _DIM), True
    if connect_state == ConnectState.BLE_CONNECTED:
        return LedColor(0, 0, _DIM), False
    if connect_state == ConnectState.PROTOCOL_CONNECTED:
        return LedColor(0, _DIM, 0), bool(recording)
    return OFF, False


class LedController:
    """Holds the current LED target and produces the colour to show each tick."""

    def __init__(self) -> None:
        self.color = OFF
        self.blinking = False
        self.led_on = False

    def update(self, connect_state: ConnectState, recording: bool) -> None:
        self.color, self.blinking = led_state_for(connect_state, recording)

    def tick(self) -> LedColor:
        """Advance one blink period and return the colour to display."""
        if not self.blinking:
            return self.color
        shown = OFF if self.led_on else self.color
        self.led_on = not self.led_on
        return shown