"""Driver model for the XPT2046 resistive touch controller."""

from __future__ import annotations

import abc
import enum
from typing import Callable

from tilenav.touch import GPIO_NUM_NC, MAX_POINTS, TouchConfig, TouchController, TouchPoint

SPI_CLOCK_HZ = 1_000_000
ADC_LIMIT = 4096
Z_THRESHOLD = 100
# TEMP0 reads about 599.5 mV at 25 C with a reference of about 2507 mV.
TEMP0_COUNTS_AT_25C = 599.5 / 2507 * ADC_LIMIT
VREF = 2.507

_PD0_BIT = 0x01
_PD1_BIT = 0x02
_EDGE_MARGIN = 50


class Register(enum.IntEnum):
    """Control bytes of the converter channels, without the power-down bits."""

    Z_VALUE_1 = 0xB0
    Z_VALUE_2 = 0xC0
    Y_POSITION = 0x90
    X_POSITION = 0xD0
    BATTERY = 0xA6
    AUX_IN = 0xE6
    TEMP0 = 0x86
    TEMP1 = 0xF6


class PanelIO(abc.ABC):
    """Bus through which controller registers are read."""

    @abc.abstractmethod
    def rx_param(self, register: int, length: int) -> bytes:
        """Send ``register`` and return ``length`` bytes of its reply."""


class Xpt2046(TouchController):
    """XPT2046 controller reached through a ``PanelIO`` bus.

    ``interrupt_mode`` keeps the pen interrupt enabled between conversions
    and, when a pin and ``pen_level`` are given, skips sampling while the
    pin is high. ``vref_on`` keeps the internal reference powered.
    ``convert_adc_to_coords`` scales readings to ``x_max``/``y_max``
    instead of reporting raw 12-bit values.
    """

    def __init__(
        self,
        io: PanelIO,
        config: TouchConfig,
        *,
        interrupt_mode: bool = False,
        vref_on: bool = False,
        convert_adc_to_coords: bool = False,
        z_threshold: int = Z_THRESHOLD,
        max_points: int = MAX_POINTS,
        pen_level: Callable[[], bool] | None = None,
    ) -> None:
        if io is None:
            raise ValueError("panel IO must not be None")
        if config is None:
            raise ValueError("touch config must not be None")
        if max_points < 1:
            raise ValueError("max_points must be at least 1")
        if config.int_gpio_num != GPIO_NUM_NC and config.int_gpio_num < 0:
            raise ValueError("invalid GPIO interrupt pin")
        super().__init__(config)
        self.io = io
        self.interrupt_mode = interrupt_mode
        self.vref_on = vref_on
        self.convert_adc_to_coords = convert_adc_to_coords
        self.z_threshold = z_threshold
        self.max_points = max_points
        self.pen_level = pen_level
        self._pd_bits = (_PD1_BIT if vref_on else 0) | (0 if interrupt_mode else _PD0_BIT)
        if self.config.int_gpio_num != GPIO_NUM_NC and self.config.interrupt_callback is not None:
            self.register_interrupt_callback(self.config.interrupt_callback)

    def command(self, register: Register) -> int:
        """Return the control byte sent for ``register``."""
        return int(register) | self._pd_bits

    def _read_register(self, register: Register) -> int:
        reply = self.io.rx_param(self.command(register), 2)
        if len(reply) < 2:
            raise OSError("XPT2046 read error")
        return (reply[0] << 8) | reply[1]

    def _read_12bit(self, register: Register) -> int:
        return self._read_register(register) >> 3

    def _valid(self, value: int) -> bool:
        return _EDGE_MARGIN <= value <= ADC_LIMIT - _EDGE_MARGIN

    def read_data(self) -> None:
        """Sample pressure and position, averaging the valid readings."""
        if (
            self.interrupt_mode
            and self.config.int_gpio_num != GPIO_NUM_NC
            and self.pen_level is not None
            and self.pen_level()
        ):
            self._store_points([])
            return

        z1 = self._read_register(Register.Z_VALUE_1)
        z2 = self._read_register(Register.Z_VALUE_2)
        z = ((z1 >> 3) + (ADC_LIMIT - (z2 >> 3))) & 0xFFFF

        x = y = 0
        count = 0
        if z >= self.z_threshold:
            # The first conversion is usually unreliable.
            self._read_register(Register.X_POSITION)
            for _ in range(self.max_points):
                x_temp = self._read_12bit(Register.X_POSITION)
                y_temp = self._read_12bit(Register.Y_POSITION)
                if self._valid(x_temp) and self._valid(y_temp):
                    if self.convert_adc_to_coords:
                        x = int(x + x_temp / ADC_LIMIT * self.config.x_max)
                        y = int(y + y_temp / ADC_LIMIT * self.config.y_max)
                    else:
                        x += x_temp
                        y += y_temp
                    count += 1
            minimum = 1 if self.max_points == 1 else self.max_points // 2
            if count >= minimum:
                x //= count
                y //= count
                count = 1
            else:
                z = 0
                count = 0

        if count:
            self._store_points([TouchPoint(x & 0xFFFF, y & 0xFFFF, z)])
        else:
            self._store_points([])

    def _read_level(self, register: Register) -> int:
        if not self.vref_on:
            # Power the reference early so it settles before the real read.
            self._read_register(register)
        return self._read_12bit(register)

    def _power_down(self) -> None:
        if not self.vref_on:
            self._read_register(Register.Z_VALUE_1)

    def read_battery_level(self) -> float:
        """Return the voltage on the battery input, 0 to 6 V."""
        level = self._read_level(Register.BATTERY)
        # The chip reports a quarter of the battery voltage.
        voltage = level * 4.0 * VREF / 4096.0
        self._power_down()
        return voltage

    def read_aux_level(self) -> float:
        """Return the voltage on the auxiliary input, 0 to 2.5 V."""
        level = self._read_level(Register.AUX_IN)
        voltage = level * VREF / 4096.0
        self._power_down()
        return voltage

    def read_temp0_level(self) -> float:
        """Return the chip temperature in C from a one-point reading."""
        temp0 = self._read_level(Register.TEMP0)
        celsius = (TEMP0_COUNTS_AT_25C - temp0) * (VREF / 4096.0) / 0.0021 + 25.0
        self._power_down()
        return celsius

    def read_temp1_level(self) -> float:
        """Return the chip temperature in C from a two-point reading."""
        if not self.vref_on:
            self._read_register(Register.TEMP0)
        temp0 = self._read_12bit(Register.TEMP0)
        temp1 = self._read_12bit(Register.TEMP1)
        celsius = (temp1 - temp0) * 1000.0 * (VREF / 4096.0) * 2.573 - 273.0
        self._power_down()
        return celsius