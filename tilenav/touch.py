"""Generic touch controller model: coordinate reading, orientation and callbacks."""

from __future__ import annotations

import abc
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Sequence

GPIO_NUM_NC = -1
MAX_POINTS = 1

_TRANSFORMS = ("swap_xy", "mirror_x", "mirror_y")
_KEEP = object()


@dataclass
class TouchFlags:
    """Orientation adjustments applied to every reported point."""

    swap_xy: bool = False
    mirror_x: bool = False
    mirror_y: bool = False


@dataclass(frozen=True)
class TouchPoint:
    """One touched point in controller coordinates."""

    x: int
    y: int
    strength: int = 0


ProcessCallback = Callable[["TouchController", Sequence[TouchPoint], int], Sequence[TouchPoint]]
InterruptCallback = Callable[["TouchController"], None]


@dataclass
class TouchConfig:
    """Configuration of a touch controller."""

    x_max: int
    y_max: int
    rst_gpio_num: int = GPIO_NUM_NC
    int_gpio_num: int = GPIO_NUM_NC
    reset_level: bool = False
    interrupt_level: bool = False
    flags: TouchFlags = field(default_factory=TouchFlags)
    process_coordinates: ProcessCallback | None = None
    interrupt_callback: InterruptCallback | None = None
    user_data: Any = None
    driver_data: Any = None


class TouchController(abc.ABC):
    """Base of touch controller drivers.

    A driver implements ``read_data``, which samples the hardware and hands
    the result to ``_store_points``. Orientation changes named in
    ``hardware_transforms`` are done by the controller itself; the others
    are applied in software by ``get_coordinates``. A driver that can sleep
    sets ``_sleep_handler`` to a method taking the requested sleep state.
    """

    hardware_transforms: frozenset[str] = frozenset()
    _sleep_handler: Callable[[bool], None] | None = None

    def __init__(self, config: TouchConfig) -> None:
        self.config = replace(config, flags=replace(config.flags))
        self._lock = threading.Lock()
        self._points: list[TouchPoint] = []
        self._hardware_state: dict[str, bool] = {}
        self.sleeping = False
        self.closed = False

    def __enter__(self) -> "TouchController":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @abc.abstractmethod
    def read_data(self) -> None:
        """Sample the controller and store the touched points."""

    def _store_points(self, points: Sequence[TouchPoint]) -> None:
        with self._lock:
            self._points = list(points)

    def _get_xy(self, max_points: int) -> list[TouchPoint]:
        """Return up to ``max_points`` stored points and invalidate the store."""
        with self._lock:
            points = self._points[:max_points]
            self._points = []
        return points

    def get_coordinates(self, max_points: int = MAX_POINTS) -> list[TouchPoint]:
        """Return the touched points, adjusted for orientation; empty if untouched."""
        if max_points < 0:
            raise ValueError("max_points must not be negative")
        points = self._get_xy(max_points)
        if not points:
            return []
        if self.config.process_coordinates is not None:
            points = list(self.config.process_coordinates(self, points, max_points))
        flags = self.config.flags
        mirror_x = flags.mirror_x and "mirror_x" not in self.hardware_transforms
        mirror_y = flags.mirror_y and "mirror_y" not in self.hardware_transforms
        swap = flags.swap_xy and "swap_xy" not in self.hardware_transforms
        if not (mirror_x or mirror_y or swap):
            return points
        adjusted = []
        for point in points:
            x, y = point.x, point.y
            if mirror_x:
                x = (self.config.x_max - x) & 0xFFFF
            if mirror_y:
                y = (self.config.y_max - y) & 0xFFFF
            if swap:
                x, y = y, x
            adjusted.append(TouchPoint(x, y, point.strength))
        return adjusted

    def _set_hardware_transform(self, name: str, value: bool) -> None:
        """Record an orientation change made in the controller; drivers extend this."""
        self._hardware_state[name] = value

    def _get_hardware_transform(self, name: str) -> bool:
        """Report an orientation setting held by the controller."""
        return self._hardware_state.get(name, getattr(self.config.flags, name))

    def _set_transform(self, name: str, value: bool) -> None:
        setattr(self.config.flags, name, bool(value))
        if name in self.hardware_transforms:
            self._set_hardware_transform(name, bool(value))

    def _get_transform(self, name: str) -> bool:
        if name in self.hardware_transforms:
            return self._get_hardware_transform(name)
        return getattr(self.config.flags, name)

    @property
    def swap_xy(self) -> bool:
        return self._get_transform("swap_xy")

    @swap_xy.setter
    def swap_xy(self, value: bool) -> None:
        self._set_transform("swap_xy", value)

    @property
    def mirror_x(self) -> bool:
        return self._get_transform("mirror_x")

    @mirror_x.setter
    def mirror_x(self, value: bool) -> None:
        self._set_transform("mirror_x", value)

    @property
    def mirror_y(self) -> bool:
        return self._get_transform("mirror_y")

    @mirror_y.setter
    def mirror_y(self, value: bool) -> None:
        self._set_transform("mirror_y", value)

    def _change_sleep(self, asleep: bool) -> None:
        handler = self._sleep_handler
        if handler is None:
            raise RuntimeError("sleep mode not supported")
        handler(asleep)
        self.sleeping = asleep

    def enter_sleep(self) -> None:
        """Put the controller to sleep; raises ``RuntimeError`` if unsupported."""
        self._change_sleep(True)

    def exit_sleep(self) -> None:
        """Wake the controller; raises ``RuntimeError`` if unsupported."""
        self._change_sleep(False)

    def _release(self) -> None:
        """Drop stored points and callbacks; drivers extend this."""
        with self._lock:
            self._points = []
        self.config.interrupt_callback = None

    def close(self) -> None:
        """Release the controller. Closing twice has no further effect."""
        if not self.closed:
            self._release()
            self.closed = True

    def register_interrupt_callback(
        self,
        callback: InterruptCallback | None,
        user_data: Any = _KEEP,
    ) -> None:
        """Set or clear the callback run on a touch interrupt.

        ``user_data``, when given, replaces the configured user data. A
        controller without an interrupt pin raises ``ValueError``.
        """
        if user_data is not _KEEP:
            self.config.user_data = user_data
        if self.config.int_gpio_num == GPIO_NUM_NC:
            raise ValueError("no interrupt pin configured")
        self.config.interrupt_callback = callback

    def handle_interrupt(self) -> bool:
        """Run the interrupt callback; returns whether one was registered."""
        callback = self.config.interrupt_callback
        if callback is None:
            return False
        callback(self)
        return True