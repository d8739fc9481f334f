import pytest

from tilenav.touch import (
    GPIO_NUM_NC,
    TouchConfig,
    TouchController,
    TouchFlags,
    TouchPoint,
)


class FakeController(TouchController):
    def __init__(self, config, samples=()):
        super().__init__(config)
        self.samples = list(samples)
        self.released = 0

    def read_data(self):
        self._store_points(self.samples)

    def _release(self):
        self.released += 1


class HardwareMirrorController(FakeController):
    hardware_transforms = frozenset({"mirror_x"})

    def __init__(self, config, samples=()):
        super().__init__(config, samples)
        self.hw_calls = []
        self.hw_mirror = False

    def _set_hardware_transform(self, name, value):
        self.hw_calls.append((name, value))
        self.hw_mirror = value

    def _get_hardware_transform(self, name):
        return self.hw_mirror


class SleepyController(FakeController):
    def __init__(self, config):
        super().__init__(config)
        self.asleep = False

    def enter_sleep(self):
        self.asleep = True

    def exit_sleep(self):
        self.asleep = False


def make_config(**kwargs):
    return TouchConfig(x_max=320, y_max=240, **kwargs)


def test_no_touch_gives_empty_list():
    tp = FakeController(make_config())
    tp.read_data()
    assert tp.get_coordinates() == []


def test_points_returned_then_invalidated():
    tp = FakeController(make_config(), [TouchPoint(10, 20, 5)])
    tp.read_data()
    assert tp.get_coordinates() == [TouchPoint(10, 20, 5)]
    assert tp.get_coordinates() == []


def test_max_points_caps_result():
    samples = [TouchPoint(1, 2), TouchPoint(3, 4), TouchPoint(5, 6)]
    tp = FakeController(make_config(), samples)
    tp.read_data()
    assert tp.get_coordinates(2) == samples[:2]


def test_negative_max_points_rejected():
    tp = FakeController(make_config())
    with pytest.raises(ValueError):
        tp.get_coordinates(-1)


def test_software_mirror_x():
    config = make_config(flags=TouchFlags(mirror_x=True))
    tp = FakeController(config, [TouchPoint(20, 30)])
    tp.read_data()
    (point,) = tp.get_coordinates()
    assert point.x == config.x_max - 20
    assert point.y == 30


def test_software_mirror_y():
    config = make_config(flags=TouchFlags(mirror_y=True))
    tp = FakeController(config, [TouchPoint(20, 30)])
    tp.read_data()
    (point,) = tp.get_coordinates()
    assert (point.x, point.y) == (20, config.y_max - 30)


def test_mirror_wraps_like_unsigned_16_bit():
    config = TouchConfig(x_max=10, y_max=10, flags=TouchFlags(mirror_x=True))
    tp = FakeController(config, [TouchPoint(20, 0)])
    tp.read_data()
    assert tp.get_coordinates()[0].x == 65526


def test_swap_xy_keeps_strength():
    config = make_config(flags=TouchFlags(swap_xy=True))
    tp = FakeController(config, [TouchPoint(7, 9, 42)])
    tp.read_data()
    assert tp.get_coordinates() == [TouchPoint(9, 7, 42)]


def test_mirror_then_swap_order():
    config = make_config(flags=TouchFlags(mirror_x=True, swap_xy=True))
    tp = FakeController(config, [TouchPoint(20, 30)])
    tp.read_data()
    (point,) = tp.get_coordinates()
    assert (point.x, point.y) == (30, config.x_max - 20)


def test_property_setter_enables_software_adjustment():
    tp = FakeController(make_config(), [TouchPoint(7, 9)])
    tp.swap_xy = True
    assert tp.swap_xy is True
    tp.read_data()
    assert tp.get_coordinates() == [TouchPoint(9, 7)]


def test_hardware_mirror_skips_software_adjustment():
    config = make_config()
    tp = HardwareMirrorController(config, [TouchPoint(20, 30)])
    tp.mirror_x = True
    assert tp.hw_calls == [("mirror_x", True)]
    assert tp.mirror_x is True
    tp.read_data()
    assert tp.get_coordinates() == [TouchPoint(20, 30)]


def test_process_coordinates_callback_applied():
    seen = []

    def process(controller, points, max_points):
        seen.append((controller, max_points))
        return [TouchPoint(p.x + 1, p.y + 1, p.strength) for p in points]

    tp = FakeController(make_config(process_coordinates=process), [TouchPoint(4, 5)])
    tp.read_data()
    assert tp.get_coordinates() == [TouchPoint(5, 6)]
    assert seen == [(tp, 1)]


def test_process_callback_not_called_without_touch():
    calls = []
    config = make_config(process_coordinates=lambda c, p, m: calls.append(p) or p)
    tp = FakeController(config)
    tp.read_data()
    assert tp.get_coordinates() == []
    assert calls == []


def test_config_is_copied():
    config = make_config()
    tp = FakeController(config)
    tp.mirror_y = True
    assert config.flags.mirror_y is False
    assert tp.config.flags.mirror_y is True


def test_sleep_unsupported_raises():
    tp = FakeController(make_config())
    with pytest.raises(RuntimeError):
        tp.enter_sleep()
    with pytest.raises(RuntimeError):
        tp.exit_sleep()


def test_sleep_supported_by_driver():
    tp = SleepyController(make_config())
    tp.enter_sleep()
    assert tp.asleep is True
    tp.exit_sleep()
    assert tp.asleep is False


def test_interrupt_without_pin_rejected_but_user_data_kept():
    tp = FakeController(make_config())
    assert tp.config.int_gpio_num == GPIO_NUM_NC
    with pytest.raises(ValueError):
        tp.register_interrupt_callback(lambda c: None, "payload")
    assert tp.config.user_data == "payload"
    assert tp.config.interrupt_callback is None


def test_interrupt_callback_registered_and_fired():
    fired = []
    tp = FakeController(make_config(int_gpio_num=4))
    tp.register_interrupt_callback(fired.append, "payload")
    assert tp.config.user_data == "payload"
    assert tp.handle_interrupt() is True
    assert fired == [tp]


def test_register_without_user_data_keeps_existing():
    tp = FakeController(make_config(int_gpio_num=4, user_data="kept"))
    tp.register_interrupt_callback(lambda c: None)
    assert tp.config.user_data == "kept"


def test_clearing_interrupt_callback():
    tp = FakeController(make_config(int_gpio_num=4))
    tp.register_interrupt_callback(lambda c: None)
    tp.register_interrupt_callback(None)
    assert tp.handle_interrupt() is False


def test_close_is_idempotent_and_context_manager():
    with FakeController(make_config()) as tp:
        assert tp.closed is False
    assert tp.closed is True
    tp.close()
    assert tp.released == 1


def test_base_class_is_abstract():
    with pytest.raises(TypeError):
        TouchController(make_config())